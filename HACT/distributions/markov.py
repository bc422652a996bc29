"""
Tools for the exogenous income process: a continuous-time Markov chain over a
small number of labor efficiency states.

The chain is described by its intensity (generator) matrix: off-diagonal entry
(i, j) is the arrival rate of a switch from state i to state j, and each row
sums to zero.
"""

from typing import Optional

import numpy as np
import scipy.linalg
from scipy.sparse import identity, kron, csr_matrix

from HACT.utilities import construct_labor_income_grid

# Length of the implicit time step used to relax toward the stationary
# distribution.
STATIONARY_DIST_STEP = 1000.0


def _is_intensity_matrix(P):
    return np.allclose(P.sum(axis=1), 0.0) and np.all(
        P[~np.eye(P.shape[0], dtype=bool)] >= 0.0
    )


def _is_transition_matrix(P):
    return np.allclose(P.sum(axis=1), 1.0) and np.all(P >= 0.0)


def compute_stationary_income_distribution(P, n_states, iters=50):
    """
    Stationary distribution of the income process.

    Starting from the uniform distribution, repeatedly solves

        (I - 1000 * P') x_new = x_old

    an implicit Euler step of length 1000 along the forward equation of the
    chain, and stops when no entry moves by 1e-5 or more (returning the
    iterate from before that last step) or after `iters` steps.

    Parameters
    ----------
    P : np.array
        n_states x n_states intensity matrix (rows sum to zero).  A
        row-stochastic transition matrix is also accepted and is replaced by
        the intensity P - I, which has the same stationary distribution.
    n_states : int
        Number of income states.
    iters : int, optional
        Maximum number of implicit steps.  Default 50.

    Returns
    -------
    g_z : np.array
        Stationary probabilities over income states.
    """
    P = np.asarray(P, dtype=float)
    if not _is_intensity_matrix(P) and _is_transition_matrix(P):
        P = P - np.eye(n_states)
    Pt = P.T

    g_z = np.full(n_states, 1.0 / n_states)
    B = np.eye(n_states) - Pt * STATIONARY_DIST_STEP
    for n in range(iters):
        g_z_new = scipy.linalg.solve(B, g_z)
        diff = np.max(np.abs(g_z_new - g_z))
        if diff < 1e-5:
            break
        g_z = g_z_new
    return g_z


def make_income_switching_matrix(generator, I):
    """
    Income-switching block of the joint generator: kron(generator, I_I).

    With states stacked column by column (asset index fastest), entry
    (i + I*j, i + I*k) is the rate of switching from income state j to k
    while holding assets at grid point i.

    Parameters
    ----------
    generator : np.array
        J x J intensity matrix of the income process.
    I : int
        Number of asset grid points.

    Returns
    -------
    Aswitch : scipy.sparse.csr_matrix
        (I*J) x (I*J) sparse matrix; rows sum to zero.
    """
    return csr_matrix(kron(np.asarray(generator, dtype=float), identity(I)))


class IncomeMarkovProcess:
    """
    A continuous-time Markov chain for labor efficiency.

    Parameters
    ----------
    generator : np.array
        J x J intensity matrix: non-negative off-diagonal switching rates, rows
        summing to zero.
    log_levels : np.array
        Unscaled log labor efficiency of each state.
    mean_target : float, optional
        Target mean labor efficiency under the stationary distribution.
        Default 1.
    n_asset_points : int, optional
        Number of asset grid points used when replicating the income grid.
        Default 1.
    """

    def __init__(
        self,
        generator: np.ndarray,
        log_levels: np.ndarray,
        mean_target: float = 1.0,
        n_asset_points: Optional[int] = 1,
    ):
        generator = np.asarray(generator, dtype=float)
        log_levels = np.asarray(log_levels, dtype=float)

        if generator.ndim != 2 or generator.shape[0] != generator.shape[1]:
            raise ValueError("Generator matrix must be square (J x J)")

        if not _is_intensity_matrix(generator):
            raise ValueError(
                "Generator rows must sum to zero with non-negative switching rates"
            )

        if log_levels.size != generator.shape[0]:
            raise ValueError("Length of log_levels must equal number of states")

        self.generator = generator
        self.log_levels = log_levels
        self.n_states = generator.shape[0]
        self.mean_target = mean_target
        self.n_asset_points = n_asset_points

        self.stationary = compute_stationary_income_distribution(
            generator, self.n_states
        )
        self.zz = construct_labor_income_grid(
            log_levels, self.stationary, mean_target, n_asset_points
        )

    @property
    def z(self):
        """Scaled labor efficiency of each income state."""
        return self.zz[0, :]

    def mean(self):
        """Mean labor efficiency under the stationary distribution."""
        return self.stationary @ self.z

    def switching_matrix(self, I=None):
        """
        Sparse income-switching generator over an asset grid of I points
        (default: the number of rows of zz).
        """
        if I is None:
            I = self.n_asset_points
        return make_income_switching_matrix(self.generator, I)

    def __repr__(self) -> str:
        return (
            f"IncomeMarkovProcess(n_states={self.n_states}, "
            f"z_range=[{self.z.min():.3f}, {self.z.max():.3f}])"
        )


def make_income_process(yMarkovGen, yLogGrid, MeanLabEff, aCount):
    """
    Constructor for the labor efficiency process of a household type.

    Parameters
    ----------
    yMarkovGen : np.array
        Intensity matrix of the income process.
    yLogGrid : np.array
        Unscaled log labor efficiency levels.
    MeanLabEff : float
        Mean labor efficiency targeted in the stationary distribution.
    aCount : int
        Number of asset grid points.

    Returns
    -------
    IncomeProcess : IncomeMarkovProcess
    """
    return IncomeMarkovProcess(yMarkovGen, yLogGrid, MeanLabEff, aCount)


def get_Aswitch_from_IncomeProcess(IncomeProcess, aCount):
    """
    Constructor for the income-switching block of the generator.
    """
    return IncomeProcess.switching_matrix(aCount)
