"""
Stationary distributions of the joint (asset, income) process.

Given the generator A of the discretized process, the Kolmogorov forward
equation for a stationary density g is A' g = 0.  Because A's rows sum to
zero, A' is singular and g is only pinned down up to scale; the direct solver
below replaces one equation with a normalization before solving.
"""

from warnings import warn

import numpy as np
from scipy.sparse import identity
from scipy.sparse.linalg import spsolve

from HACT.core import _log
from HACT.utilities import stack, unstack


class UnverifiedSolverError(NotImplementedError):
    """
    Raised when a solver that has not been validated is called without
    explicitly opting in.
    """


def solve_kfe(A, weights, shape, i_fix=0):
    """
    Direct solve of the stationary forward equation A' g = 0.

    Row `i_fix` of A' is overwritten with the pin g[i_fix] = 0.1, which removes
    the rank-one singularity.  The solution is a mass per grid point; with an
    array of weights it is divided by them to give a density.  It is then
    rescaled so that it integrates to one under the quadrature weights.

    Parameters
    ----------
    A : scipy.sparse matrix
        (I*J) x (I*J) generator of the joint process, real or complex.
    weights : float or np.array
        Quadrature weights: either a scalar (da * dz on a uniform grid) or an
        array with I*J entries (for instance the azdelta grid).
    shape : (int, int)
        (I, J), the shape of the returned distribution.
    i_fix : int, optional
        Index of the equation replaced by the pin.  Default 0.

    Returns
    -------
    g : np.array
        I x J density with sum(g * weights) == 1.
    """
    n = A.shape[0]
    if n != shape[0] * shape[1]:
        raise ValueError(f"Generator of size {n} does not match shape {shape}.")

    AT = A.T.tolil()
    AT[i_fix, :] = 0
    AT[i_fix, i_fix] = 1
    b = np.zeros(n, dtype=AT.dtype)
    b[i_fix] = 0.1

    gg = spsolve(AT.tocsc(), b)
    if np.ndim(weights) == 0:
        return unstack(gg / (np.sum(gg) * weights), shape)

    # A' acts on masses; divide out the weights to get a density
    weights = stack(np.asarray(weights))
    gg = gg / weights
    gg = gg / np.sum(gg * weights)
    return unstack(gg, shape)


def solve_kfe_iterative(
    A,
    a,
    g_z,
    azdelta,
    azdelta_mat,
    maxit_KFE=1000,
    tol_KFE=1e-12,
    Delta_KFE=1e6,
    allow_unverified=False,
):
    """
    Damped implicit iteration for the stationary distribution, for generators
    too ill-conditioned for `solve_kfe`.

    Starts from all mass at zero assets, spread across income states by the
    stationary income distribution g_z.  Each step integrates the density over
    wealth, solves (I - Delta_KFE * A') m_new = m, renormalizes m_new to sum to
    one and divides the weights back out.  Stops when no entry moves by more
    than tol_KFE or after maxit_KFE steps, returning the last iterate.

    Its fixed point is the density returned by solve_kfe, but the solver has
    not been validated on ill-conditioned generators, so it must be enabled
    with allow_unverified=True.

    Parameters
    ----------
    A : scipy.sparse matrix
        (I*J) x (I*J) generator of the joint process.
    a : np.array
        Asset grid; must contain 0 exactly.
    g_z : np.array
        Stationary income distribution.
    azdelta : np.array
        I x J quadrature weights.
    azdelta_mat : scipy.sparse matrix
        Sparse diagonal of the stacked quadrature weights.
    maxit_KFE : int, optional
        Maximum number of steps.  Default 1000.
    tol_KFE : float, optional
        Convergence tolerance.  Default 1e-12.
    Delta_KFE : float, optional
        Implicit step length.  Default 1e6.
    allow_unverified : bool, optional
        Must be True to run this solver.

    Returns
    -------
    g : np.array
        I x J density.

    Raises
    ------
    UnverifiedSolverError
        If allow_unverified is not True.
    ValueError
        If the asset grid has no point at zero to start from.
    """
    if not allow_unverified:
        raise UnverifiedSolverError(
            "The iterative KFE solver is unverified; pass allow_unverified=True "
            "to use it, or use solve_kfe."
        )
    at_zero = np.asarray(a) == 0
    if not np.any(at_zero):
        raise ValueError(
            "The iterative KFE solver starts from zero assets, which is not on "
            "the asset grid."
        )
    warn("Using the unverified iterative KFE solver.")

    I = len(a)
    J = len(g_z)
    dtype = np.result_type(A.dtype, float)

    g0 = np.zeros((I, J), dtype=dtype)
    g0[at_zero, :] = g_z
    g0 = g0 / azdelta
    gg = stack(g0)

    B = (identity(I * J, dtype=dtype, format="csc") - Delta_KFE * A.T).tocsc()
    err_KFE = np.inf
    for ikfe in range(maxit_KFE):
        gg_tilde = azdelta_mat @ gg
        gg1_tilde = spsolve(B, gg_tilde)
        gg1_tilde = gg1_tilde / np.sum(gg1_tilde)
        gg1 = spsolve(azdelta_mat.tocsc(), gg1_tilde)

        err_KFE = np.max(np.abs(gg1 - gg))
        if err_KFE < tol_KFE:
            break
        gg = gg1
    else:
        _log.warning(
            "Iterative KFE did not converge in %d steps (error %.3e).",
            maxit_KFE,
            err_KFE,
        )

    return unstack(gg, (I, J))
