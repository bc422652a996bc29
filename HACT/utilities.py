"""
General purpose / miscellaneous functions, including the constructors for the
asset grid and for the finite-difference structures laid over the joint
(asset, income) state space.

State-space matrices are I x J: rows index asset grid points, columns index
income states.  Whenever such a matrix is stacked into a vector it is stacked
column by column (order="F"), so that state (i, j) sits at position i + I*j.
"""

from collections import namedtuple

import numpy as np
from scipy.sparse import diags


def get_arg_names(function):
    """
    Returns a list of strings naming all of the arguments for the passed function.

    Parameters
    ----------
    function : function
        A function whose argument names are wanted.

    Returns
    -------
    argNames : [string]
        The names of the arguments of function.
    """
    argCount = function.__code__.co_argcount
    argNames = function.__code__.co_varnames[:argCount]
    return argNames


def stack(x):
    """Stack an I x J state-space matrix into a vector, column by column."""
    return np.reshape(x, -1, order="F")


def unstack(x, shape):
    """Inverse of `stack`."""
    return np.reshape(x, shape, order="F")


def construct_asset_grid(I, bend, a_min, a_max):
    """
    Discretize the asset space into I points on [a_min, a_max].

    Parameters
    ----------
    I : int
        Number of grid points, at least 2.
    bend : float
        Bending coefficient of the grid.  bend = 1 gives a uniform grid;
        bend < 1 concentrates points near a_min, bend > 1 near a_max.
    a_min : float
        Lowest asset level (the borrowing limit).
    a_max : float
        Highest asset level.

    Returns
    -------
    a : np.array
        Strictly increasing grid of length I, a[0] = a_min and a[-1] = a_max.
    """
    a = np.linspace(0.0, 1.0, I)
    a = a ** (1.0 / bend)
    return a_min + (a_max - a_min) * a


def construct_labor_income_grid(raw_log_incomes, distribution, mean_target, n_asset_points):
    """
    Build the I x J labor efficiency grid.

    The income levels exp(raw_log_incomes) are scaled so that their mean under
    `distribution` equals `mean_target`, and the resulting row is repeated for
    every asset grid point.

    Parameters
    ----------
    raw_log_incomes : np.array
        Unscaled log income level of each income state.
    distribution : np.array
        Stationary distribution over the income states.
    mean_target : float
        Target mean labor efficiency.
    n_asset_points : int
        Number of asset grid points (rows of the output).

    Returns
    -------
    zz : np.array
        Labor efficiency grid of shape (n_asset_points, J).
    """
    z = np.exp(np.asarray(raw_log_incomes, dtype=float))
    z_bar = np.sum(z * distribution)
    z = mean_target * z / z_bar
    return np.ones((n_asset_points, 1)) * z.reshape(1, -1)


DiffGrids = namedtuple(
    "DiffGrids", ["dazf", "dazb", "azdelta", "aa", "adelta", "azdelta_mat"]
)


def initialize_diff_grids(zz, a):
    """
    Precompute the finite-difference spacings and quadrature weights of the
    joint (asset, income) grid.

    The quadrature weight of an interior point is half the length of the
    interval between its two neighbors (for instance adelta[1] = (a[2] - a[0]) / 2);
    endpoints get half of their single adjacent interval.  Summing f * adelta
    is therefore the trapezoid rule, and each column of azdelta sums to
    a[-1] - a[0].

    Parameters
    ----------
    zz : np.array
        I x J labor efficiency grid; only its shape is used.
    a : np.array
        Asset grid of length I >= 2.

    Returns
    -------
    DiffGrids
        dazf, dazb : forward and backward spacings, I x J
        azdelta : quadrature weights, I x J
        aa : asset grid repeated across income states, I x J
        adelta : quadrature weights over the asset dimension, length I
        azdelta_mat : sparse diagonal matrix of the stacked azdelta
    """
    a = np.asarray(a, dtype=float)
    I = a.size
    J = zz.shape[1]
    if I < 2:
        raise ValueError("The asset grid needs at least two points.")

    da = np.diff(a)
    daf = np.empty(I)
    dab = np.empty(I)
    daf[:-1] = da
    daf[-1] = da[-1]
    dab[0] = da[0]
    dab[1:] = da

    adelta = np.empty(I)
    adelta[0] = 0.5 * daf[0]
    adelta[1:-1] = 0.5 * (daf[:-2] + daf[1:-1])
    adelta[-1] = 0.5 * daf[-2]

    aa = np.tile(a.reshape(-1, 1), (1, J))
    dazf = np.tile(daf.reshape(-1, 1), (1, J))
    dazb = np.tile(dab.reshape(-1, 1), (1, J))
    azdelta = np.tile(adelta.reshape(-1, 1), (1, J))
    azdelta_mat = diags(stack(azdelta), 0, format="csc")

    return DiffGrids(dazf, dazb, azdelta, aa, adelta, azdelta_mat)


def make_asset_grid(aCount, aGridBend, aMin, aMax):
    """
    Constructor for the asset grid from model parameters.

    Parameters
    ----------
    aCount : int
        Number of asset grid points.
    aGridBend : float
        Bending coefficient (1 for a uniform grid).
    aMin : float
        Borrowing limit.
    aMax : float
        Largest asset level.

    Returns
    -------
    aGrid : np.array
    """
    if aCount < 2:
        raise ValueError("aCount must be at least 2.")
    if aGridBend <= 0:
        raise ValueError("aGridBend must be positive.")
    if aMax <= aMin:
        raise ValueError("aMax must exceed aMin.")
    return construct_asset_grid(aCount, aGridBend, aMin, aMax)


def make_diff_grids(IncomeProcess, aGrid):
    """
    Constructor for the finite-difference structures of the joint grid.
    """
    return initialize_diff_grids(IncomeProcess.zz, aGrid)
