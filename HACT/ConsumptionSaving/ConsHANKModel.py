"""
The household block of a one-asset HANK model in continuous time.

Households hold a single bond, face idiosyncratic switches in labor
efficiency, choose consumption and hours, and cannot borrow below the bottom
of the asset grid.  Their Hamilton-Jacobi-Bellman equation is solved with an
implicit upwind finite-difference scheme:

    1) construct_initial_diff_matrices: one-sided derivatives of V and the
       consumption/hours they imply, with state-constraint boundary conditions
    2) hours_iteration: fixed-point passes jointly resolving hours and
       consumption where the budget binds
    3) construct_savings: drifts (saving rates) on each side
    4) upwind: choose the difference consistent with the drift and assemble
       the generator A of the joint (asset, income) process
    5) solve_hjb_step: implicit update of V given A and flow utility

Steps 1-4 are shared with the dynamic equilibrium conditions in
HACT.ConsumptionSaving.HANKEconomy, and accept complex inputs.
"""

from collections import namedtuple
from copy import deepcopy

import numpy as np
from scipy.sparse import diags, identity
from scipy.sparse.linalg import spsolve

from HACT.core import AgentType
from HACT.distributions.markov import (
    get_Aswitch_from_IncomeProcess,
    make_income_process,
)
from HACT.metric import MetricObject
from HACT.rewards import CRRAutilityP, CRRAutilityP_inv, HouseholdProblem
from HACT.utilities import make_asset_grid, make_diff_grids, stack, unstack

__all__ = [
    "HouseholdSolution",
    "HouseholdPrices",
    "UpwindResult",
    "OneAssetHANKType",
    "construct_initial_diff_matrices",
    "hours_iteration",
    "construct_savings",
    "upwind",
    "assemble_generator",
    "solve_hjb_step",
    "init_one_asset_hank",
]

# Value assigned to a branch whose implied consumption is not positive
INFEASIBLE_VALUE = -1e12


# =====================================================================
# === Classes that help solve the household problem ===
# =====================================================================


class HouseholdSolution(MetricObject):
    """
    The household's value function and policies on the joint grid, all I x J.

    Parameters
    ----------
    V : np.array
        Value function.
    A : scipy.sparse matrix
        Generator of the joint (asset, income) process under the policies.
    u : np.array
        Flow utility.
    c : np.array
        Consumption.
    h : np.array
        Hours worked.
    s : np.array
        Saving rate (asset drift).
    h0 : np.array
        Hours at zero drift, carried as the starting point of the next
        hours_iteration.
    """

    distance_criteria = ["V"]

    def __init__(self, V, A=None, u=None, c=None, h=None, s=None, h0=None):
        self.V = V
        self.A = A
        self.u = u
        self.c = c
        self.h = h
        self.s = s
        self.h0 = h0


# Prices and transfers a household takes as given
HouseholdPrices = namedtuple(
    "HouseholdPrices", ["w", "r", "rho", "profshare", "lumptransfer"]
)

UpwindResult = namedtuple("UpwindResult", ["A", "u", "h", "c", "s", "Va", "If", "Ib"])


def _cap_hours(h, maxhours):
    return np.where(np.real(h) > maxhours, maxhours, h)


def _strong_mul(indicator, x):
    # Zero indicators wipe out the other factor even when it is nan or inf
    return np.where(indicator != 0, indicator * x, 0.0)


def construct_initial_diff_matrices(
    V, problem, h, h0, zz, profshare, lumptransfer, r, amax, amin, dazf, dazb, maxhours
):
    """
    One-sided derivatives of V in the asset direction, and the consumption and
    hours each of them implies.

    At a_max the forward derivative is replaced by the marginal utility of
    consuming all income (no saving at the top of the grid); at a_min the
    backward derivative is the marginal utility of consuming all income at
    the borrowing limit, evaluated at zero-drift hours h0.

    Parameters
    ----------
    V : np.array
        I x J value function.
    problem : HouseholdProblem
        Preferences and budget at the current wage.
    h, h0 : np.array
        Current hours policy and zero-drift hours, I x J.
    zz : np.array
        I x J labor efficiency grid.
    profshare : np.array
        I x J profit income.
    lumptransfer : float
        Lump-sum transfer.
    r : float
        Real interest rate.
    amax, amin : float
        Top and bottom of the asset grid.
    dazf, dazb : np.array
        I x J forward and backward grid spacings.
    maxhours : float
        Cap on hours.

    Returns
    -------
    Vaf, Vab, cf, hf, cb, hb : np.array
        Forward/backward marginal values, consumption and hours.
    """
    CRRA = problem.CRRA
    dtype = np.result_type(V, profshare, lumptransfer, r, problem.w, float)

    Vaf = np.empty(V.shape, dtype=dtype)
    Vab = np.empty(V.shape, dtype=dtype)
    dV = V[1:, :] - V[:-1, :]
    Vaf[:-1, :] = dV / dazf[:-1, :]
    Vab[1:, :] = dV / dazb[1:, :]

    Vaf[-1, :] = CRRAutilityP(
        problem.income(h[-1, :], zz[-1, :], profshare[-1, :], lumptransfer, r, amax),
        CRRA,
    )
    Vab[0, :] = CRRAutilityP(
        problem.income(h0[0, :], zz[0, :], profshare[0, :], lumptransfer, r, amin),
        CRRA,
    )

    cf = CRRAutilityP_inv(Vaf, CRRA)
    cb = CRRAutilityP_inv(Vab, CRRA)
    hf = _cap_hours(problem.labor(zz, Vaf), maxhours)
    hb = _cap_hours(problem.labor(zz, Vab), maxhours)

    return Vaf, Vab, cf, hf, cb, hb


def hours_iteration(
    problem, zz, profshare, lumptransfer, aa, r, cf, hf, cb, hb, h0, maxhours, niter_hours
):
    """
    Fixed-point passes between hours and consumption wherever consumption is
    pinned by income: the forward branch at a_max, the backward branch at
    a_min, and the zero-drift policy everywhere.  Runs exactly niter_hours
    passes; the inputs are not modified.

    Returns
    -------
    cf, hf, cb, hb, c0, h0 : np.array
        Updated forward/backward boundary policies and zero-drift policies.
    """
    CRRA = problem.CRRA
    dtype = np.result_type(cf, hf, cb, hb, h0, profshare, lumptransfer, r, problem.w)
    cf = np.array(cf, dtype=dtype)
    hf = np.array(hf, dtype=dtype)
    cb = np.array(cb, dtype=dtype)
    hb = np.array(hb, dtype=dtype)
    h0 = np.array(h0, dtype=dtype)

    c0 = problem.income(h0, zz, profshare, lumptransfer, r, aa)
    for ih in range(niter_hours):
        cf[-1, :] = problem.income(
            hf[-1, :], zz[-1, :], profshare[-1, :], lumptransfer, r, aa[-1, :]
        )
        hf[-1, :] = _cap_hours(
            problem.labor(zz[-1, :], CRRAutilityP(cf[-1, :], CRRA)), maxhours
        )

        cb[0, :] = problem.income(
            hb[0, :], zz[0, :], profshare[0, :], lumptransfer, r, aa[0, :]
        )
        hb[0, :] = _cap_hours(
            problem.labor(zz[0, :], CRRAutilityP(cb[0, :], CRRA)), maxhours
        )

        c0 = problem.income(h0, zz, profshare, lumptransfer, r, aa)
        h0 = _cap_hours(problem.labor(zz, CRRAutilityP(c0, CRRA)), maxhours)

    return cf, hf, cb, hb, c0, h0


def construct_savings(
    problem, zz, profshare, lumptransfer, aa, r, cf, hf, cb, hb, h0, Vaf, Vab
):
    """
    Saving rates implied by each one-sided policy, and the zero-drift policy.

    The boundary marginal values are reset to the marginal utility of the
    boundary consumption from hours_iteration.

    Returns
    -------
    c0 : np.array
        Zero-drift consumption (all income consumed).
    sf, sb : np.array
        Forward and backward saving rates.
    Vaf, Vab : np.array
        Marginal values with updated boundary rows.
    Va0 : np.array
        Marginal value at zero drift.
    """
    CRRA = problem.CRRA
    c0 = problem.income(h0, zz, profshare, lumptransfer, r, aa)
    sf = problem.income(hf, zz, profshare, lumptransfer, r, aa) - cf
    sb = problem.income(hb, zz, profshare, lumptransfer, r, aa) - cb

    Vaf = np.array(Vaf, dtype=np.result_type(Vaf, cf))
    Vab = np.array(Vab, dtype=np.result_type(Vab, cb))
    Vaf[-1, :] = CRRAutilityP(cf[-1, :], CRRA)
    Vab[0, :] = CRRAutilityP(cb[0, :], CRRA)
    Va0 = CRRAutilityP(c0, CRRA)

    return c0, sf, sb, Vaf, Vab, Va0


def assemble_generator(sf, sb, If, Ib, dazf, dazb, Aswitch=None):
    """
    Generator of the joint (asset, income) process.

    Asset drift moves mass to the next grid point up at rate sf / daf where
    the forward difference is used, and to the next point down at rate
    -sb / dab where the backward difference is used.  The diagonal is minus
    the off-diagonal row sum.  Within each income state this is tridiagonal;
    there are no asset moves across income blocks.  Aswitch, the
    income-switching intensities, is added if given.

    Parameters
    ----------
    sf, sb : np.array
        I x J forward and backward saving rates.
    If, Ib : np.array
        I x J indicators (0/1) of where each difference is used.
    dazf, dazb : np.array
        I x J forward and backward grid spacings.
    Aswitch : scipy.sparse matrix, optional
        (I*J) x (I*J) income-switching generator.

    Returns
    -------
    A : scipy.sparse.csr_matrix
        (I*J) x (I*J) generator.
    """
    X = -_strong_mul(Ib, sb) / dazb
    Y = -_strong_mul(If, sf) / dazf + _strong_mul(Ib, sb) / dazb
    Z = _strong_mul(If, sf) / dazf

    # No moves off the ends of the asset grid
    lowdiag = np.array(X)
    lowdiag[0, :] = 0.0
    updiag = np.array(Z)
    updiag[-1, :] = 0.0

    AA = diags(
        [stack(lowdiag)[1:], stack(Y), stack(updiag)[:-1]], [-1, 0, 1], format="csr"
    )
    if Aswitch is None:
        return AA
    return (AA + Aswitch).tocsr()


def upwind(
    V, problem, Aswitch, cf, cb, c0, hf, hb, h0, sf, sb, Vaf, Vab, Va0, dazf, dazb
):
    """
    Upwind choice between the forward difference, the backward difference and
    zero drift at every grid point, and the generator that choice implies.

    The forward difference is used where sf > 0 and either sb >= 0 with the
    forward branch valued above zero drift, or sb < 0 too and the forward
    branch is (weakly) the best of the three.  The backward difference is
    chosen symmetrically.  Everywhere else the household sits at zero drift:
    I0 = 1 - If - Ib.  A branch with non-positive consumption is valued at
    INFEASIBLE_VALUE so it is never chosen over a feasible one.

    Comparisons use real parts, so under complex-step perturbation the choice
    is the one made at the unperturbed point.

    Returns
    -------
    UpwindResult
        A (generator, Aswitch included), u (flow utility), h, c, s (policies),
        Va (upwind marginal value), If, Ib (indicators).
    """
    Vf = problem.util(cf, hf)
    Vb = problem.util(cb, hb)
    V0 = problem.util(c0, h0)

    Vf = np.where(np.real(cf) > 0, Vf + sf * Vaf, INFEASIBLE_VALUE)
    Vb = np.where(np.real(cb) > 0, Vb + sb * Vab, INFEASIBLE_VALUE)
    V0 = np.where(np.real(c0) > 0, V0, INFEASIBLE_VALUE)

    sf_pos = np.real(sf) > 0
    sb_neg = np.real(sb) < 0
    Iunique = (sb_neg & ~sf_pos) | (~sb_neg & sf_pos)
    Iboth = sb_neg & sf_pos

    Vf_re, Vb_re, V0_re = np.real(Vf), np.real(Vb), np.real(V0)
    Vmax = np.maximum(np.maximum(Vb_re, Vf_re), V0_re)

    Ib = (Iunique & sb_neg & (Vb_re > V0_re)).astype(float) + (
        Iboth & (Vb_re == Vmax)
    ).astype(float)
    If = (Iunique & sf_pos & (Vf_re > V0_re)).astype(float) + (
        Iboth & (Vf_re == Vmax)
    ).astype(float)
    I0 = 1.0 - Ib - If

    Va = _strong_mul(If, Vaf) + _strong_mul(Ib, Vab) + _strong_mul(I0, Va0)
    h = _strong_mul(If, hf) + _strong_mul(Ib, hb) + _strong_mul(I0, h0)
    c = _strong_mul(If, cf) + _strong_mul(Ib, cb) + _strong_mul(I0, c0)
    s = _strong_mul(If, sf) + _strong_mul(Ib, sb)
    u = problem.util(c, h)

    A = assemble_generator(sf, sb, If, Ib, dazf, dazb, Aswitch)
    return UpwindResult(A, u, h, c, s, Va, If, Ib)


def solve_hjb_step(rho, V, upwind_result, Delta_HJB=1e6):
    """
    Implicit HJB update: V_new solves

        ((1/Delta_HJB + rho) I - A) V_new = u + V / Delta_HJB

    which approaches a policy-iteration step as Delta_HJB grows.

    Parameters
    ----------
    rho : float
        Discount rate.
    V : np.array
        I x J current value function.
    upwind_result : UpwindResult
        Generator A and flow utility u at the current policies.
    Delta_HJB : float, optional
        Pseudo-time step.  Default 1e6.

    Returns
    -------
    V_new : np.array
        I x J updated value function.
    """
    shape = V.shape
    A = upwind_result.A
    n = shape[0] * shape[1]
    B = (1.0 / Delta_HJB + rho) * identity(n, dtype=A.dtype, format="csc") - A
    b = stack(upwind_result.u) + stack(V) / Delta_HJB
    return unstack(spsolve(B.tocsc(), b), shape)


# =====================================================================
# === Constructors and default parameters ===
# =====================================================================


def make_labor_disutility(MeanLabEff, CRRA, Frisch):
    """
    Labor disutility weight calibrated so that a household with mean labor
    efficiency consuming 0.75 chooses to work 1/3 of its time.
    """
    return MeanLabEff / ((0.75 ** (-CRRA)) * ((1.0 / 3.0) ** (1.0 / Frisch)))


OneAssetHANKType_constructors_default = {
    "LabDisutil": make_labor_disutility,
    "aGrid": make_asset_grid,
    "IncomeProcess": make_income_process,
    "DiffGrids": make_diff_grids,
    "Aswitch": get_Aswitch_from_IncomeProcess,
}

# Default parameters to make aGrid using make_asset_grid
OneAssetHANKType_aGrid_default = {
    "aMin": 0.0,  # Borrowing limit
    "aMax": 40.0,  # Top of the asset grid
    "aCount": 100,  # Number of asset grid points
    "aGridBend": 1.0,  # Bending coefficient: 1 for a uniform grid
}

# Default parameters to make IncomeProcess using make_income_process
OneAssetHANKType_IncomeProcess_default = {
    "yLogGrid": np.array([0.2, 1.0]),  # Unscaled log labor efficiency levels
    "yMarkovGen": np.array(
        [[-0.5, 0.5], [0.0376, -0.0376]]
    ),  # Switching intensities between income states
    "MeanLabEff": 3.0,  # Mean labor efficiency, so that output is about 1 at h = 1/3
}

OneAssetHANKType_solving_default = {
    "constructors": OneAssetHANKType_constructors_default,
    "CRRA": 1.0,  # Coefficient of relative risk aversion
    "Frisch": 0.5,  # Frisch elasticity of labor supply
    "LabTax": 0.2,  # Marginal tax rate on labor income
    "MaxHours": 1.0,  # Cap on hours worked
    "niter_hours": 10,  # Passes of the hours fixed point
    "maxit_HJB": 500,  # Maximum number of HJB steps
    "tol_HJB": 1e-8,  # Tolerance on the change in V between HJB steps
    "Delta_HJB": 1e6,  # Pseudo-time step of the implicit HJB scheme
}

OneAssetHANKType_defaults = {}
OneAssetHANKType_defaults.update(OneAssetHANKType_aGrid_default)
OneAssetHANKType_defaults.update(OneAssetHANKType_IncomeProcess_default)
OneAssetHANKType_defaults.update(OneAssetHANKType_solving_default)
init_one_asset_hank = OneAssetHANKType_defaults


class OneAssetHANKType(AgentType):
    r"""
    A household type in a one-asset HANK economy.  Its value function V(a, z)
    solves

    .. math::
        \rho V = \max_{c,h} u(c, h) + V_a (w z h (1-\tau) + T + \Pi(z) + r a - c)
                 + \sum_{z'} \lambda_{z z'} (V(a, z') - V(a, z))

    subject to a >= aMin.  Solving takes a HouseholdPrices tuple and iterates
    the implicit upwind scheme until V stops changing by more than tol_HJB,
    or maxit_HJB steps.

    Parameters
    ----------
    **kwds : keyword arguments
        Overrides of the entries of init_one_asset_hank.
    """

    default_ = {"params": init_one_asset_hank}

    def __init__(self, **kwds):
        params = deepcopy(self.default_["params"])
        params.update(kwds)
        super().__init__(
            tolerance=params["tol_HJB"], max_cycles=params["maxit_HJB"], **params
        )

    def check_restrictions(self):
        if self.CRRA <= 0:
            raise ValueError("CRRA must be positive.")
        if self.Frisch <= 0:
            raise ValueError("Frisch must be positive.")
        if not 0.0 <= self.LabTax < 1.0:
            raise ValueError("LabTax must lie in [0, 1).")
        if self.MaxHours <= 0:
            raise ValueError("MaxHours must be positive.")
        if self.niter_hours < 0:
            raise ValueError("niter_hours cannot be negative.")

    @property
    def shape(self):
        return (self.aCount, self.IncomeProcess.n_states)

    @property
    def zz(self):
        return self.IncomeProcess.zz

    def make_household_problem(self, w, params=None):
        """
        Preferences and budget at wage w, from a frozen Parameters (this
        type's current parameters if None).
        """
        if params is None:
            params = self.get_parameters()
        return HouseholdProblem(
            w, params.CRRA, params.Frisch, params.LabTax, params.LabDisutil
        )

    def initial_guess(self, prices):
        """
        Value of consuming all income while working 1/3 of the time, forever.
        """
        problem = self.make_household_problem(prices.w)
        aa = self.DiffGrids.aa
        h = np.full(self.shape, 1.0 / 3.0)
        h0 = np.ones(self.shape)
        inc = problem.income(h, self.zz, prices.profshare, prices.lumptransfer, prices.r, aa)
        V = problem.util(inc, h) / prices.rho
        return HouseholdSolution(V=V, c=np.zeros(self.shape), h=h, h0=h0)

    def solve_one_step(self, solution_last, prices):
        """
        One implicit upwind step of the HJB equation.

        Parameters
        ----------
        solution_last : HouseholdSolution
            Current guess (V, h and h0 are used).
        prices : HouseholdPrices
            Prices and transfers taken as given.

        Returns
        -------
        HouseholdSolution
            Updated value function and the policies and generator used.
        """
        problem = self.make_household_problem(prices.w)
        grids = self.DiffGrids
        zz, aa = self.zz, grids.aa
        profshare, lumptransfer, r = prices.profshare, prices.lumptransfer, prices.r
        V = solution_last.V

        Vaf, Vab, cf, hf, cb, hb = construct_initial_diff_matrices(
            V,
            problem,
            solution_last.h,
            solution_last.h0,
            zz,
            profshare,
            lumptransfer,
            r,
            self.aGrid[-1],
            self.aGrid[0],
            grids.dazf,
            grids.dazb,
            self.MaxHours,
        )
        cf, hf, cb, hb, c0, h0 = hours_iteration(
            problem, zz, profshare, lumptransfer, aa, r,
            cf, hf, cb, hb, solution_last.h0, self.MaxHours, self.niter_hours,
        )
        c0, sf, sb, Vaf, Vab, Va0 = construct_savings(
            problem, zz, profshare, lumptransfer, aa, r, cf, hf, cb, hb, h0, Vaf, Vab
        )
        result = upwind(
            V, problem, self.Aswitch, cf, cb, c0, hf, hb, h0, sf, sb,
            Vaf, Vab, Va0, grids.dazf, grids.dazb,
        )
        V_new = solve_hjb_step(prices.rho, V, result, self.Delta_HJB)

        return HouseholdSolution(
            V=V_new, A=result.A, u=result.u, c=result.c, h=result.h, s=result.s, h0=h0
        )
