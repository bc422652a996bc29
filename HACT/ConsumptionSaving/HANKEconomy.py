"""
The market side of the one-asset HANK model: steady-state aggregates, the
bisection search for a steady state that clears the bond market, and the
residuals of the dynamic equilibrium conditions, which are linearized with
complex-step differentiation.
"""

from collections import namedtuple
from copy import deepcopy

import numpy as np
import pandas as pd

from HACT.core import Market, _log
from HACT.ConsumptionSaving.ConsHANKModel import (
    HouseholdPrices,
    OneAssetHANKType,
    construct_initial_diff_matrices,
    construct_savings,
    hours_iteration,
    upwind,
)
from HACT.distributions.kfe import solve_kfe, solve_kfe_iterative
from HACT.utilities import stack, unstack

__all__ = [
    "SteadyStateAggregates",
    "BondMarketBracket",
    "HANKSteadyState",
    "HANKEconomy",
    "LinearizedEquilibrium",
    "calculate_ss_equil_vars_init",
    "calculate_ss_equil_vars",
    "check_bond_market_clearing",
    "calculate_eqcond_equil_objects",
    "calculate_residuals",
    "state_indices",
    "equilibrium_conditions",
    "complex_step_jacobian",
    "linearize_equilibrium_conditions",
    "canonical_form",
    "init_hank_economy",
]

SteadyStateAggregates = namedtuple(
    "SteadyStateAggregates",
    ["N", "Y", "B", "profit", "profshare", "lumptransfer", "bond_err"],
)

BondMarketBracket = namedtuple(
    "BondMarketBracket", ["r", "rmin", "rmax", "rho", "rhomin", "rhomax", "cleared"]
)

LinearizedEquilibrium = namedtuple(
    "LinearizedEquilibrium", ["residual", "jac_x", "jac_x_dot", "jac_eta", "jac_eps"]
)

RESIDUAL_KEYS = (
    "hjbResidual",
    "pcResidual",
    "gResidual",
    "MPResidual",
    "bondmarketResidual",
    "labmarketResidual",
    "consumptionResidual",
    "outputResidual",
    "assetsResidual",
)

# Step of the imaginary perturbation in complex-step differentiation
COMPLEX_STEP = 1e-20


def calculate_ss_equil_vars_init(zz, markup, meanlabeff, lumptransferpc, govbondtarget):
    """
    Starting guesses for the steady-state aggregates: hours of 1/3 and output
    of 1.

    Parameters
    ----------
    zz : np.array
        I x J labor efficiency grid.
    markup : float
        Real marginal cost (the labor share in steady state).
    meanlabeff : float
        Mean labor efficiency.
    lumptransferpc : float
        Lump-sum transfer as a share of output.
    govbondtarget : float
        Government debt as a multiple of output.

    Returns
    -------
    N, Y, B, profit, profshare, lumptransfer
    """
    N = 1.0 / 3.0
    Y = 1.0
    B = govbondtarget * Y
    profit = (1.0 - markup) * Y
    profshare = zz / meanlabeff * profit
    lumptransfer = lumptransferpc * Y
    return N, Y, B, profit, profshare, lumptransfer


def calculate_ss_equil_vars(
    zz, h, g, azdelta, aa, markup, meanlabeff, lumptransferpc, govbondtarget
):
    """
    Aggregates implied by household hours h and the distribution g, and the
    excess of bond holdings over the government's debt target.

    Returns
    -------
    SteadyStateAggregates
        N (hours), Y (output, equal to N), B (bond holdings), profit,
        profshare (I x J), lumptransfer and bond_err = B / Y - govbondtarget.
    """
    N = np.sum(zz * h * g * azdelta)
    Y = N
    B = np.sum(g * aa * azdelta)
    profit = (1.0 - markup) * Y
    profshare = zz / meanlabeff * profit
    lumptransfer = lumptransferpc * Y
    bond_err = B / Y - govbondtarget
    return SteadyStateAggregates(N, Y, B, profit, profshare, lumptransfer, bond_err)


def check_bond_market_clearing(
    bond_err, crit_S, r, rmin, rmax, rho, rhomin, rhomax, IterateR, IterateRho
):
    """
    One bisection step on the interest rate or the discount rate.

    Excess bond demand (bond_err > crit_S) lowers r or raises rho; excess
    supply (bond_err < -crit_S) does the opposite.  The bracket shrinks on the
    side the current value came from.

    Parameters
    ----------
    bond_err : float
        Excess demand for bonds relative to output; only its real part is used.
    crit_S : float
        Clearing tolerance.
    r, rmin, rmax : float
        Interest rate and its bracket.
    rho, rhomin, rhomax : float
        Discount rate and its bracket.
    IterateR, IterateRho : bool
        Which instrument to move.  Exactly one must be True.

    Returns
    -------
    BondMarketBracket
        Updated values and brackets, and whether the market has cleared.
    """
    if bool(IterateR) == bool(IterateRho):
        raise ValueError("Exactly one of IterateR and IterateRho must be True.")

    bond_err = np.real(bond_err)
    cleared = False
    if bond_err > crit_S:
        if IterateR:
            rmax = r
            r = 0.5 * (r + rmin)
        else:
            rhomin = rho
            rho = 0.5 * (rho + rhomax)
    elif bond_err < -crit_S:
        if IterateR:
            rmin = r
            r = 0.5 * (r + rmax)
        else:
            rhomax = rho
            rho = 0.5 * (rho + rhomin)
    else:
        cleared = True

    return BondMarketBracket(r, rmin, rmax, rho, rhomin, rhomax, cleared)


class HANKSteadyState:
    """
    A steady state of the one-asset HANK economy.

    Arrays (V, g, u, c, h, h0, s and profshare) are I x J; A is the generator
    at the steady-state policies.  Scalars are the interest rate r, discount
    rate rho, wage w (equal to the labor share), inflation (zero), nominal
    rate rnom, hours N, output Y, bonds B, consumption C, profit, lump-sum
    transfer T and government spending G.  parameters and
    household_parameters are the economy's and the household's settings,
    frozen when the steady state was found.
    """

    scalar_names = (
        "r", "rho", "w", "labor_share", "inflation", "rnom",
        "N", "Y", "B", "C", "profit", "T", "G",
    )

    def __init__(self, **kwds):
        for key, value in kwds.items():
            setattr(self, key, value)

    def to_series(self):
        """
        The scalar aggregates as a pandas Series.
        """
        return pd.Series(
            {name: np.real(getattr(self, name)) for name in self.scalar_names},
            name="steady_state",
        )


# Default parameters of the market
HANKEconomy_defaults = {
    "CESElast": 10.0,  # Elasticity of substitution between goods varieties
    "PriceAdjust": 100.0,  # Rotemberg price adjustment cost
    "GovBondTarget": 6.0,  # Government debt as a multiple of quarterly output
    "LumpTransferPc": 0.06,  # Lump-sum transfer as a share of output
    "GovBCRuleFixNomB": 0.0,  # Weight on fixing nominal debt in the government budget rule
    "TFP": 1.0,  # Total factor productivity
    "ThetaMP": 0.25,  # Mean reversion of the monetary policy shock
    "SigmaMP": np.sqrt(0.05),  # Volatility of the monetary policy shock
    "TaylorInfl": 1.25,  # Taylor rule coefficient on inflation
    "TaylorOutGap": 0.1,  # Taylor rule coefficient on the output gap
    "r0": 0.005,  # Initial guess of the interest rate
    "rMin": 0.001,  # Lower bracket of the interest rate
    "rMax": 0.08,  # Upper bracket of the interest rate
    "rho0": 0.02,  # Initial guess of the discount rate
    "rhoMin": 0.005,  # Lower bracket of the discount rate
    "rhoMax": 0.05,  # Upper bracket of the discount rate
    "IterateR": False,  # Clear the bond market with the interest rate...
    "IterateRho": True,  # ...or with the discount rate
    "crit_S": 1e-5,  # Tolerance on the bond market error
    "max_loops": 100,  # Maximum number of bisection loops
    "use_iterative_KFE": False,  # Use the unverified iterative KFE solver
    "maxit_KFE": 1000,  # Iterative KFE: maximum number of steps
    "tol_KFE": 1e-12,  # Iterative KFE: tolerance
    "Delta_KFE": 1e6,  # Iterative KFE: implicit step length
}
init_hank_economy = HANKEconomy_defaults


class HANKEconomy(Market):
    """
    A one-asset HANK economy with a single household type.

    solve() searches for the steady state by bisection: at each loop the
    households solve their HJB equation at the current prices, the stationary
    distribution is computed from the implied generator, and the aggregates
    are used to update profit income, transfers and the bisection bracket.
    The loop stops when bonds held by households match the government's debt
    target or after max_loops loops.  The last loop is stored in
    self.steady_state either way, and self.cleared records which.

    Parameters
    ----------
    agents : [OneAssetHANKType], optional
        The household type; a default OneAssetHANKType is made if omitted.
    **kwds : keyword arguments
        Overrides of the entries of init_hank_economy.
    """

    def __init__(self, agents=None, **kwds):
        if agents is None:
            agents = [OneAssetHANKType()]
        if len(agents) != 1:
            raise ValueError("HANKEconomy takes exactly one household type.")

        params = deepcopy(HANKEconomy_defaults)
        params.update(kwds)
        track_vars = params.pop("track_vars", ["r", "rho", "bond_err", "N", "B"])
        max_loops = params.pop("max_loops")
        super().__init__(
            agents=agents, track_vars=track_vars, max_loops=max_loops, **params
        )
        self.steady_state = None
        self.cleared = False
        self.reset()

    @property
    def household(self):
        return self.agents[0]

    def reset(self):
        """
        Erase the history and restore the initial guesses and brackets.
        """
        super().reset()
        agent = self.household
        self.r, self.rmin, self.rmax = self.r0, self.rMin, self.rMax
        self.rho, self.rhomin, self.rhomax = self.rho0, self.rhoMin, self.rhoMax

        self.labor_share = (self.CESElast - 1.0) / self.CESElast
        self.w = self.labor_share
        (
            self.N,
            self.Y,
            self.B,
            self.profit,
            self.profshare,
            self.lumptransfer,
        ) = calculate_ss_equil_vars_init(
            agent.zz,
            self.labor_share,
            agent.MeanLabEff,
            self.LumpTransferPc,
            self.GovBondTarget,
        )
        self.bond_err = np.nan

    def solve_agents(self):
        prices = HouseholdPrices(
            w=self.w,
            r=self.r,
            rho=self.rho,
            profshare=self.profshare,
            lumptransfer=self.lumptransfer,
        )
        self.household.solve(prices)

    def mill(self):
        """
        Stationary distribution at the household policies, the aggregates it
        implies, and a candidate steady state at the current prices.
        """
        agent = self.household
        solution = agent.solution
        grids = agent.DiffGrids

        if self.use_iterative_KFE:
            g = solve_kfe_iterative(
                solution.A,
                agent.aGrid,
                agent.IncomeProcess.stationary,
                grids.azdelta,
                grids.azdelta_mat,
                maxit_KFE=self.maxit_KFE,
                tol_KFE=self.tol_KFE,
                Delta_KFE=self.Delta_KFE,
                allow_unverified=True,
            )
        else:
            g = solve_kfe(solution.A, grids.azdelta, agent.shape)
        self.g = g

        aggs = calculate_ss_equil_vars(
            agent.zz,
            solution.h,
            g,
            grids.azdelta,
            grids.aa,
            self.labor_share,
            agent.MeanLabEff,
            self.LumpTransferPc,
            self.GovBondTarget,
        )
        self.N, self.Y, self.B = aggs.N, aggs.Y, aggs.B
        self.profit, self.profshare = aggs.profit, aggs.profshare
        self.lumptransfer = aggs.lumptransfer
        self.bond_err = aggs.bond_err

        self.steady_state = self.make_steady_state(solution, g)

    def make_steady_state(self, solution, g):
        """
        Package the household solution and distribution at the current prices
        as a HANKSteadyState.
        """
        agent = self.household
        grids = agent.DiffGrids
        g = np.real(g)
        h = np.real(solution.h)
        c = np.real(solution.c)

        N = np.sum(agent.zz * h * g * grids.azdelta)
        Y = N
        B = np.sum(g * grids.aa * grids.azdelta)
        C = np.sum(c * g * grids.azdelta)
        profit = (1.0 - self.labor_share) * Y
        T = np.real(self.lumptransfer)
        inflation = 0.0

        return HANKSteadyState(
            V=np.real(solution.V),
            g=g,
            A=solution.A,
            u=np.real(solution.u),
            c=c,
            h=h,
            h0=np.real(solution.h0),
            s=np.real(solution.s),
            profshare=np.real(self.profshare),
            r=self.r,
            rho=self.rho,
            w=self.w,
            labor_share=self.labor_share,
            inflation=inflation,
            rnom=self.r + inflation,
            N=N,
            Y=Y,
            B=B,
            C=C,
            profit=profit,
            T=T,
            G=agent.LabTax * self.w * N - T - self.r * B,
            parameters=self.get_parameters(),
            household_parameters=agent.get_parameters(),
        )

    def update_dynamics(self):
        """
        Bisection step on the interest rate or the discount rate.

        Returns
        -------
        cleared : bool
        """
        bracket = check_bond_market_clearing(
            self.bond_err,
            self.crit_S,
            self.r,
            self.rmin,
            self.rmax,
            self.rho,
            self.rhomin,
            self.rhomax,
            self.IterateR,
            self.IterateRho,
        )
        _log.info(
            "Loop %d: r = %.6f, rho = %.6f, bond market error = %.3e",
            len(self.history),
            self.r,
            self.rho,
            np.real(self.bond_err),
        )
        self.r, self.rmin, self.rmax = bracket.r, bracket.rmin, bracket.rmax
        self.rho, self.rhomin, self.rhomax = bracket.rho, bracket.rhomin, bracket.rhomax
        return bracket.cleared


def calculate_eqcond_equil_objects(
    r_SS,
    Y_SS,
    G_SS,
    output,
    assets,
    hours,
    inflation,
    zz,
    w,
    TFP,
    MP,
    meanlabeff,
    taylor_inflation,
    taylor_outputgap,
    labtax,
    govbcrule_fixnomB,
):
    """
    Prices and transfers implied by the current aggregate state: profit
    income from the markup w / TFP, the real rate from a Taylor rule for the
    nominal rate, and the lump-sum transfer that balances the government
    budget given spending fixed at G_SS.

    Returns
    -------
    profshare : np.array
        I x J profit income.
    r : float or complex
        Real interest rate.
    lumptransfer : float or complex
        Lump-sum transfer.
    """
    m = w / TFP
    profit = (1.0 - m) * output
    profshare = zz / meanlabeff * profit
    r_Nominal = (
        r_SS
        + taylor_inflation * inflation
        + taylor_outputgap * (np.log(output) - np.log(Y_SS))
        + MP
    )
    r = r_Nominal - inflation
    lumptransfer = (
        labtax * w * hours
        - G_SS
        - (r_Nominal - (1.0 - govbcrule_fixnomB) * inflation) * assets
    )
    return profshare, r, lumptransfer


def calculate_residuals(
    rho,
    u,
    A,
    V,
    VDot,
    VEErrors,
    w,
    TFP,
    inflation,
    inflationDot,
    inflationEError,
    azdelta_mat,
    g,
    MP,
    MPDot,
    MPShock,
    aa,
    zz,
    azdelta,
    r,
    gDot,
    s,
    h,
    c,
    hours,
    consumption,
    output,
    assets,
    ceselast,
    priceadjust,
    theta_MP,
    sigma_MP,
    govbcrule_fixnomB,
):
    """
    Residuals of the equilibrium conditions of the one-asset HANK model.

    Parameters
    ----------
    rho : float
        Discount rate.
    u, V, s, h, c : np.array
        I x J flow utility, value function, saving, hours and consumption.
    A : scipy.sparse matrix
        Generator at the current policies.
    VDot, VEErrors : np.array
        Time derivative and expectational error of the stacked V.
    w, TFP : float
        Wage and productivity.
    inflation, inflationDot, inflationEError : float
        Inflation, its time derivative and its expectational error.
    azdelta_mat : scipy.sparse matrix
        Sparse diagonal of the stacked quadrature weights.
    g : np.array
        Stacked density (I*J entries).
    MP, MPDot, MPShock : float
        Monetary policy shock process, its derivative and innovation.
    aa, zz, azdelta : np.array
        I x J asset grid, labor efficiency grid and quadrature weights.
    r : float
        Real interest rate.
    gDot : np.array
        Time derivative of the first I*J - 1 entries of g.
    hours, consumption, output, assets : float
        Aggregate hours, consumption, output and bonds.
    ceselast, priceadjust : float
        Elasticity of substitution and price adjustment cost.
    theta_MP, sigma_MP : float
        Mean reversion and volatility of the monetary policy shock.
    govbcrule_fixnomB : float
        Weight on fixing nominal debt in the government budget rule.

    Returns
    -------
    residuals : dict
        Ordered as hjbResidual, pcResidual, gResidual, MPResidual,
        bondmarketResidual, labmarketResidual, consumptionResidual,
        outputResidual, assetsResidual.
    """
    # HJB equation
    hjbResidual = stack(u) + A @ stack(V) + VDot + VEErrors - rho * stack(V)

    # Phillips curve
    pcResidual = -(
        (r - 0.0) * inflation
        - (
            ceselast / priceadjust * (w / TFP - (ceselast - 1.0) / ceselast)
            + inflationDot
            - inflationEError
        )
    )

    # KFE, in density terms
    weights = azdelta_mat.diagonal()
    gIntermediate = (A.T @ (azdelta_mat @ g)) / weights
    gResidual = gDot - gIntermediate[:-1]

    # Monetary policy
    MPResidual = MPDot - (-theta_MP * MP + sigma_MP * MPShock)

    # Market clearing
    realsav = np.sum(stack(aa) * g * stack(azdelta))
    realsavDot = np.sum(stack(s) * g * stack(azdelta))
    bondmarketResidual = realsavDot / realsav + govbcrule_fixnomB * inflation
    labmarketResidual = np.sum(stack(zz) * stack(h) * g * stack(azdelta)) - hours
    consumptionResidual = np.sum(stack(c) * g * stack(azdelta)) - consumption
    outputResidual = TFP * hours - output
    assetsResidual = assets - realsav

    return dict(
        zip(
            RESIDUAL_KEYS,
            (
                hjbResidual,
                pcResidual,
                gResidual,
                MPResidual,
                bondmarketResidual,
                labmarketResidual,
                consumptionResidual,
                outputResidual,
                assetsResidual,
            ),
        )
    )


def state_indices(n_v):
    """
    Positions of each block in the state vector of the dynamic model, for a
    joint grid of n_v = I*J points.  The last grid point of g is left out:
    it is implied by the density integrating to one.

    Returns
    -------
    states : dict
        Slices or integer positions of V, inflation, g, MP, w, N, C, Y and B.
    n_states : int
        Length of the state vector, 2 * n_v + 6.
    """
    states = {
        "V": slice(0, n_v),
        "inflation": n_v,
        "g": slice(n_v + 1, 2 * n_v),
        "MP": 2 * n_v,
        "w": 2 * n_v + 1,
        "N": 2 * n_v + 2,
        "C": 2 * n_v + 3,
        "Y": 2 * n_v + 4,
        "B": 2 * n_v + 5,
    }
    return states, 2 * n_v + 6


def equilibrium_conditions(economy, x, x_dot, eta, eps):
    """
    Stacked residual vector of the dynamic equilibrium conditions.

    Every setting is read from the parameters frozen with the steady state, so
    later changes to the economy or its households do not move the point of
    linearization.

    Parameters
    ----------
    economy : HANKEconomy
        An economy whose steady state has been found.
    x : np.array
        Deviation of the state from the steady state, laid out as in
        state_indices.
    x_dot : np.array
        Time derivative of the state; its V, inflation, g and MP entries are
        used.
    eta : np.array
        Expectational errors: I*J entries for V, then one for inflation.
    eps : np.array
        Structural shocks: the monetary policy innovation.

    Returns
    -------
    residual : np.array
        Residuals stacked in the order of the state vector, 2 * I * J + 6
        entries.  Complex if any input is complex.
    """
    ss = economy.steady_state
    if ss is None:
        raise ValueError("Solve for the steady state before evaluating the dynamics.")

    params = ss.parameters
    hh_params = ss.household_parameters
    grids = hh_params.DiffGrids
    zz, aa = hh_params.IncomeProcess.zz, grids.aa
    shape = zz.shape
    n_v = shape[0] * shape[1]
    idx, n_states = state_indices(n_v)
    x = np.asarray(x)
    x_dot = np.asarray(x_dot)
    eta = np.asarray(eta)
    eps = np.asarray(eps)
    if x.size != n_states or x_dot.size != n_states:
        raise ValueError(f"State vectors must have {n_states} entries.")
    if eta.size != n_v + 1 or eps.size != 1:
        raise ValueError(f"Expected {n_v + 1} expectational errors and one shock.")

    with np.errstate(divide="ignore", over="ignore", under="ignore", invalid="ignore"):
        V = unstack(stack(ss.V) + x[idx["V"]], shape)
        inflation = ss.inflation + x[idx["inflation"]]
        g = stack(ss.g)[:-1] + x[idx["g"]]
        weights = stack(grids.azdelta)
        g_end = (1.0 - np.sum(g * weights[:-1])) / weights[-1]
        g = np.append(g, g_end)
        MP = x[idx["MP"]]
        w = ss.w + x[idx["w"]]
        hours = ss.N + x[idx["N"]]
        consumption = ss.C + x[idx["C"]]
        output = ss.Y + x[idx["Y"]]
        assets = ss.B + x[idx["B"]]

        VDot = x_dot[idx["V"]]
        inflationDot = x_dot[idx["inflation"]]
        gDot = x_dot[idx["g"]]
        MPDot = x_dot[idx["MP"]]
        VEErrors = eta[:n_v]
        inflationEError = eta[n_v]
        MPShock = eps[0]

        profshare, r, lumptransfer = calculate_eqcond_equil_objects(
            ss.r,
            ss.Y,
            ss.G,
            output,
            assets,
            hours,
            inflation,
            zz,
            w,
            params.TFP,
            MP,
            hh_params.MeanLabEff,
            params.TaylorInfl,
            params.TaylorOutGap,
            hh_params.LabTax,
            params.GovBCRuleFixNomB,
        )

        problem = economy.household.make_household_problem(w, hh_params)
        Vaf, Vab, cf, hf, cb, hb = construct_initial_diff_matrices(
            V,
            problem,
            ss.h,
            ss.h0,
            zz,
            profshare,
            lumptransfer,
            r,
            hh_params.aGrid[-1],
            hh_params.aGrid[0],
            grids.dazf,
            grids.dazb,
            hh_params.MaxHours,
        )
        cf, hf, cb, hb, c0, h0 = hours_iteration(
            problem, zz, profshare, lumptransfer, aa, r,
            cf, hf, cb, hb, ss.h0, hh_params.MaxHours, hh_params.niter_hours,
        )
        c0, sf, sb, Vaf, Vab, Va0 = construct_savings(
            problem, zz, profshare, lumptransfer, aa, r, cf, hf, cb, hb, h0, Vaf, Vab
        )
        result = upwind(
            V, problem, hh_params.Aswitch, cf, cb, c0, hf, hb, h0, sf, sb,
            Vaf, Vab, Va0, grids.dazf, grids.dazb,
        )

        residuals = calculate_residuals(
            ss.rho,
            result.u,
            result.A,
            V,
            VDot,
            VEErrors,
            w,
            params.TFP,
            inflation,
            inflationDot,
            inflationEError,
            grids.azdelta_mat,
            g,
            MP,
            MPDot,
            MPShock,
            aa,
            zz,
            grids.azdelta,
            r,
            gDot,
            result.s,
            result.h,
            result.c,
            hours,
            consumption,
            output,
            assets,
            params.CESElast,
            params.PriceAdjust,
            params.ThetaMP,
            params.SigmaMP,
            params.GovBCRuleFixNomB,
        )

    return np.concatenate([np.atleast_1d(residuals[key]) for key in RESIDUAL_KEYS])


def complex_step_jacobian(func, x0, step=COMPLEX_STEP):
    """
    Jacobian of a real-analytic vector function by complex-step
    differentiation: column k is Im(func(x0 + i * step * e_k)) / step.

    Parameters
    ----------
    func : callable
        Maps a 1-D array to a 1-D array and accepts complex input.
    x0 : np.array
        Real point of evaluation.
    step : float, optional
        Size of the imaginary perturbation.  Default 1e-20.

    Returns
    -------
    jac : np.array
        len(func(x0)) x len(x0) real matrix.
    """
    x0 = np.asarray(x0, dtype=float)
    n = x0.size
    columns = []
    for k in range(n):
        x = x0.astype(complex)
        x[k] += 1j * step
        columns.append(np.imag(func(x)) / step)
    if not columns:
        return np.zeros((np.size(func(x0)), 0))
    return np.column_stack(columns)


def linearize_equilibrium_conditions(economy, step=COMPLEX_STEP):
    """
    Jacobians of equilibrium_conditions at the steady state with respect to
    the state, its time derivative, the expectational errors and the shocks.

    Returns
    -------
    LinearizedEquilibrium
        residual (the conditions at the steady state), jac_x, jac_x_dot,
        jac_eta and jac_eps.
    """
    agent = economy.household
    n_v = agent.shape[0] * agent.shape[1]
    n_states = state_indices(n_v)[1]
    x0 = np.zeros(n_states)
    x_dot0 = np.zeros(n_states)
    eta0 = np.zeros(n_v + 1)
    eps0 = np.zeros(1)

    residual = np.real(equilibrium_conditions(economy, x0, x_dot0, eta0, eps0))
    jac_x = complex_step_jacobian(
        lambda x: equilibrium_conditions(economy, x, x_dot0, eta0, eps0), x0, step
    )
    jac_x_dot = complex_step_jacobian(
        lambda x_dot: equilibrium_conditions(economy, x0, x_dot, eta0, eps0),
        x_dot0,
        step,
    )
    jac_eta = complex_step_jacobian(
        lambda eta: equilibrium_conditions(economy, x0, x_dot0, eta, eps0), eta0, step
    )
    jac_eps = complex_step_jacobian(
        lambda eps: equilibrium_conditions(economy, x0, x_dot0, eta0, eps), eps0, step
    )
    return LinearizedEquilibrium(residual, jac_x, jac_x_dot, jac_eta, jac_eps)


def canonical_form(linearized):
    """
    Rewrite the linearized conditions F_x x + F_xdot x' + F_eta eta + F_eps eps
    + F_0 = 0 as

        Gamma0 x' = Gamma1 x + C + Psi eps + Pi eta

    Returns
    -------
    Gamma0, Gamma1, C, Psi, Pi : np.array
    """
    Gamma0 = -linearized.jac_x_dot
    Gamma1 = linearized.jac_x
    C = linearized.residual
    Psi = linearized.jac_eps
    Pi = linearized.jac_eta
    return Gamma0, Gamma1, C, Psi, Pi
