"""
Flow payoffs and budget primitives of the household problem.

Every function here broadcasts over numpy arrays and accepts complex inputs,
so the same formulas serve the steady-state solve (real numbers) and
complex-step differentiation of the dynamic equilibrium conditions.
"""

from dataclasses import dataclass

import numpy as np


def CRRAutility(c, rho):
    """
    Evaluates constant relative risk aversion (CRRA) utility of consumption c
    given risk aversion parameter rho.

    Parameters
    ----------
    c : float or np.array
        Consumption value
    rho : float
        Risk aversion

    Returns
    -------
    (unnamed) : float or np.array
        Utility

    Tests
    -----
    Test a value which should pass:
    >>> c, CRRA = 1.0, 2.0    # Set two values at once with Python syntax
    >>> CRRAutility(c=c, rho=CRRA)
    -1.0
    """
    if rho == 1.0:
        return np.log(c)
    return c ** (1.0 - rho) / (1.0 - rho)


def CRRAutilityP(c, rho):
    """
    Marginal utility of consumption, c ** -rho.
    """
    return c ** (-rho)


def CRRAutilityP_inv(uP, rho):
    """
    Inverse of marginal utility: consumption implied by marginal value uP.
    """
    return uP ** (-1.0 / rho)


@dataclass(frozen=True)
class HouseholdProblem:
    """
    Preferences and budget of a household facing wage w.

    Parameters
    ----------
    w : float
        Real wage per efficiency unit of labor.
    CRRA : float
        Coefficient of relative risk aversion.
    Frisch : float
        Frisch elasticity of labor supply.
    LabTax : float
        Marginal tax rate on labor income.
    LabDisutil : float
        Weight of labor disutility.
    """

    w: complex
    CRRA: float
    Frisch: float
    LabTax: float
    LabDisutil: float

    def util(self, c, h):
        """Flow utility of consumption c and hours h."""
        return CRRAutility(c, self.CRRA) - self.LabDisutil * (
            h ** (1 + 1 / self.Frisch) / (1 + 1 / self.Frisch)
        )

    def income(self, h, z, profshare, lumptransfer, r, a):
        """Income flow: after-tax labor earnings, transfers, profits and interest."""
        return h * z * self.w * (1 - self.LabTax) + lumptransfer + profshare + r * a

    def labor(self, z, val):
        """
        Hours from the intratemporal first-order condition, given the
        marginal value of wealth val.
        """
        return (z * self.w * (1 - self.LabTax) * val / self.LabDisutil) ** self.Frisch
