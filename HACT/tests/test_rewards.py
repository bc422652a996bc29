"""
Tests of the household's flow utility, budget and labor supply.
"""

import dataclasses
import unittest

import numpy as np

from HACT.ConsumptionSaving.ConsHANKModel import make_labor_disutility
from HACT.rewards import (
    CRRAutility,
    CRRAutilityP,
    CRRAutilityP_inv,
    HouseholdProblem,
)
from HACT.tests import HACT_PRECISION


class test_CRRA(unittest.TestCase):
    def test_log_case(self):
        self.assertAlmostEqual(CRRAutility(np.e, 1.0), 1.0)

    def test_power_case(self):
        self.assertAlmostEqual(CRRAutility(2.0, 2.0), -0.5)
        self.assertAlmostEqual(CRRAutility(4.0, 0.5), 4.0)

    def test_inverse(self):
        c = np.array([0.3, 1.0, 2.5])
        for rho in [0.5, 1.0, 3.0]:
            np.testing.assert_allclose(CRRAutilityP_inv(CRRAutilityP(c, rho), rho), c)

    def test_complex_step_derivative(self):
        c = 1.7
        step = 1e-20
        for rho in [1.0, 2.0]:
            derivative = np.imag(CRRAutility(c + 1j * step, rho)) / step
            self.assertAlmostEqual(derivative, CRRAutilityP(c, rho), places=12)


class test_HouseholdProblem(unittest.TestCase):
    def setUp(self):
        self.LabDisutil = make_labor_disutility(3.0, 1.0, 0.5)
        self.problem = HouseholdProblem(
            w=0.9, CRRA=1.0, Frisch=0.5, LabTax=0.2, LabDisutil=self.LabDisutil
        )

    def test_labor_disutility_calibration(self):
        self.assertAlmostEqual(self.LabDisutil, 20.25)

    def test_util(self):
        util = self.problem.util(1.0, 1.0 / 3.0)
        expected = -self.LabDisutil * (1.0 / 3.0) ** 3 / 3.0
        self.assertAlmostEqual(util, expected)

    def test_income(self):
        income = self.problem.income(0.5, 2.0, 0.1, 0.06, 0.01, 3.0)
        self.assertAlmostEqual(income, 0.5 * 2.0 * 0.9 * 0.8 + 0.06 + 0.1 + 0.03)

    def test_labor_first_order_condition(self):
        z = np.array([0.5, 1.5])
        c = np.array([0.8, 1.2])
        h = self.problem.labor(z, CRRAutilityP(c, 1.0))
        lhs = self.LabDisutil * h ** (1.0 / 0.5)
        rhs = z * 0.9 * 0.8 * c ** (-1.0)
        np.testing.assert_allclose(lhs, rhs, rtol=10 ** (-HACT_PRECISION))

    def test_broadcasting(self):
        c = np.ones((4, 2))
        h = np.full((4, 2), 0.3)
        self.assertEqual(self.problem.util(c, h).shape, (4, 2))

    def test_complex_wage(self):
        problem = dataclasses.replace(self.problem, w=0.9 + 1e-20j)
        income = problem.income(0.5, 2.0, 0.0, 0.0, 0.0, 0.0)
        self.assertAlmostEqual(np.imag(income) / 1e-20, 0.5 * 2.0 * 0.8)

    def test_frozen(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            self.problem.w = 1.0
