"""
Tests of the stationary distribution solvers, on a three-point asset grid
with two income states whose stationary density is known in closed form.
"""

import unittest

import numpy as np
import pytest

from HACT.ConsumptionSaving.ConsHANKModel import assemble_generator
from HACT.ConsumptionSaving.HANKEconomy import (
    calculate_ss_equil_vars,
    check_bond_market_clearing,
)
from HACT.distributions.kfe import (
    UnverifiedSolverError,
    solve_kfe,
    solve_kfe_iterative,
)
from HACT.distributions.markov import compute_stationary_income_distribution
from HACT.tests.test_ConsHANKModel import three_by_two_example
from HACT.utilities import stack


class test_solve_kfe(unittest.TestCase):
    def setUp(self):
        self.a, self.zz, self.grids, sf, sb, If, Ib, Aswitch = three_by_two_example()
        self.A = assemble_generator(
            sf, sb, If, Ib, self.grids.dazf, self.grids.dazb, Aswitch
        )
        # Equal mass on the two lower points in both income states, nothing at
        # the top; the bottom point carries half the quadrature weight
        self.g_exact = np.array([[1.0, 1.0], [0.5, 0.5], [0.0, 0.0]])

    def test_scenario(self):
        P = np.array([[0.9, 0.1], [0.1, 0.9]])
        np.testing.assert_allclose(compute_stationary_income_distribution(P, 2), 0.5)
        g = solve_kfe(self.A, self.grids.azdelta, (3, 2))
        self.assertEqual(g.shape, (3, 2))
        self.assertAlmostEqual(np.sum(g * self.grids.azdelta), 1.0)
        self.assertTrue(np.all(g >= -1e-12))

    def test_closed_form(self):
        g = solve_kfe(self.A, self.grids.azdelta, (3, 2))
        np.testing.assert_allclose(g, self.g_exact, atol=1e-12)

    def test_scalar_weights(self):
        g = solve_kfe(self.A, 0.25, (3, 2))
        self.assertAlmostEqual(np.sum(g) * 0.25, 1.0)
        self.assertTrue(np.all(g >= -1e-12))

    def test_pin_location(self):
        g = solve_kfe(self.A, self.grids.azdelta, (3, 2), i_fix=4)
        np.testing.assert_allclose(g, self.g_exact, atol=1e-12)

    def test_shape_mismatch(self):
        with self.assertRaises(ValueError):
            solve_kfe(self.A, self.grids.azdelta, (2, 2))

    def test_stationary_under_density_residual(self):
        # The forward equation in density form, A' (W g) / W, vanishes at g
        g = stack(solve_kfe(self.A, self.grids.azdelta, (3, 2)))
        weights = stack(self.grids.azdelta)
        np.testing.assert_allclose(self.A.T @ (weights * g) / weights, 0.0, atol=1e-12)

    def test_complex_generator(self):
        g = solve_kfe(self.A.astype(complex), self.grids.azdelta, (3, 2))
        np.testing.assert_allclose(np.real(g), self.g_exact, atol=1e-12)

    def test_market_clearing_round_trip(self):
        g = solve_kfe(self.A, self.grids.azdelta, (3, 2))
        aggs = calculate_ss_equil_vars(
            self.zz,
            np.ones((3, 2)),
            g,
            self.grids.azdelta,
            self.grids.aa,
            0.9,
            1.0,
            0.06,
            0.25,
        )
        self.assertAlmostEqual(aggs.N, 1.0)
        self.assertAlmostEqual(aggs.B, 0.25)
        self.assertAlmostEqual(aggs.bond_err, 0.0)

        bracket = check_bond_market_clearing(
            aggs.bond_err, 1e-5, 0.01, 0.001, 0.08, 0.02, 0.005, 0.05, True, False
        )
        self.assertTrue(bracket.cleared)
        self.assertEqual(bracket.r, 0.01)
        self.assertEqual((bracket.rmin, bracket.rmax), (0.001, 0.08))


class test_solve_kfe_iterative(unittest.TestCase):
    def setUp(self):
        self.a, self.zz, self.grids, sf, sb, If, Ib, Aswitch = three_by_two_example()
        self.A = assemble_generator(
            sf, sb, If, Ib, self.grids.dazf, self.grids.dazb, Aswitch
        )
        self.g_z = np.array([0.5, 0.5])

    def test_requires_opt_in(self):
        with self.assertRaises(UnverifiedSolverError):
            solve_kfe_iterative(
                self.A, self.a, self.g_z, self.grids.azdelta, self.grids.azdelta_mat
            )
        self.assertTrue(issubclass(UnverifiedSolverError, NotImplementedError))

    def test_fixed_point_matches_direct(self):
        with pytest.warns(UserWarning):
            g_iter = solve_kfe_iterative(
                self.A,
                self.a,
                self.g_z,
                self.grids.azdelta,
                self.grids.azdelta_mat,
                allow_unverified=True,
            )
        g_direct = solve_kfe(self.A, self.grids.azdelta, (3, 2))
        np.testing.assert_allclose(g_iter, g_direct, atol=1e-6)

    def test_needs_zero_on_grid(self):
        with self.assertRaises(ValueError):
            solve_kfe_iterative(
                self.A,
                self.a + 0.5,
                self.g_z,
                self.grids.azdelta,
                self.grids.azdelta_mat,
                allow_unverified=True,
            )
