"""
Tests of the income process: stationary distribution, scaled income grid and
the income-switching block of the generator.
"""

import unittest

import numpy as np

from HACT.distributions.markov import (
    IncomeMarkovProcess,
    compute_stationary_income_distribution,
    get_Aswitch_from_IncomeProcess,
    make_income_process,
    make_income_switching_matrix,
)
from HACT.tests import HACT_PRECISION


class test_compute_stationary_income_distribution(unittest.TestCase):
    def test_symmetric_intensity(self):
        generator = np.array([[-0.3, 0.3], [0.3, -0.3]])
        g_z = compute_stationary_income_distribution(generator, 2)
        np.testing.assert_allclose(g_z, [0.5, 0.5])

    def test_asymmetric_intensity(self):
        generator = np.array([[-0.5, 0.5], [0.0376, -0.0376]])
        g_z = compute_stationary_income_distribution(generator, 2)
        expected = np.array([0.0376, 0.5]) / 0.5376
        np.testing.assert_allclose(g_z, expected, rtol=10 ** (-HACT_PRECISION))
        self.assertAlmostEqual(g_z.sum(), 1.0, places=HACT_PRECISION)
        self.assertLess(np.max(np.abs(generator.T @ g_z)), 1e-4)

    def test_transition_matrix(self):
        P = np.array([[0.9, 0.1], [0.2, 0.8]])
        g_z = compute_stationary_income_distribution(P, 2)
        np.testing.assert_allclose(g_z, [2.0 / 3.0, 1.0 / 3.0], rtol=10 ** (-HACT_PRECISION))
        self.assertLess(np.max(np.abs(P.T @ g_z - g_z)), 1e-4)

    def test_symmetric_transition_matrix(self):
        P = np.array([[0.9, 0.1], [0.1, 0.9]])
        g_z = compute_stationary_income_distribution(P, 2)
        np.testing.assert_allclose(g_z, [0.5, 0.5])

    def test_three_states(self):
        generator = np.array(
            [[-0.2, 0.1, 0.1], [0.05, -0.1, 0.05], [0.0, 0.3, -0.3]]
        )
        g_z = compute_stationary_income_distribution(generator, 3)
        self.assertAlmostEqual(g_z.sum(), 1.0, places=HACT_PRECISION)
        self.assertLess(np.max(np.abs(generator.T @ g_z)), 1e-4)


class test_make_income_switching_matrix(unittest.TestCase):
    def setUp(self):
        self.generator = np.array([[-0.5, 0.5], [0.0376, -0.0376]])
        self.I = 3
        self.Aswitch = make_income_switching_matrix(self.generator, self.I)

    def test_shape_and_rows(self):
        self.assertEqual(self.Aswitch.shape, (6, 6))
        np.testing.assert_allclose(
            np.asarray(self.Aswitch.sum(axis=1)).ravel(), 0.0, atol=1e-14
        )

    def test_entries(self):
        dense = self.Aswitch.toarray()
        # From (i=1, j=0) to (i=1, j=1): positions 1 and 1 + 3
        self.assertEqual(dense[1, 4], 0.5)
        self.assertEqual(dense[4, 1], 0.0376)
        # No change of assets when income switches
        self.assertEqual(dense[1, 3], 0.0)
        self.assertEqual(dense[1, 5], 0.0)


class test_IncomeMarkovProcess(unittest.TestCase):
    def setUp(self):
        self.process = IncomeMarkovProcess(
            np.array([[-0.5, 0.5], [0.0376, -0.0376]]),
            np.array([0.2, 1.0]),
            mean_target=3.0,
            n_asset_points=4,
        )

    def test_grid(self):
        self.assertEqual(self.process.zz.shape, (4, 2))
        self.assertAlmostEqual(self.process.mean(), 3.0, places=HACT_PRECISION)
        self.assertAlmostEqual(
            self.process.z[1] / self.process.z[0], np.exp(0.8), places=HACT_PRECISION
        )

    def test_switching_matrix(self):
        self.assertEqual(self.process.switching_matrix().shape, (8, 8))
        self.assertEqual(self.process.switching_matrix(10).shape, (20, 20))

    def test_repr(self):
        self.assertIn("n_states=2", repr(self.process))

    def test_bad_inputs(self):
        with self.assertRaises(ValueError):
            IncomeMarkovProcess(np.ones((2, 3)), np.zeros(2))
        with self.assertRaises(ValueError):
            IncomeMarkovProcess(np.array([[-0.5, 0.4], [0.1, -0.1]]), np.zeros(2))
        with self.assertRaises(ValueError):
            IncomeMarkovProcess(np.array([[0.5, -0.5], [0.1, -0.1]]), np.zeros(2))
        with self.assertRaises(ValueError):
            IncomeMarkovProcess(np.array([[-0.5, 0.5], [0.1, -0.1]]), np.zeros(3))

    def test_constructors(self):
        process = make_income_process(
            np.array([[-0.5, 0.5], [0.0376, -0.0376]]), np.array([0.2, 1.0]), 3.0, 5
        )
        self.assertEqual(process.zz.shape, (5, 2))
        Aswitch = get_Aswitch_from_IncomeProcess(process, 5)
        self.assertEqual(Aswitch.shape, (10, 10))
