from __future__ import annotations

import unittest

import numpy as np

from combo_plot.regression import fit_regression


class RegressionTests(unittest.TestCase):
    def test_linear_fit(self) -> None:
        x = np.array([0.0, 1.0, 2.0, 3.0])
        fit = fit_regression(x, 3.0 * x - 1.0)
        self.assertIsNotNone(fit)
        slope, intercept = fit.coefficients
        self.assertAlmostEqual(slope, 3.0)
        self.assertAlmostEqual(intercept, -1.0)
        self.assertAlmostEqual(fit.r_squared, 1.0)
        self.assertTrue(np.allclose(fit.predict(np.array([4.0])), [11.0]))
        self.assertEqual(fit.equation(), "y = 3x + -1")

    def test_polynomial_fit(self) -> None:
        x = np.array([-2.0, -1.0, 0.0, 1.0, 2.0])
        fit = fit_regression(x, x**2 + 1.0, "polynomial")
        self.assertTrue(np.allclose(fit.coefficients, (1.0, 0.0, 1.0), atol=1e-9))
        self.assertAlmostEqual(fit.r_squared, 1.0)

    def test_exponential_fit_ignores_non_positive_values(self) -> None:
        x = np.array([0.0, 1.0, 2.0, 3.0, 4.0])
        y = 2.0 * np.exp(0.5 * x)
        y[4] = -1.0
        fit = fit_regression(x, y, "exponential")
        a, b = fit.coefficients
        self.assertAlmostEqual(a, 2.0)
        self.assertAlmostEqual(b, 0.5)

    def test_too_few_points(self) -> None:
        self.assertIsNone(fit_regression(np.array([1.0]), np.array([2.0])))
        self.assertIsNone(fit_regression(np.array([1.0, 1.0]), np.array([2.0, 3.0])))
        self.assertIsNone(fit_regression(np.array([1.0, 2.0]), np.array([2.0, 3.0]), "polynomial"))
        self.assertIsNone(fit_regression(np.array([1.0, np.nan]), np.array([2.0, 3.0])))

    def test_flat_data_has_perfect_fit(self) -> None:
        fit = fit_regression(np.array([1.0, 2.0, 3.0]), np.array([4.0, 4.0, 4.0]))
        self.assertAlmostEqual(fit.r_squared, 1.0)


if __name__ == "__main__":
    unittest.main()
