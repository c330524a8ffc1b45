from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from combo_plot.series import RegressionType


POLYNOMIAL_DEGREE = 2


@dataclass(frozen=True)
class RegressionFit:
    kind: RegressionType
    coefficients: tuple[float, ...]
    r_squared: float

    def predict(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if self.kind == "exponential":
            a, b = self.coefficients
            return a * np.exp(b * x)
        return np.polyval(np.asarray(self.coefficients, dtype=np.float64), x)

    def equation(self) -> str:
        if self.kind == "exponential":
            a, b = self.coefficients
            return f"y = {a:.4g} * exp({b:.4g}x)"
        if self.kind == "polynomial":
            a, b, c = self.coefficients
            return f"y = {a:.4g}x^2 + {b:.4g}x + {c:.4g}"
        slope, intercept = self.coefficients
        return f"y = {slope:.4g}x + {intercept:.4g}"


def fit_regression(x: np.ndarray, y: np.ndarray, kind: RegressionType = "linear") -> RegressionFit | None:
    """Least-squares fit over finite points; None when there are too few points for ``kind``."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    mask = np.isfinite(x) & np.isfinite(y)
    if kind == "exponential":
        mask &= y > 0
    vx = x[mask]
    vy = y[mask]

    needed = POLYNOMIAL_DEGREE + 1 if kind == "polynomial" else 2
    if vx.size < needed or np.unique(vx).size < needed:
        return None

    if kind == "exponential":
        b, log_a = np.polyfit(vx, np.log(vy), 1)
        coefficients = (float(np.exp(log_a)), float(b))
    elif kind == "polynomial":
        coefficients = tuple(float(c) for c in np.polyfit(vx, vy, POLYNOMIAL_DEGREE))
    else:
        coefficients = tuple(float(c) for c in np.polyfit(vx, vy, 1))

    fit = RegressionFit(kind=kind, coefficients=coefficients, r_squared=0.0)
    return RegressionFit(kind=kind, coefficients=coefficients, r_squared=_r_squared(vy, fit.predict(vx)))


def _r_squared(observed: np.ndarray, predicted: np.ndarray) -> float:
    ss_res = float(np.sum((observed - predicted) ** 2))
    ss_tot = float(np.sum((observed - np.mean(observed)) ** 2))
    if ss_tot == 0.0:
        return 1.0 if np.isclose(ss_res, 0.0) else 0.0
    return 1.0 - ss_res / ss_tot
