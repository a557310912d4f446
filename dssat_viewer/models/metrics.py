"""
Goodness-of-fit metrics for simulated vs observed values
"""
import logging
from typing import Any, Dict, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class MetricsCalculator:
    """RMSE, Willmott's d-stat and R-squared over paired numeric sequences.

    Invalid input (empty, mismatched or degenerate) gives 0.0 with a
    logged warning rather than an exception.
    """

    @staticmethod
    def filter_pairs(first: Sequence[float], second: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
        first = np.asarray(first, dtype=float)
        second = np.asarray(second, dtype=float)
        mask = ~(np.isnan(first) | np.isnan(second))
        return first[mask], second[mask]

    @staticmethod
    def _check_inputs(first: Sequence[float], second: Sequence[float], name: str) -> bool:
        if len(first) == 0 or len(second) == 0:
            logger.warning(f"Empty input arrays for {name} calculation")
            return False
        if len(first) != len(second):
            logger.warning(f"Mismatched array sizes for {name} calculation")
            return False
        return True

    @staticmethod
    def rmse(observed: Sequence[float], simulated: Sequence[float]) -> float:
        if not MetricsCalculator._check_inputs(observed, simulated, "RMSE"):
            return 0.0
        obs, sim = MetricsCalculator.filter_pairs(observed, simulated)
        if obs.size == 0:
            logger.warning("No valid data pairs for RMSE calculation")
            return 0.0
        return float(np.sqrt(np.mean((obs - sim) ** 2)))

    @staticmethod
    def d_stat(measured: Sequence[float], simulated: Sequence[float]) -> float:
        """Willmott's index of agreement."""
        if not MetricsCalculator._check_inputs(measured, simulated, "d-stat"):
            return 0.0
        meas, sim = MetricsCalculator.filter_pairs(measured, simulated)
        if meas.size == 0:
            logger.warning("No valid data pairs for d-stat calculation")
            return 0.0

        meas_mean = np.mean(meas)
        numerator = np.sum((meas - sim) ** 2)
        denominator = np.sum((np.abs(meas - meas_mean) + np.abs(sim - meas_mean)) ** 2)
        if denominator == 0:
            return 0.0
        return float(1.0 - numerator / denominator)

    @staticmethod
    def r_squared(x: Sequence[float], y: Sequence[float]) -> float:
        """Squared Pearson correlation."""
        if not MetricsCalculator._check_inputs(x, y, "R-squared"):
            return 0.0
        x_arr, y_arr = MetricsCalculator.filter_pairs(x, y)
        if x_arr.size < 2:
            logger.warning("Insufficient valid data pairs for R-squared calculation")
            return 0.0

        x_diff = x_arr - np.mean(x_arr)
        y_diff = y_arr - np.mean(y_arr)
        denominator = np.sqrt(np.sum(x_diff ** 2) * np.sum(y_diff ** 2))
        if denominator == 0:
            return 0.0
        correlation = np.sum(x_diff * y_diff) / denominator
        return float(correlation ** 2)

    @staticmethod
    def calculate_metrics(simulated: Sequence[float], observed: Sequence[float],
                          treatment: Any = None) -> Dict[str, Any]:
        """Summary metrics for one treatment; empty dict when nothing pairs up."""
        length = min(len(simulated), len(observed))
        obs, sim = MetricsCalculator.filter_pairs(observed[:length], simulated[:length])
        if obs.size == 0:
            logger.warning("No valid pairs after filtering for metrics calculation")
            return {}

        mean_obs = float(np.mean(obs))
        rmse_value = MetricsCalculator.rmse(obs, sim)
        return {
            "TRT": treatment,
            "n": int(obs.size),
            "RMSE": rmse_value,
            "NRMSE": (rmse_value / mean_obs) * 100.0 if mean_obs != 0 else 0.0,
            "Willmott's d-stat": MetricsCalculator.d_stat(obs, sim),
        }
