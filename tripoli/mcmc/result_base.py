"""
Shared result formatting utilities for Tripoli MCMC results.

This module provides mixins for common result formatting patterns used by
:class:`~tripoli.mcmc.ensemble.EnsembleSummary` and
:class:`~tripoli.mcmc.driver.BlockRunResult`.
"""

from typing import Optional, Tuple
import numpy as np


# Table formatting constants
TABLE_WIDTH = 70
TABLE_SEP = "-" * TABLE_WIDTH
TABLE_HEADER = "=" * TABLE_WIDTH


class ResultTableMixin:
    """Mixin providing shared table formatting for result classes."""

    @staticmethod
    def _format_header(title: str) -> str:
        """Format a table header with title."""
        return f"{TABLE_HEADER}\n{title}\n{TABLE_HEADER}"

    @staticmethod
    def _format_separator() -> str:
        return TABLE_SEP

    @staticmethod
    def _format_footer() -> str:
        return TABLE_HEADER

    @staticmethod
    def _format_param_row(
        label: str,
        mean: float,
        std: float,
        ci: Optional[Tuple[float, float]] = None,
        fmt: str = ".6g",
    ) -> str:
        """
        Format a single parameter row.

        Parameters
        ----------
        label : str
            Parameter label (e.g., "log_ratio_0")
        mean : float
            Mean value
        std : float
            Standard deviation
        ci : tuple, optional
            (lower, upper) credible interval; omitted from the row if None
        fmt : str
            Format string for values
        """
        if ci is not None:
            ci_str = f"[{ci[0]:{fmt}}, {ci[1]:{fmt}}]"
            return f"{label:<20} {mean:>12{fmt}} {std:>12{fmt}} {ci_str:>22}"
        return f"{label:<20} {mean:>12{fmt}} {std:>12{fmt}}"


class StatisticsMixin:
    """Mixin providing shared statistical calculations."""

    @staticmethod
    def compute_ci(samples: np.ndarray, level: float = 0.95) -> Tuple[float, float]:
        """
        Compute a central interval from samples.

        Parameters
        ----------
        samples : array
            Sample array
        level : float
            Interval mass (default: 0.95)

        Returns
        -------
        tuple
            (lower, upper) bounds, NaN if fewer than 2 samples
        """
        if len(samples) < 2:
            return (float("nan"), float("nan"))

        alpha = (1 - level) / 2
        lower = float(np.percentile(samples, alpha * 100))
        upper = float(np.percentile(samples, (1 - alpha) * 100))
        return (lower, upper)
