"""
Mean and covariance of the accepted-state ensemble.

The estimate is recomputed from scratch over ``history[burn_in:]`` each
time it is requested and replaces the previous estimate wholesale.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from scipy import linalg

from tripoli.core.exceptions import ConfigurationError
from tripoli.core.logging_config import get_logger
from tripoli.mcmc.parameters import EnsembleRecord

logger = get_logger("mcmc.covariance")


@dataclass(frozen=True, eq=False)
class CovarianceEstimate:
    """
    Sample mean and covariance of the model parameters.

    Attributes
    ----------
    mean : np.ndarray
        Mean per model parameter, shape (d,)
    covariance : np.ndarray
        Sample covariance (N-1 denominator), shape (d, d)
    sample_count : int
        Number of ensemble records used
    """

    mean: np.ndarray
    covariance: np.ndarray
    sample_count: int

    def __post_init__(self):
        mean = np.array(self.mean, dtype=float)
        cov = np.array(self.covariance, dtype=float)
        mean.setflags(write=False)
        cov.setflags(write=False)
        object.__setattr__(self, "mean", mean)
        object.__setattr__(self, "covariance", cov)

    @property
    def dimension(self) -> int:
        return len(self.mean)

    @property
    def standard_deviations(self) -> np.ndarray:
        return np.sqrt(np.diag(self.covariance))


def stack_records(records: Sequence[EnsembleRecord]) -> np.ndarray:
    """
    Stack ensemble records into an (observations x parameters) array.

    Raises
    ------
    ConfigurationError
        If the records do not all have the same number of model parameters
    """
    rows = [record.as_array() for record in records]
    widths = {len(row) for row in rows}
    if len(widths) > 1:
        raise ConfigurationError(
            "Ensemble records have inconsistent dimensions", {"widths": sorted(widths)}
        )
    return np.vstack(rows)


def recompute_mean_covariance(
    history: Sequence[EnsembleRecord], burn_in: int = 0
) -> CovarianceEstimate:
    """
    Recompute mean and covariance over the ensemble after burn-in.

    Parameters
    ----------
    history : sequence of EnsembleRecord
        All accepted records so far, in acceptance order
    burn_in : int
        Index of the first record to include

    Returns
    -------
    CovarianceEstimate
        Mean and sample covariance of ``history[burn_in:]``. The covariance
        is exactly symmetric.

    Raises
    ------
    ConfigurationError
        If ``burn_in`` is negative or fewer than 2 records remain
    """
    if burn_in < 0:
        raise ConfigurationError("burn_in must be >= 0", {"burn_in": burn_in})

    included = list(history[burn_in:])
    if len(included) < 2:
        raise ConfigurationError(
            "At least 2 ensemble records are required after burn-in",
            {"history": len(history), "burn_in": burn_in},
        )

    samples = stack_records(included)
    mean = samples.mean(axis=0)
    cov = np.atleast_2d(np.cov(samples, rowvar=False, ddof=1))
    cov = (cov + cov.T) / 2.0

    logger.debug(
        f"Recomputed covariance from {len(included)} records "
        f"(burn-in {burn_in}, dimension {samples.shape[1]})"
    )
    return CovarianceEstimate(mean=mean, covariance=cov, sample_count=len(included))


def is_positive_semidefinite(covariance: np.ndarray, tol: float = 1e-10) -> bool:
    """
    Check that a symmetric matrix has no eigenvalue below ``-tol`` (scaled).

    The tolerance is relative to the largest absolute eigenvalue.
    """
    matrix = np.asarray(covariance, dtype=float)
    eigenvalues = linalg.eigvalsh(matrix)
    scale = max(1.0, float(np.max(np.abs(eigenvalues)))) if eigenvalues.size else 1.0
    return bool(np.all(eigenvalues >= -tol * scale))
