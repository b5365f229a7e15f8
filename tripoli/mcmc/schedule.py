"""
Operation scheduling for single-block MCMC.

The preordered scheduler visits every scalar parameter once per sweep, in
a freshly shuffled order each sweep. :func:`random_operation` is the older
weighted chooser, kept as an alternative to the preordered path.
"""

import math
from typing import Optional

import numpy as np

from tripoli.core.exceptions import ConfigurationError
from tripoli.core.logging_config import get_logger
from tripoli.mcmc.parameters import ParameterCategory, ParameterLayout

logger = get_logger("mcmc.schedule")

# Cumulative cut points for the weighted chooser
_NON_HIERARCHICAL_WEIGHTS = (
    (40, ParameterCategory.INTENSITY),
    (60, ParameterCategory.LOG_RATIO),
    (80, ParameterCategory.BASELINE),
    (100, ParameterCategory.GAIN),
)
_HIERARCHICAL_WEIGHTS = (
    (60, ParameterCategory.INTENSITY),
    (80, ParameterCategory.LOG_RATIO),
    (90, ParameterCategory.BASELINE),
    (100, ParameterCategory.GAIN),
    (120, ParameterCategory.NOISE),
)


def build_schedule(
    layout: ParameterLayout,
    iteration_budget: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Precompute the sequence of operation indices for a block.

    The schedule is a concatenation of independent uniform permutations of
    ``[0, N)`` with ``N = layout.total_variables``. One permutation more than
    ``ceil(iteration_budget / N)`` is generated so the schedule never runs
    short.

    Parameters
    ----------
    layout : ParameterLayout
        Parameter counts of the block
    iteration_budget : int
        Number of chain steps the schedule must cover
    rng : np.random.Generator, optional
        Random source; a fresh unseeded generator if omitted

    Returns
    -------
    np.ndarray
        Integer array of length ``>= iteration_budget``; each contiguous
        N-length segment starting at a multiple of N is a permutation of [0, N)

    Raises
    ------
    ConfigurationError
        If ``iteration_budget`` is not positive
    """
    if iteration_budget <= 0:
        raise ConfigurationError(
            "Iteration budget must be positive", {"iteration_budget": iteration_budget}
        )
    if rng is None:
        rng = np.random.default_rng()

    n_variables = layout.total_variables
    n_permutations = math.ceil(iteration_budget / n_variables) + 1

    schedule = np.concatenate([rng.permutation(n_variables) for _ in range(n_permutations)])

    logger.debug(
        f"Built schedule of {len(schedule)} operations "
        f"({n_permutations} permutations of {n_variables})"
    )
    return schedule


def random_operation(
    hierarchical: bool, rng: Optional[np.random.Generator] = None
) -> ParameterCategory:
    """
    Choose the category of the next operation by fixed weights.

    Non-hierarchical: intensity 40%, log-ratio 20%, baseline 20%, gain 20%.
    Hierarchical: intensity 50%, log-ratio ~16.7%, baseline ~8.3%,
    gain ~8.3%, noise ~16.7%.

    Parameters
    ----------
    hierarchical : bool
        Include noise-sigma moves
    rng : np.random.Generator, optional
        Random source
    """
    if rng is None:
        rng = np.random.default_rng()

    table = _HIERARCHICAL_WEIGHTS if hierarchical else _NON_HIERARCHICAL_WEIGHTS
    choice = int(rng.integers(0, table[-1][0]))
    return next(category for cut, category in table if choice < cut)
