"""
Single-block adaptive MCMC driver.

For one block the driver:
1. Assembles the block dataset (baseline, on-peak Faraday and on-peak
   photomultiplier data from the accumulator, plus a linear knot
   interpolation matrix over the on-peak timestamps)
2. Asks the initializer for the starting :class:`ParameterVector`
3. Runs the schedule -> propose -> accept loop for the iteration budget,
   refreshing the adaptive covariance from the accepted ensemble

Blocks are independent. :func:`run_blocks` processes several blocks with
one child random generator each and skips blocks whose initial model
cannot be built.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np

from tripoli.core.abc import AcceptanceStep, BlockDataAccumulator, ModelInitializer
from tripoli.core.exceptions import ConfigurationError, ModelInitializationError
from tripoli.core.logging_config import get_logger
from tripoli.mcmc.covariance import CovarianceEstimate, recompute_mean_covariance
from tripoli.mcmc.ensemble import EnsembleStore
from tripoli.mcmc.parameters import ParameterLayout, ParameterVector
from tripoli.mcmc.proposal import draw_joint_delta, propose
from tripoli.mcmc.result_base import ResultTableMixin
from tripoli.mcmc.schedule import build_schedule
from tripoli.mcmc.settings import MCMCSettings

logger = get_logger("mcmc.driver")


@dataclass(frozen=True)
class BlockRawRecord:
    """
    Raw data of one block as delivered by the file parser.

    Attributes
    ----------
    block_number : int
        Block number within the run
    on_peak_time_stamps : np.ndarray
        Timestamp of every on-peak observation
    on_peak_cycle_starts : np.ndarray
        Index into ``on_peak_time_stamps`` where each cycle starts
    payload : Any
        Parser-specific data consumed by the accumulator
    """

    block_number: int
    on_peak_time_stamps: np.ndarray
    on_peak_cycle_starts: np.ndarray
    payload: Any = None


@dataclass(frozen=True)
class BlockDataSet:
    """Dataset of one block handed to the initializer."""

    block_number: int
    baseline: Any
    on_peak_faraday: Any
    on_peak_photomultiplier: Any
    knot_matrix: np.ndarray


def build_linear_knot_matrix(time_stamps: np.ndarray, cycle_starts: np.ndarray) -> np.ndarray:
    """
    Linear interpolation matrix from cycle knots to on-peak timestamps.

    One knot sits at the start of each cycle and one trails the last cycle.
    A timestamp inside cycle ``c`` gets weight ``1 - f`` on knot ``c`` and
    ``f`` on knot ``c + 1``, where ``f`` is its fractional position between
    the start of cycle ``c`` and the start of cycle ``c + 1``. The last
    cycle runs to the final timestamp, which is pinned to weights (0, 1).

    Parameters
    ----------
    time_stamps : np.ndarray
        On-peak timestamps, shape (n_obs,)
    cycle_starts : np.ndarray
        Strictly increasing start index of each cycle

    Returns
    -------
    np.ndarray
        Matrix of shape (n_cycles + 1, n_obs); columns are ordered from the
        first cycle start

    Raises
    ------
    ConfigurationError
        If the cycle starts are empty, not increasing, out of range, or a
        cycle spans zero time
    """
    time_stamps = np.asarray(time_stamps, dtype=float).reshape(-1)
    cycle_starts = np.asarray(cycle_starts, dtype=int).reshape(-1)
    n_obs = len(time_stamps)
    n_cycles = len(cycle_starts)

    if n_cycles == 0:
        raise ConfigurationError("At least one cycle is required")
    if np.any(np.diff(cycle_starts) <= 0):
        raise ConfigurationError("Cycle starts must be strictly increasing")
    if cycle_starts[0] < 0 or cycle_starts[-1] >= n_obs - 1:
        raise ConfigurationError(
            "Cycle starts out of range", {"n_obs": n_obs, "last_start": int(cycle_starts[-1])}
        )

    first = cycle_starts[0]
    knots = np.zeros((n_cycles + 1, n_obs))
    for c in range(n_cycles):
        start = cycle_starts[c]
        last_cycle = c == n_cycles - 1
        stop = n_obs - 1 if last_cycle else cycle_starts[c + 1]

        span = time_stamps[stop] - time_stamps[start]
        if span <= 0:
            raise ConfigurationError("Cycle spans zero time", {"cycle": c})

        fraction = (time_stamps[start:stop] - time_stamps[start]) / span
        columns = np.arange(start, stop) - first
        knots[c, columns] = 1.0 - fraction
        knots[c + 1, columns] = fraction

        if last_cycle:
            knots[c, stop - first] = 0.0
            knots[c + 1, stop - first] = 1.0

    return knots


@dataclass
class BlockRunResult(ResultTableMixin):
    """
    Outcome of one block's inversion.

    Attributes
    ----------
    block_number : int
        Block number
    chain : tuple of ParameterVector
        State after every iteration, initial state first
    ensemble : EnsembleStore
        Accepted states in acceptance order
    covariance : CovarianceEstimate, optional
        Last adaptive covariance, None if never computed
    accepted_count : int
        Number of accepted candidates
    iterations : int
        Number of iterations run
    """

    block_number: int
    chain: Tuple[ParameterVector, ...]
    ensemble: EnsembleStore
    covariance: Optional[CovarianceEstimate]
    accepted_count: int
    iterations: int

    @property
    def acceptance_rate(self) -> float:
        return self.accepted_count / self.iterations if self.iterations else 0.0

    @property
    def final_state(self) -> ParameterVector:
        return self.chain[-1]

    def summary_table(self) -> str:
        lines = [self._format_header(f"Block {self.block_number} MCMC Results")]
        lines.append(f"Iterations: {self.iterations}")
        lines.append(f"Accepted: {self.accepted_count} ({self.acceptance_rate:.1%})")
        lines.append(f"Ensemble size: {len(self.ensemble)}")
        lines.append(
            "Adaptive covariance: "
            + (f"{self.covariance.sample_count} records" if self.covariance else "not used")
        )
        lines.append(self._format_separator())
        final = self.final_state
        for i, value in enumerate(final.log_ratios):
            lines.append(f"{f'log_ratio_{i}':<20} {value:>12.6g}")
        lines.append(f"{'gain':<20} {final.detector_gain:>12.6g}")
        lines.append(self._format_footer())
        return "\n".join(lines)


class BlockDriver:
    """
    Runs the adaptive MCMC inversion of one block at a time.

    Parameters
    ----------
    accumulator : BlockDataAccumulator
        Produces baseline and on-peak data records for a block
    initializer : ModelInitializer
        Builds the initial ParameterVector from the block dataset
    acceptance : AcceptanceStep
        Likelihood evaluation and accept/reject decision
    settings : MCMCSettings
        Iteration budget, burn-in, covariance interval and proposal config

    Example
    -------
    >>> driver = BlockDriver(accumulator, initializer, acceptance, settings)
    >>> result = driver.run_block(block, analysis_method)
    >>> print(result.summary_table())
    """

    def __init__(
        self,
        accumulator: BlockDataAccumulator,
        initializer: ModelInitializer,
        acceptance: AcceptanceStep,
        settings: MCMCSettings,
    ):
        self.accumulator = accumulator
        self.initializer = initializer
        self.acceptance = acceptance
        self.settings = settings

    def prepare_dataset(self, block: BlockRawRecord, analysis_method: Any) -> BlockDataSet:
        """Assemble the dataset of ``block``."""
        knot_matrix = build_linear_knot_matrix(
            block.on_peak_time_stamps, block.on_peak_cycle_starts
        )
        return BlockDataSet(
            block_number=block.block_number,
            baseline=self.accumulator.accumulate_baseline(block, analysis_method),
            on_peak_faraday=self.accumulator.accumulate_on_peak(
                block, analysis_method, faraday=True
            ),
            on_peak_photomultiplier=self.accumulator.accumulate_on_peak(
                block, analysis_method, faraday=False
            ),
            knot_matrix=knot_matrix,
        )

    def initialize(self, dataset: BlockDataSet) -> ParameterVector:
        """
        Obtain the initial state, mapping numerical failures to the domain error.

        Raises
        ------
        ModelInitializationError
            If the initializer fails or returns nothing
        """
        context = {"block": dataset.block_number}
        try:
            initial = self.initializer(dataset)
        except np.linalg.LinAlgError as e:
            raise ModelInitializationError(
                f"Initial model construction failed: {e}", context
            ) from e
        except ModelInitializationError as e:
            e.error_context.update(context)
            raise
        if initial is None:
            raise ModelInitializationError("Initializer returned no model", context)
        return initial

    def run_block(
        self,
        block: BlockRawRecord,
        analysis_method: Any = None,
        rng: Optional[np.random.Generator] = None,
    ) -> BlockRunResult:
        """
        Run the full inversion for one block.

        Parameters
        ----------
        block : BlockRawRecord
            Raw block data
        analysis_method : any
            Analysis method forwarded to the accumulator
        rng : np.random.Generator, optional
            Random source for schedule and proposals; seeded from
            ``settings.seed`` if omitted

        Returns
        -------
        BlockRunResult
            Chain, ensemble and final covariance

        Raises
        ------
        ModelInitializationError
            If the initial model cannot be built; the block is not retried
        """
        if rng is None:
            rng = np.random.default_rng(self.settings.seed)

        logger.info(f"Block {block.block_number}: preparing dataset")
        dataset = self.prepare_dataset(block, analysis_method)
        current = self.initialize(dataset)
        return self.run_chain(current, block.block_number, rng)

    def run_chain(
        self,
        initial: ParameterVector,
        block_number: int,
        rng: np.random.Generator,
    ) -> BlockRunResult:
        """Drive the MCMC loop from ``initial`` for the configured budget."""
        settings = self.settings
        layout = ParameterLayout.from_vector(initial)
        schedule = build_schedule(layout, settings.max_iterations, rng)

        logger.info(
            f"Block {block_number}: {settings.max_iterations} iterations over "
            f"{layout.total_variables} variables "
            f"({layout.total_model_parameters} model parameters)"
        )

        current = initial
        chain = [initial]
        ensemble = EnsembleStore()
        covariance: Optional[CovarianceEstimate] = None
        accepted = 0

        for step in range(settings.max_iterations):
            index = int(schedule[step])
            use_adaptive = (
                settings.adaptive
                and covariance is not None
                and self._adaptive_ready(len(ensemble), layout)
            )
            joint = (
                settings.vary_all_at_once
                and use_adaptive
                and bool(np.all(covariance.standard_deviations > 0))
            )
            delta = None
            if joint and index < layout.total_model_parameters:
                delta = draw_joint_delta(covariance, rng)

            candidate = propose(
                current,
                index,
                settings.proposal,
                covariance=covariance,
                use_adaptive=use_adaptive,
                vary_all_at_once=delta is not None,
                joint_delta=delta,
                rng=rng,
            )

            if self.acceptance(current, candidate, index):
                current = candidate
                accepted += 1
                ensemble.append_state(current)
                if settings.adaptive and self._covariance_due(len(ensemble)):
                    covariance = recompute_mean_covariance(ensemble, settings.burn_in)
                    logger.debug(
                        f"Block {block_number}: covariance refreshed at step {step} "
                        f"from {covariance.sample_count} records"
                    )

            chain.append(current)

        result = BlockRunResult(
            block_number=block_number,
            chain=tuple(chain),
            ensemble=ensemble,
            covariance=covariance,
            accepted_count=accepted,
            iterations=settings.max_iterations,
        )
        logger.info(
            f"Block {block_number}: accepted {accepted}/{settings.max_iterations} "
            f"({result.acceptance_rate:.1%})"
        )
        return result

    def _covariance_due(self, ensemble_size: int) -> bool:
        past_burn_in = ensemble_size - self.settings.burn_in
        return past_burn_in >= 2 and past_burn_in % self.settings.covariance_interval == 0

    def _adaptive_ready(self, ensemble_size: int, layout: ParameterLayout) -> bool:
        # at least one full sweep of accepted records past burn-in
        return ensemble_size - self.settings.burn_in >= layout.total_variables


@dataclass
class MultiBlockResult:
    """Results of several blocks; failed blocks are listed in ``skipped``."""

    results: Dict[int, BlockRunResult] = field(default_factory=dict)
    skipped: Dict[int, str] = field(default_factory=dict)

    @property
    def completed_blocks(self) -> Tuple[int, ...]:
        return tuple(sorted(self.results))


def run_blocks(
    driver: BlockDriver,
    blocks: Iterable[BlockRawRecord],
    analysis_method: Any = None,
    seed: Optional[int] = None,
) -> MultiBlockResult:
    """
    Run ``driver`` over several blocks, skipping blocks that fail to initialize.

    Each block gets its own child generator spawned from one seed sequence,
    so runs are reproducible for a given ``seed`` and blocks share no state.

    Parameters
    ----------
    driver : BlockDriver
        Configured driver
    blocks : iterable of BlockRawRecord
        Blocks to process
    analysis_method : any
        Forwarded to the accumulator
    seed : int, optional
        Root seed; defaults to ``driver.settings.seed``
    """
    blocks = list(blocks)
    root = np.random.SeedSequence(driver.settings.seed if seed is None else seed)
    generators = [np.random.default_rng(s) for s in root.spawn(len(blocks))]

    outcome = MultiBlockResult()
    for block, rng in zip(blocks, generators):
        try:
            outcome.results[block.block_number] = driver.run_block(block, analysis_method, rng)
        except ModelInitializationError as e:
            logger.warning(f"Skipping block {block.block_number}: {e}")
            outcome.skipped[block.block_number] = str(e)

    logger.info(
        f"Processed {len(outcome.results)} blocks, skipped {len(outcome.skipped)}"
    )
    return outcome
