"""
Example: adaptive MCMC inversion of synthetic blocks.

The collaborators that a real reduction gets from the instrument-file
parser and the forward model are stubbed here with a toy Gaussian
likelihood on the log-ratios and intensities, so the example shows the
driver wiring only.
"""

from pathlib import Path

import numpy as np

from tripoli.core.logging_config import setup_logging
from tripoli.mcmc import (
    BlockDriver,
    BlockRawRecord,
    MCMCSettings,
    ParameterVector,
    run_blocks,
)

setup_logging(level="INFO")

TRUE_LOG_RATIOS = np.array([-1.2, 0.35, 2.1])
CYCLES = 10
FARADAYS = 4


class SyntheticAccumulator:
    """Returns the block payload as the on-peak data."""

    def accumulate_baseline(self, block, analysis_method):
        return np.zeros(FARADAYS)

    def accumulate_on_peak(self, block, analysis_method, faraday):
        return block.payload if faraday else None


def initialize(dataset):
    """Start every parameter away from the truth."""
    return ParameterVector(
        log_ratios=np.zeros(len(TRUE_LOG_RATIOS)),
        intensities=np.full(CYCLES, 1.0e6),
        baseline_means=np.zeros(FARADAYS),
        baseline_stds=np.full(FARADAYS, 1.0e-4),
        detector_gain=0.9,
        signal_noise_sigma=np.ones(FARADAYS),
        data=dataset.on_peak_faraday,
        faraday_count=FARADAYS,
        isotope_count=len(TRUE_LOG_RATIOS) + 1,
    )


class ToyMetropolis:
    """Metropolis step on an independent Gaussian likelihood."""

    def __init__(self, seed=0, sigma=0.05):
        self.rng = np.random.default_rng(seed)
        self.sigma = sigma

    def log_likelihood(self, state):
        residual = (state.log_ratios - TRUE_LOG_RATIOS) / self.sigma
        return -0.5 * float(residual @ residual)

    def __call__(self, current, candidate, operation_index):
        log_alpha = self.log_likelihood(candidate) - self.log_likelihood(current)
        return np.log(self.rng.uniform()) < log_alpha


def main():
    settings = MCMCSettings.from_file(Path(__file__).parent / "mcmc_settings.yaml")
    driver = BlockDriver(SyntheticAccumulator(), initialize, ToyMetropolis(), settings)

    blocks = [
        BlockRawRecord(
            block_number=n,
            on_peak_time_stamps=np.linspace(0.0, 100.0, 200),
            on_peak_cycle_starts=np.arange(0, 200, 20),
            payload=np.random.default_rng(n).normal(size=200),
        )
        for n in (1, 2, 3)
    ]

    outcome = run_blocks(driver, blocks)

    for number in outcome.completed_blocks:
        result = outcome.results[number]
        print(result.summary_table())
        layout = result.final_state.layout
        if len(result.ensemble) > settings.burn_in + 1:
            print(result.ensemble.summarize(layout, settings.burn_in).summary_table())


if __name__ == "__main__":
    main()
