"""
Pytest configuration and shared fixtures for Tripoli tests.

This module provides:
- A 22-variable block layout (3 log-ratios, 10 cycles, 4 Faradays, 4 noise sigmas)
- Factory fixtures for parameter vectors and ensembles
- Proposal and MCMC configuration fixtures
- Deterministic random sources built on MagicMock
"""

import os
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest
import yaml

from tripoli.mcmc.parameters import EnsembleRecord, ParameterLayout, ParameterVector
from tripoli.mcmc.proposal import ProposalConfig


@pytest.fixture
def layout():
    """Layout with N = 22 and 18 model parameters."""
    return ParameterLayout(log_ratio_count=3, cycle_count=10, faraday_count=4, noise_count=4)


@pytest.fixture
def make_state():
    """Factory for parameter vectors with the 22-variable layout by default."""

    def _make(
        log_ratios=(0.5, -0.2, 0.1),
        intensities=None,
        baseline_means=(0.01, 0.02, -0.01, 0.0),
        detector_gain=0.9,
        signal_noise_sigma=(1.0, 1.0, 1.0, 1.0),
    ):
        if intensities is None:
            intensities = np.linspace(1.0e5, 1.1e5, 10)
        n_far = len(baseline_means)
        return ParameterVector(
            log_ratios=log_ratios,
            intensities=intensities,
            baseline_means=baseline_means,
            baseline_stds=np.full(n_far, 0.005),
            detector_gain=detector_gain,
            signal_noise_sigma=signal_noise_sigma,
            data=np.arange(40.0),
            data_without_baseline=np.arange(40.0) - 0.01,
            data_signal_noise=np.ones(40),
            faraday_count=n_far,
            isotope_count=len(log_ratios) + 1,
            detector_to_faraday_index={i + 1: i for i in range(n_far)},
        )

    return _make


@pytest.fixture
def state(make_state):
    return make_state()


@pytest.fixture
def sample_mcmc_section():
    return {
        "max_iterations": 200,
        "burn_in": 5,
        "covariance_interval": 10,
        "adaptive": True,
        "seed": 1234,
        "psig": {
            "log_ratio": 0.1,
            "intensity": 100.0,
            "baseline": 0.001,
            "gain": 0.01,
            "noise": 0.05,
        },
        "prior": {
            "log_ratio": [-1.0, 1.0],
            "intensity": [0.0, 1.0e7],
            "baseline": [-1.0, 1.0],
            "gain": [0.5, 1.5],
            "noise": [0.0, 10.0],
        },
    }


@pytest.fixture
def sample_config_dict(sample_mcmc_section):
    return {"mcmc": sample_mcmc_section}


@pytest.fixture
def proposal_config(sample_mcmc_section):
    return ProposalConfig.from_dict(sample_mcmc_section)


@pytest.fixture
def temp_config_file(sample_config_dict):
    """Temporary YAML configuration file."""
    config_fd, config_path = tempfile.mkstemp(suffix=".yaml")
    os.close(config_fd)

    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)

    yield config_path

    Path(config_path).unlink(missing_ok=True)


@pytest.fixture
def fixed_normal_rng():
    """Factory for a generator whose Gaussian draws are a fixed value."""

    def _make(value):
        rng = MagicMock(spec=np.random.Generator)
        rng.standard_normal.return_value = value
        return rng

    return _make


@pytest.fixture
def make_ensemble(state):
    """Factory for ensembles of records scattered around ``state``."""

    def _make(n_records, seed=0, scale=0.01):
        rng = np.random.default_rng(seed)
        base = state.model_parameters()
        records = []
        for _ in range(n_records):
            values = base + scale * rng.standard_normal(len(base))
            records.append(
                EnsembleRecord.from_vector(state.with_model_parameters(values))
            )
        return records

    return _make
