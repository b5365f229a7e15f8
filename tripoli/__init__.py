"""
Tripoli: adaptive MCMC reduction of mass-spectrometer blocks.

Reduces raw measurement blocks to posterior distributions over isotope
log-ratios and instrument nuisance parameters (cycle intensities, Faraday
baselines, detector gain, signal noise) with a per-block adaptive
Metropolis sampler.
"""

__version__ = "0.1.0"
__author__ = "CIRDLES.org"

from tripoli.core.exceptions import (
    TripoliError,
    ConfigurationError,
    ModelInitializationError,
)

__all__ = [
    "TripoliError",
    "ConfigurationError",
    "ModelInitializationError",
]
