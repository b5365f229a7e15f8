"""
Parameter bookkeeping for single-block MCMC.

The model parameters of a block are laid out in one flat array in a fixed
order: log-ratios, per-cycle intensities (I0), per-Faraday baseline means,
then the single detector gain. Signal-noise sigmas follow the model
parameters in the operation-index space but are stored separately.

    index:  [0, nLR) [nLR, nLR+nCyc) [.., +nFar) [gain] | [noise ...]
            log_ratio  intensity      baseline    gain  |  noise

:class:`ParameterLayout` resolves an index to its category with plain
arithmetic on these segment boundaries. :class:`ParameterVector` is an
immutable snapshot of the chain state; every update returns a new one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from tripoli.core.exceptions import ConfigurationError


class ParameterCategory(Enum):
    """Category of a scalar parameter in the operation-index space."""

    LOG_RATIO = "log_ratio"
    INTENSITY = "intensity"
    BASELINE = "baseline"
    GAIN = "gain"
    NOISE = "noise"

    @property
    def operation(self) -> str:
        """Operation label used by the weighted operation chooser."""
        return _OPERATION_LABELS[self]

    @property
    def is_model_parameter(self) -> bool:
        return self is not ParameterCategory.NOISE


_OPERATION_LABELS = {
    ParameterCategory.LOG_RATIO: "changer",
    ParameterCategory.INTENSITY: "changeI",
    ParameterCategory.BASELINE: "changebl",
    ParameterCategory.GAIN: "changedfg",
    ParameterCategory.NOISE: "noise",
}

#: Model-parameter categories in flat-array order
MODEL_CATEGORIES = (
    ParameterCategory.LOG_RATIO,
    ParameterCategory.INTENSITY,
    ParameterCategory.BASELINE,
    ParameterCategory.GAIN,
)


def _frozen_array(values: Any) -> np.ndarray:
    """Copy ``values`` into a 1D float array that cannot be written to."""
    arr = np.array(values, dtype=float).reshape(-1)
    arr.setflags(write=False)
    return arr


def _readonly(values: Any) -> np.ndarray:
    """Read-only view of a data array, without copying."""
    arr = np.asarray(values)
    view = arr.view()
    view.setflags(write=False)
    return view


@dataclass(frozen=True)
class ParameterLayout:
    """
    Per-block parameter counts.

    Attributes
    ----------
    log_ratio_count : int
        Number of log-ratios (isotopes minus the reference)
    cycle_count : int
        Number of per-cycle intensities
    faraday_count : int
        Number of Faraday baselines
    noise_count : int
        Number of signal-noise sigmas (one per detector channel)
    """

    log_ratio_count: int
    cycle_count: int
    faraday_count: int
    noise_count: int
    gain_count: int = field(default=1, init=False)

    def __post_init__(self):
        counts = {
            "log_ratio_count": self.log_ratio_count,
            "cycle_count": self.cycle_count,
            "faraday_count": self.faraday_count,
            "noise_count": self.noise_count,
        }
        for name, value in counts.items():
            if int(value) != value or value < 0:
                raise ConfigurationError(
                    f"{name} must be a non-negative integer", {name: value}
                )
        if self.log_ratio_count < 1:
            raise ConfigurationError("At least one log-ratio is required", counts)

    @classmethod
    def from_vector(cls, state: "ParameterVector") -> "ParameterLayout":
        """Read the counts off an existing parameter vector."""
        return cls(
            log_ratio_count=len(state.log_ratios),
            cycle_count=len(state.intensities),
            faraday_count=len(state.baseline_means),
            noise_count=len(state.signal_noise_sigma),
        )

    @property
    def total_model_parameters(self) -> int:
        return self.log_ratio_count + self.cycle_count + self.faraday_count + self.gain_count

    @property
    def total_variables(self) -> int:
        """Size N of the operation-index space (model parameters + noise sigmas)."""
        return self.total_model_parameters + self.noise_count

    def segment(self, category: ParameterCategory) -> slice:
        """
        Slice of the operation-index space occupied by ``category``.

        Noise indices are offsets past ``total_model_parameters``.
        """
        start = 0
        for cat in MODEL_CATEGORIES:
            stop = start + self._count(cat)
            if cat is category:
                return slice(start, stop)
            start = stop
        return slice(start, start + self.noise_count)

    def _count(self, category: ParameterCategory) -> int:
        return {
            ParameterCategory.LOG_RATIO: self.log_ratio_count,
            ParameterCategory.INTENSITY: self.cycle_count,
            ParameterCategory.BASELINE: self.faraday_count,
            ParameterCategory.GAIN: self.gain_count,
            ParameterCategory.NOISE: self.noise_count,
        }[category]

    def locate(self, index: int) -> Tuple[ParameterCategory, int]:
        """
        Resolve an operation index to (category, position within category).

        Raises
        ------
        ConfigurationError
            If ``index`` is outside [0, total_variables)
        """
        if not 0 <= index < self.total_variables:
            raise ConfigurationError(
                "Operation index out of range",
                {"index": index, "total_variables": self.total_variables},
            )
        for cat in MODEL_CATEGORIES + (ParameterCategory.NOISE,):
            seg = self.segment(cat)
            if seg.start <= index < seg.stop:
                return cat, index - seg.start
        # Unreachable: the segments tile [0, total_variables)
        raise ConfigurationError("Operation index not covered by layout", {"index": index})

    def category_of(self, index: int) -> ParameterCategory:
        return self.locate(index)[0]

    def column_labels(self) -> Tuple[str, ...]:
        """Labels for the model-parameter columns, in flat-array order."""
        labels = [f"log_ratio_{i}" for i in range(self.log_ratio_count)]
        labels += [f"intensity_{i}" for i in range(self.cycle_count)]
        labels += [f"baseline_{i}" for i in range(self.faraday_count)]
        labels.append("gain")
        return tuple(labels)


@dataclass(frozen=True, eq=False)
class ParameterVector:
    """
    Immutable state of one block's Markov chain.

    Parameter arrays are copied on construction and marked read-only. The
    block's data arrays are shared by reference between snapshots and are
    also read-only.

    Attributes
    ----------
    log_ratios : np.ndarray
        Log isotope ratios, one per isotope minus the reference
    intensities : np.ndarray
        Per-cycle ion-beam intensities (I0), all cycles of the block
    baseline_means : np.ndarray
        Per-Faraday baseline means
    baseline_stds : np.ndarray
        Per-Faraday baseline standard deviations (not proposed on)
    detector_gain : float
        Faraday/photomultiplier gain
    signal_noise_sigma : np.ndarray
        Signal noise sigma, one per detector channel
    data : np.ndarray
        Observed signal
    data_without_baseline : np.ndarray
        Baseline-subtracted signal
    data_signal_noise : np.ndarray
        Signal noise array
    faraday_count : int
        Number of Faraday detectors
    isotope_count : int
        Number of isotopes
    detector_to_faraday_index : dict
        Detector ordinal -> Faraday index
    """

    log_ratios: np.ndarray
    intensities: np.ndarray
    baseline_means: np.ndarray
    baseline_stds: np.ndarray
    detector_gain: float
    signal_noise_sigma: np.ndarray
    data: np.ndarray = field(default_factory=lambda: np.empty(0))
    data_without_baseline: np.ndarray = field(default_factory=lambda: np.empty(0))
    data_signal_noise: np.ndarray = field(default_factory=lambda: np.empty(0))
    faraday_count: int = 0
    isotope_count: int = 0
    detector_to_faraday_index: Optional[Dict[int, int]] = None

    def __post_init__(self):
        set_ = object.__setattr__
        set_(self, "log_ratios", _frozen_array(self.log_ratios))
        set_(self, "intensities", _frozen_array(self.intensities))
        set_(self, "baseline_means", _frozen_array(self.baseline_means))
        set_(self, "baseline_stds", _frozen_array(self.baseline_stds))
        set_(self, "signal_noise_sigma", _frozen_array(self.signal_noise_sigma))
        set_(self, "detector_gain", float(self.detector_gain))
        set_(self, "data", _readonly(self.data))
        set_(self, "data_without_baseline", _readonly(self.data_without_baseline))
        set_(self, "data_signal_noise", _readonly(self.data_signal_noise))
        set_(self, "detector_to_faraday_index", dict(self.detector_to_faraday_index or {}))

        if self.faraday_count and self.faraday_count != len(self.baseline_means):
            raise ConfigurationError(
                "faraday_count must match baseline_means",
                {"faraday_count": self.faraday_count, "means": len(self.baseline_means)},
            )
        if len(self.baseline_stds) not in (0, len(self.baseline_means)):
            raise ConfigurationError(
                "baseline_stds must match baseline_means",
                {"means": len(self.baseline_means), "stds": len(self.baseline_stds)},
            )

    @property
    def layout(self) -> ParameterLayout:
        return ParameterLayout.from_vector(self)

    def model_parameters(self) -> np.ndarray:
        """Model parameters as one flat array (log-ratios, I0, baselines, gain)."""
        return np.concatenate(
            [self.log_ratios, self.intensities, self.baseline_means, [self.detector_gain]]
        )

    def with_model_parameters(self, values: np.ndarray) -> "ParameterVector":
        """
        New snapshot with the model parameters replaced by ``values``.

        ``values`` must use the flat layout of :meth:`model_parameters`.
        Noise sigmas and data arrays carry over unchanged.
        """
        layout = self.layout
        values = np.asarray(values, dtype=float).reshape(-1)
        if len(values) != layout.total_model_parameters:
            raise ConfigurationError(
                "Model parameter vector has wrong length",
                {"expected": layout.total_model_parameters, "got": len(values)},
            )
        return self._replace(
            log_ratios=values[layout.segment(ParameterCategory.LOG_RATIO)],
            intensities=values[layout.segment(ParameterCategory.INTENSITY)],
            baseline_means=values[layout.segment(ParameterCategory.BASELINE)],
            detector_gain=values[layout.segment(ParameterCategory.GAIN)][0],
        )

    def with_signal_noise_sigma(self, values: np.ndarray) -> "ParameterVector":
        """New snapshot with the noise sigmas replaced by ``values``."""
        values = np.asarray(values, dtype=float).reshape(-1)
        if len(values) != len(self.signal_noise_sigma):
            raise ConfigurationError(
                "Noise sigma vector has wrong length",
                {"expected": len(self.signal_noise_sigma), "got": len(values)},
            )
        return self._replace(signal_noise_sigma=values)

    def _replace(self, **changes) -> "ParameterVector":
        kwargs = {
            "log_ratios": self.log_ratios,
            "intensities": self.intensities,
            "baseline_means": self.baseline_means,
            "baseline_stds": self.baseline_stds,
            "detector_gain": self.detector_gain,
            "signal_noise_sigma": self.signal_noise_sigma,
            "data": self.data,
            "data_without_baseline": self.data_without_baseline,
            "data_signal_noise": self.data_signal_noise,
            "faraday_count": self.faraday_count,
            "isotope_count": self.isotope_count,
            "detector_to_faraday_index": self.detector_to_faraday_index,
        }
        kwargs.update(changes)
        return ParameterVector(**kwargs)


@dataclass(frozen=True, eq=False)
class EnsembleRecord:
    """
    Accepted-state snapshot stored in the ensemble.

    Noise sigmas are not part of the record; the covariance estimate only
    spans the model parameters.
    """

    log_ratios: np.ndarray
    intensities: np.ndarray
    baseline_means: np.ndarray
    detector_gain: float

    def __post_init__(self):
        object.__setattr__(self, "log_ratios", _frozen_array(self.log_ratios))
        object.__setattr__(self, "intensities", _frozen_array(self.intensities))
        object.__setattr__(self, "baseline_means", _frozen_array(self.baseline_means))
        object.__setattr__(self, "detector_gain", float(self.detector_gain))

    @classmethod
    def from_vector(cls, state: ParameterVector) -> "EnsembleRecord":
        return cls(
            log_ratios=state.log_ratios,
            intensities=state.intensities,
            baseline_means=state.baseline_means,
            detector_gain=state.detector_gain,
        )

    def as_array(self) -> np.ndarray:
        """Flat model-parameter array in layout order."""
        return np.concatenate(
            [self.log_ratios, self.intensities, self.baseline_means, [self.detector_gain]]
        )
