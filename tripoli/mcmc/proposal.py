"""
Proposal generation for single-block MCMC.

A proposal perturbs one scalar of the current :class:`ParameterVector`
(or, in joint mode, all model parameters at once) with a zero-mean Gaussian
step. Candidates that leave their category's prior box are reverted to the
pre-proposal value before the state is handed to the likelihood step.

Step sizes come from :class:`ProposalConfig` until an adaptive covariance
is available; after that the step for model parameter ``i`` has standard
deviation ``sqrt(cov[i, i])``. Noise sigmas always use the fixed step.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from tripoli.core.exceptions import ConfigurationError
from tripoli.mcmc.covariance import CovarianceEstimate
from tripoli.mcmc.parameters import (
    MODEL_CATEGORIES,
    ParameterCategory,
    ParameterLayout,
    ParameterVector,
)

CovarianceLike = Union[CovarianceEstimate, np.ndarray]

#: Optimal random-walk scaling factor for a d-dimensional Gaussian target
JOINT_SCALE_NUMERATOR = 2.38**2


@dataclass(frozen=True)
class ProposalConfig:
    """
    Step sizes ("psig") and prior ranges per parameter category.

    Attributes
    ----------
    step_sizes : dict
        ParameterCategory -> Gaussian step standard deviation
    bounds : dict
        ParameterCategory -> (min, max) prior range, inclusive
    """

    step_sizes: Mapping[ParameterCategory, float]
    bounds: Mapping[ParameterCategory, Tuple[float, float]]

    def __post_init__(self):
        steps = {}
        bounds = {}
        for category in ParameterCategory:
            if category not in self.step_sizes:
                raise ConfigurationError(f"Missing step size for {category.value}")
            if category not in self.bounds:
                raise ConfigurationError(f"Missing prior range for {category.value}")

            step = float(self.step_sizes[category])
            low, high = (float(v) for v in self.bounds[category])
            if step < 0:
                raise ConfigurationError(
                    f"Step size for {category.value} must be >= 0", {"step": step}
                )
            if low > high:
                raise ConfigurationError(
                    f"Prior range for {category.value} has min > max",
                    {"min": low, "max": high},
                )
            steps[category] = step
            bounds[category] = (low, high)

        object.__setattr__(self, "step_sizes", steps)
        object.__setattr__(self, "bounds", bounds)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ProposalConfig":
        """
        Build from a mapping with ``psig`` and ``prior`` sections.

        Both sections are keyed by category name (``log_ratio``,
        ``intensity``, ``baseline``, ``gain``, ``noise``); prior values are
        ``[min, max]`` pairs.
        """
        psig = config.get("psig", {}) or {}
        prior = config.get("prior", {}) or {}
        try:
            return cls(
                step_sizes={ParameterCategory(k): v for k, v in psig.items()},
                bounds={ParameterCategory(k): tuple(v) for k, v in prior.items()},
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid proposal configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "psig": {c.value: s for c, s in self.step_sizes.items()},
            "prior": {c.value: list(b) for c, b in self.bounds.items()},
        }

    def step_size(self, category: ParameterCategory) -> float:
        return self.step_sizes[category]

    def bounds_for(self, category: ParameterCategory) -> Tuple[float, float]:
        return self.bounds[category]

    def model_arrays(self, layout: ParameterLayout) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Per-scalar step sizes, minima and maxima over the model parameters.

        Returns
        -------
        tuple
            (steps, mins, maxs), each of length ``layout.total_model_parameters``
        """
        n = layout.total_model_parameters
        steps = np.empty(n)
        mins = np.empty(n)
        maxs = np.empty(n)
        for category in MODEL_CATEGORIES:
            seg = layout.segment(category)
            steps[seg] = self.step_sizes[category]
            mins[seg], maxs[seg] = self.bounds[category]
        return steps, mins, maxs


def propose(
    state: ParameterVector,
    index: int,
    config: ProposalConfig,
    covariance: Optional[CovarianceLike] = None,
    use_adaptive: bool = False,
    vary_all_at_once: bool = False,
    joint_delta: Optional[np.ndarray] = None,
    rng: Optional[np.random.Generator] = None,
) -> ParameterVector:
    """
    Produce a candidate state by perturbing the parameter at ``index``.

    Parameters
    ----------
    state : ParameterVector
        Current chain state
    index : int
        Scheduled operation index in [0, N). Indices below
        ``total_model_parameters`` address a model parameter, the rest a
        noise sigma at ``index - total_model_parameters``.
    config : ProposalConfig
        Step sizes and prior ranges
    covariance : CovarianceEstimate or np.ndarray, optional
        Adaptive covariance over the model parameters
    use_adaptive : bool
        Scale model-parameter steps by ``sqrt(cov[index, index])``; a zero
        variance falls back to the fixed step size
    vary_all_at_once : bool
        Apply ``joint_delta`` to every model parameter at once
    joint_delta : np.ndarray, optional
        Delta vector over the model parameters, required in joint mode
    rng : np.random.Generator, optional
        Random source for the Gaussian step

    Returns
    -------
    ParameterVector
        New snapshot; differs from ``state`` in at most one scalar
        (or in the accepted components of ``joint_delta`` in joint mode)

    Raises
    ------
    ConfigurationError
        If ``index`` is out of range, or the covariance / joint delta does
        not match the model-parameter count
    """
    layout = state.layout
    category, position = layout.locate(index)
    if rng is None:
        rng = np.random.default_rng()

    if category is ParameterCategory.NOISE:
        return _propose_noise(state, position, config, rng)

    current = state.model_parameters()

    if vary_all_at_once:
        if joint_delta is None:
            raise ConfigurationError("Joint proposal requires a delta vector")
        return _propose_joint(state, layout, current, config, joint_delta)

    sigma = config.step_size(category)
    if use_adaptive and covariance is not None:
        variance = _covariance_matrix(covariance, layout)[index, index]
        # a parameter that never moved in the ensemble keeps the fixed step
        if variance > 0:
            sigma = np.sqrt(variance)

    candidate = current[index] + sigma * rng.standard_normal()
    low, high = config.bounds_for(category)

    updated = current.copy()
    if low <= candidate <= high:
        updated[index] = candidate
    return state.with_model_parameters(updated)


def _propose_noise(
    state: ParameterVector,
    position: int,
    config: ProposalConfig,
    rng: np.random.Generator,
) -> ParameterVector:
    """Perturb one noise sigma with the fixed noise step size."""
    sigmas = state.signal_noise_sigma.copy()
    candidate = sigmas[position] + config.step_size(ParameterCategory.NOISE) * rng.standard_normal()
    low, high = config.bounds_for(ParameterCategory.NOISE)
    if low <= candidate <= high:
        sigmas[position] = candidate
    return state.with_signal_noise_sigma(sigmas)


def _propose_joint(
    state: ParameterVector,
    layout: ParameterLayout,
    current: np.ndarray,
    config: ProposalConfig,
    joint_delta: np.ndarray,
) -> ParameterVector:
    """Apply a full-vector delta, reverting each component that leaves its prior box."""
    delta = np.asarray(joint_delta, dtype=float).reshape(-1)
    if len(delta) != layout.total_model_parameters:
        raise ConfigurationError(
            "Joint delta has wrong length",
            {"expected": layout.total_model_parameters, "got": len(delta)},
        )
    _, mins, maxs = config.model_arrays(layout)
    candidate = current + delta
    in_prior = (candidate >= mins) & (candidate <= maxs)
    return state.with_model_parameters(np.where(in_prior, candidate, current))


def _covariance_matrix(covariance: CovarianceLike, layout: ParameterLayout) -> np.ndarray:
    matrix = covariance.covariance if isinstance(covariance, CovarianceEstimate) else covariance
    matrix = np.asarray(matrix, dtype=float)
    n = layout.total_model_parameters
    if matrix.shape != (n, n):
        raise ConfigurationError(
            "Covariance does not match model parameters",
            {"expected": (n, n), "got": matrix.shape},
        )
    return matrix


def draw_joint_delta(
    covariance: CovarianceLike,
    rng: Optional[np.random.Generator] = None,
    scale: Optional[float] = None,
) -> np.ndarray:
    """
    Draw a multivariate-normal delta for a joint move.

    Parameters
    ----------
    covariance : CovarianceEstimate or np.ndarray
        Covariance of the model parameters (d x d)
    rng : np.random.Generator, optional
        Random source
    scale : float, optional
        Multiplier applied to the covariance; defaults to ``2.38**2 / d``

    Returns
    -------
    np.ndarray
        Delta vector of length d
    """
    matrix = covariance.covariance if isinstance(covariance, CovarianceEstimate) else covariance
    matrix = np.asarray(matrix, dtype=float)
    d = matrix.shape[0]
    if rng is None:
        rng = np.random.default_rng()
    if scale is None:
        scale = JOINT_SCALE_NUMERATOR / d
    return rng.multivariate_normal(np.zeros(d), scale * matrix)
