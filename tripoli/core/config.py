"""
Configuration management for Tripoli.

Provides utilities for loading and validating YAML/JSON configuration files
holding the MCMC section of an analysis method: iteration budget, burn-in,
covariance refresh interval, proposal step sizes and prior ranges.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import logging

import yaml

from tripoli.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

#: Parameter categories every ``psig`` / ``prior`` mapping must cover
CATEGORY_KEYS = ("log_ratio", "intensity", "baseline", "gain", "noise")


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters
    ----------
    config_path : str or Path
        Path to configuration file (.yaml, .yml, or .json)

    Returns
    -------
    dict
        Configuration dictionary

    Raises
    ------
    FileNotFoundError
        If config file does not exist
    ValueError
        If file format is not supported
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    suffix = config_path.suffix.lower()

    with open(config_path, "r") as f:
        if suffix in [".yaml", ".yml"]:
            config = yaml.safe_load(f)
        elif suffix == ".json":
            config = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. " "Use .yaml, .yml, or .json"
            )

    logger.info(f"Loaded configuration from {config_path}")
    return config


def _number(value: Any, convert: Callable, label: str, errors: List[str]) -> Optional[Any]:
    """Convert ``value``, recording a failure in ``errors`` instead of raising."""
    try:
        return convert(value)
    except (TypeError, ValueError):
        errors.append(f"{label} must be numeric, got {value!r}")
        return None


def validate_mcmc_config(config: Dict[str, Any]) -> bool:
    """
    Validate the MCMC section of an analysis-method configuration.

    Parameters
    ----------
    config : dict
        Configuration dictionary containing an ``mcmc`` section

    Returns
    -------
    bool
        True if valid

    Raises
    ------
    ConfigurationError
        If configuration is invalid. All problems found are reported together.
    """
    if "mcmc" not in config:
        raise ConfigurationError("Configuration must contain 'mcmc' section")

    mcmc = config["mcmc"]
    errors = []

    for field in ("max_iterations", "psig", "prior"):
        if field not in mcmc:
            errors.append(f"MCMC config missing required field: {field}")

    if "max_iterations" in mcmc:
        max_iterations = _number(mcmc["max_iterations"], int, "max_iterations", errors)
        if max_iterations is not None and max_iterations <= 0:
            errors.append("max_iterations must be > 0")

    burn_in = _number(mcmc.get("burn_in", 0), int, "burn_in", errors)
    if burn_in is not None and burn_in < 0:
        errors.append("burn_in must be >= 0")

    interval = _number(mcmc.get("covariance_interval", 1), int, "covariance_interval", errors)
    if interval is not None and interval < 1:
        errors.append("covariance_interval must be >= 1")

    psig = mcmc.get("psig", {}) or {}
    prior = mcmc.get("prior", {}) or {}
    for key in CATEGORY_KEYS:
        if "psig" in mcmc and key not in psig:
            errors.append(f"psig missing step size for '{key}'")
        elif key in psig:
            step = _number(psig[key], float, f"psig['{key}']", errors)
            if step is not None and step < 0:
                errors.append(f"psig['{key}'] must be >= 0")

        if "prior" in mcmc and key not in prior:
            errors.append(f"prior missing range for '{key}'")
        elif key in prior:
            bounds = prior[key]
            if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
                errors.append(f"prior['{key}'] must be [min, max]")
                continue
            low = _number(bounds[0], float, f"prior['{key}'] min", errors)
            high = _number(bounds[1], float, f"prior['{key}'] max", errors)
            if low is not None and high is not None and low > high:
                errors.append(f"prior['{key}'] has min > max")

    if errors:
        raise ConfigurationError("Invalid MCMC configuration:\n  " + "\n  ".join(errors))

    return True


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> None:
    """
    Save configuration to YAML or JSON file.

    Parameters
    ----------
    config : dict
        Configuration dictionary
    config_path : str or Path
        Path to output file. Unknown suffixes are written as YAML.
    """
    config_path = Path(config_path)
    suffix = config_path.suffix.lower()

    if suffix == ".json":
        with open(config_path, "w") as f:
            json.dump(config, f, indent=2)
    else:
        if suffix not in [".yaml", ".yml"]:
            config_path = config_path.with_suffix(".yaml")
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved configuration to {config_path}")
