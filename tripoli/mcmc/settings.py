"""
MCMC settings for single-block inversion.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tripoli.core.exceptions import ConfigurationError
from tripoli.core.logging_config import get_logger
from tripoli.mcmc.proposal import ProposalConfig

logger = get_logger("mcmc.settings")


@dataclass(frozen=True)
class MCMCSettings:
    """
    MCMC section of an analysis method.

    Every count here is per block; nothing is shared between blocks.

    Attributes
    ----------
    proposal : ProposalConfig
        Step sizes and prior ranges
    max_iterations : int
        Iteration budget; the only termination condition
    burn_in : int
        Index of the first ensemble record used for the covariance
    covariance_interval : int
        Recompute the covariance after every this many accepted records
        past burn-in
    adaptive : bool
        Scale proposals by the ensemble covariance once it exists
    vary_all_at_once : bool
        Use joint moves over all model parameters once adaptive
    seed : int, optional
        Seed for the block's random generator
    """

    proposal: ProposalConfig
    max_iterations: int
    burn_in: int = 0
    covariance_interval: int = 100
    adaptive: bool = True
    vary_all_at_once: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "MCMCSettings":
        """
        Build settings from a configuration mapping.

        Accepts either the full configuration (with an ``mcmc`` section) or
        the ``mcmc`` section itself.
        """
        from tripoli.core.config import validate_mcmc_config

        if "mcmc" not in config:
            config = {"mcmc": config}
        validate_mcmc_config(config)
        mcmc = config["mcmc"]

        return cls(
            proposal=ProposalConfig.from_dict(mcmc),
            max_iterations=int(mcmc["max_iterations"]),
            burn_in=int(mcmc.get("burn_in", 0)),
            covariance_interval=int(mcmc.get("covariance_interval", 100)),
            adaptive=bool(mcmc.get("adaptive", True)),
            vary_all_at_once=bool(mcmc.get("vary_all_at_once", False)),
            seed=mcmc.get("seed"),
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "MCMCSettings":
        """Load settings from a YAML or JSON file with an ``mcmc`` section."""
        from tripoli.core.config import load_config

        config = load_config(config_path)
        if not isinstance(config, dict) or "mcmc" not in config:
            raise ConfigurationError("Configuration must contain 'mcmc' section")
        return cls.from_dict(config)

    def to_dict(self) -> Dict[str, Any]:
        mcmc = {
            "max_iterations": self.max_iterations,
            "burn_in": self.burn_in,
            "covariance_interval": self.covariance_interval,
            "adaptive": self.adaptive,
            "vary_all_at_once": self.vary_all_at_once,
        }
        if self.seed is not None:
            mcmc["seed"] = self.seed
        mcmc.update(self.proposal.to_dict())
        return {"mcmc": mcmc}

    def validate(self) -> bool:
        """
        Validate settings.

        Raises
        ------
        ConfigurationError
            If settings are invalid
        """
        if self.max_iterations <= 0:
            raise ConfigurationError("max_iterations must be > 0")
        if self.burn_in < 0:
            raise ConfigurationError("burn_in must be >= 0")
        if self.covariance_interval < 1:
            raise ConfigurationError("covariance_interval must be >= 1")
        return True
