"""
Core utilities.

This module provides:
- Configuration loading and validation
- Logging
- Exception hierarchy
- Collaborator protocols
"""

from tripoli.core import config
from tripoli.core import logging_config
from tripoli.core.exceptions import TripoliError, ConfigurationError, ModelInitializationError
from tripoli.core.abc import BlockDataAccumulator, ModelInitializer, AcceptanceStep

__all__ = [
    # Modules
    "config",
    "logging_config",
    # Exceptions
    "TripoliError",
    "ConfigurationError",
    "ModelInitializationError",
    # Protocols
    "BlockDataAccumulator",
    "ModelInitializer",
    "AcceptanceStep",
]
