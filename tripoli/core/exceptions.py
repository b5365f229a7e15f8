"""
Exception hierarchy for Tripoli.

Exception Hierarchy:
    TripoliError (base)
    ├── ConfigurationError (caller contract violations, also a ValueError)
    └── ModelInitializationError (initial model for a block could not be built)

Proposals that fall outside their prior bounds are not errors; they are
reverted silently by :func:`tripoli.mcmc.proposal.propose`.

Examples
--------
Skipping a block whose initial model cannot be constructed:

>>> try:
...     result = driver.run_block(block, analysis_method)
... except ModelInitializationError as e:
...     logger.warning(f"Skipping block: {e}")
"""

from typing import Any, Dict, Optional


class TripoliError(Exception):
    """
    Base exception for all Tripoli errors.

    Attributes
    ----------
    error_context : dict
        Additional context about the error (block number, counts, ...)
    """

    def __init__(self, message: str, error_context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_context = error_context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.error_context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.error_context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


class ConfigurationError(TripoliError, ValueError):
    """
    Raised when a caller violates a contract of the MCMC core.

    Examples are invalid parameter counts, a schedule index outside the
    operation space, or too few ensemble records to estimate a covariance.
    These are programming errors and are not recovered at runtime.
    """


class ModelInitializationError(TripoliError):
    """
    Raised when the initial model for a block cannot be constructed.

    Typically wraps a recoverable numerical condition such as a singular
    matrix. The block is skipped; sibling blocks are unaffected.
    """
