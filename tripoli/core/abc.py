"""
Protocols for the collaborators of the block driver.

The MCMC core does not parse instrument files, build the initial model or
evaluate the likelihood. Those pieces are supplied by the caller; any object
with the methods below can be plugged in without explicit inheritance.
"""

from typing import Any, Protocol, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from tripoli.mcmc.driver import BlockRawRecord, BlockDataSet
    from tripoli.mcmc.parameters import ParameterVector


@runtime_checkable
class BlockDataAccumulator(Protocol):
    """
    Accumulates baseline and on-peak data of one block.

    The returned records are opaque to the core and are passed through to
    the initializer and the acceptance step inside :class:`BlockDataSet`.
    """

    def accumulate_baseline(self, block: "BlockRawRecord", analysis_method: Any) -> Any:
        """Baseline data per the method's baseline table."""
        ...

    def accumulate_on_peak(
        self, block: "BlockRawRecord", analysis_method: Any, faraday: bool
    ) -> Any:
        """On-peak data per the method's sequence table, Faraday or photomultiplier."""
        ...


@runtime_checkable
class ModelInitializer(Protocol):
    """
    Builds the initial chain state for a block.

    May raise ``numpy.linalg.LinAlgError`` or
    :class:`~tripoli.core.exceptions.ModelInitializationError`.
    """

    def __call__(self, dataset: "BlockDataSet") -> "ParameterVector":
        ...


@runtime_checkable
class AcceptanceStep(Protocol):
    """
    Forward model, likelihood and Metropolis decision for one candidate.

    Returns True to accept ``candidate``.
    """

    def __call__(
        self, current: "ParameterVector", candidate: "ParameterVector", operation_index: int
    ) -> bool:
        ...
