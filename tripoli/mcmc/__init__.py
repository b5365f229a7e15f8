"""
Single-block adaptive MCMC.

This module provides the parameter bookkeeping, the preordered operation
scheduler, box-constrained random-walk proposals, the ensemble covariance
estimator and the block driver that ties them together.
"""

from tripoli.mcmc.parameters import (
    ParameterCategory,
    ParameterLayout,
    ParameterVector,
    EnsembleRecord,
)
from tripoli.mcmc.schedule import build_schedule, random_operation
from tripoli.mcmc.covariance import (
    CovarianceEstimate,
    recompute_mean_covariance,
    is_positive_semidefinite,
)
from tripoli.mcmc.proposal import ProposalConfig, propose, draw_joint_delta
from tripoli.mcmc.ensemble import EnsembleStore, EnsembleSummary
from tripoli.mcmc.settings import MCMCSettings
from tripoli.mcmc.driver import (
    BlockRawRecord,
    BlockDataSet,
    BlockDriver,
    BlockRunResult,
    MultiBlockResult,
    build_linear_knot_matrix,
    run_blocks,
)

__all__ = [
    # Parameters
    "ParameterCategory",
    "ParameterLayout",
    "ParameterVector",
    "EnsembleRecord",
    # Scheduling
    "build_schedule",
    "random_operation",
    # Covariance
    "CovarianceEstimate",
    "recompute_mean_covariance",
    "is_positive_semidefinite",
    # Proposals
    "ProposalConfig",
    "propose",
    "draw_joint_delta",
    # Ensemble
    "EnsembleStore",
    "EnsembleSummary",
    # Driver
    "MCMCSettings",
    "BlockRawRecord",
    "BlockDataSet",
    "BlockDriver",
    "BlockRunResult",
    "MultiBlockResult",
    "build_linear_knot_matrix",
    "run_blocks",
]
