"""
Runtime Configuration Module

Provides configuration loading for tileproof services.
"""

from .runtime import (
    BatchConfig,
    ChainConfig,
    CommitmentConfig,
    ExportConfig,
    FraudConfig,
    ProofConfig,
    RuntimeConfig,
    VideoConfig,
    configure_logging,
)

__all__ = [
    "BatchConfig",
    "ChainConfig",
    "CommitmentConfig",
    "ExportConfig",
    "FraudConfig",
    "ProofConfig",
    "RuntimeConfig",
    "VideoConfig",
    "configure_logging",
]
