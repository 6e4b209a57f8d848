"""Bounded-concurrency batch operations."""
from .processor import (
    DEFAULT_MAX_CONCURRENT,
    BatchProcessor,
    RedactItem,
    RevealItem,
    TransformItem,
    VerifyItem,
)

__all__ = [
    "DEFAULT_MAX_CONCURRENT",
    "BatchProcessor",
    "RedactItem",
    "RevealItem",
    "TransformItem",
    "VerifyItem",
]
