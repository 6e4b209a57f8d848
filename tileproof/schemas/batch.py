"""
Module 01 - Schemas & Canonicalization
File: batch.py

Purpose: Per-item and aggregate batch results.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BatchOperation = Literal["commit", "transform", "verify", "selective_reveal", "redact"]


class BatchItemResult(BaseModel):
    """Result of one batch item, addressed by its original position."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    index: int = Field(..., ge=0)
    success: bool
    result: Any = None
    error: str | None = None
    error_code: str | None = None


class BatchReport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    batch_id: str
    operation: BatchOperation
    total: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    processing_time_ms: float = Field(..., ge=0)
    throughput_per_sec: float = Field(..., ge=0)
    results: list[BatchItemResult] = Field(default_factory=list)

    def get_failures(self) -> list[BatchItemResult]:
        return [item for item in self.results if not item.success]

    def get_successes(self) -> list[BatchItemResult]:
        return [item for item in self.results if item.success]
