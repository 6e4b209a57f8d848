"""
Module 01 - Schemas & Canonicalization
File: fraud.py

Purpose: Fraud pre-filter result records.
"""

from pydantic import BaseModel, ConfigDict, Field


class FraudCheckResult(BaseModel):
    """Outcome of a quick or deep fraud check."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    fraud_detected: bool
    reason: str | None = None
    checks_performed: list[str] = Field(default_factory=list)
    elapsed_ms: float = Field(default=0.0, ge=0)

    @property
    def clean(self) -> bool:
        return not self.fraud_detected


class FraudBatchReport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    total: int = Field(..., ge=0)
    fraud_count: int = Field(..., ge=0)
    clean_count: int = Field(..., ge=0)
    results: list[FraudCheckResult] = Field(default_factory=list)
    elapsed_ms: float = Field(default=0.0, ge=0)

    @property
    def fraud_indices(self) -> list[int]:
        return [i for i, result in enumerate(self.results) if result.fraud_detected]
