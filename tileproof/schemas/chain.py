"""
Module 01 - Schemas & Canonicalization
File: chain.py

Purpose: Proof-chain records and their portable export/import forms.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .canonical import utc_now
from .commitment import OriginalCommitmentRef
from .transformation import TransformationProof
from .versioning import EXPORT_FORMAT_VERSION

EXPORT_FORMAT_NAME = "tileproof-proof-chain"


class ChainStep(BaseModel):
    """One linked transformation in a proof chain."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(..., ge=0)
    tag: str
    transformation_type: str
    params: dict[str, Any] = Field(default_factory=dict)
    input_commitment: str
    output_commitment: str
    output_width: int = Field(..., gt=0)
    output_height: int = Field(..., gt=0)
    binding_commitment: str
    valid: bool
    proof: TransformationProof | None = None


class ProofChainRecord(BaseModel):
    """Snapshot of a proof chain."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    chain_id: str
    created_at: datetime = Field(default_factory=utc_now)
    original_commitment: OriginalCommitmentRef
    steps: list[ChainStep] = Field(default_factory=list)
    running_commitment: str

    @property
    def final_commitment(self) -> str:
        return self.running_commitment

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def all_valid(self) -> bool:
        return all(step.valid for step in self.steps)


class ChainExport(BaseModel):
    """Full JSON export document."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    format: Literal["tileproof-proof-chain"] = EXPORT_FORMAT_NAME
    version: str = EXPORT_FORMAT_VERSION
    chain_id: str
    created_at: datetime
    exported_at: datetime = Field(default_factory=utc_now)
    original_commitment: OriginalCommitmentRef
    final_commitment: str
    step_count: int = Field(..., ge=0)
    steps: list[ChainStep] = Field(default_factory=list)
    all_valid: bool
    signature: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class CompactExport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    format: Literal["compact"] = "compact"
    version: int
    data: str = Field(..., description="urlsafe base64 of deflated canonical JSON")
    raw_size: int = Field(..., ge=0)
    compressed_size: int = Field(..., ge=0)

    @property
    def compression_ratio(self) -> float:
        if self.raw_size == 0:
            return 0.0
        return round(self.compressed_size / self.raw_size, 4)


class QRExport(BaseModel):
    """Single or multi-part QR payloads."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    multi_part: bool
    parts: list[str] = Field(..., min_length=1)
    total: int = Field(..., ge=1)
    digest: str | None = Field(
        default=None,
        description="Digest of the reassembled payload (multi-part only)",
    )

    @property
    def payload(self) -> str:
        return self.parts[0]


class URLExport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str
    chain_id: str
    signature: str


class WidgetExport(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    html: str
    chain_id: str
    verification_url: str


class SharingBundle(BaseModel):
    """Every export format of one chain, ready to hand to a sharing surface."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    chain_id: str
    signature: str
    json_export: ChainExport
    compact: CompactExport
    qr: QRExport
    url: URLExport
    widget: WidgetExport


class ImportedChain(BaseModel):
    """Result of importing a chain from any export format."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Literal["json", "compact", "qr"]
    chain_id: str
    original_commitment: OriginalCommitmentRef | None = None
    original_root: str
    final_root: str
    step_count: int = Field(..., ge=0)
    steps: list[ChainStep] = Field(default_factory=list)
    signature: str
    verified: bool
    warnings: list[str] = Field(default_factory=list)
