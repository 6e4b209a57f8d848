"""
Module 01 - Schemas & Canonicalization
File: privacy.py

Purpose: Selective-reveal and regional-redaction proof records.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .canonical import utc_now
from .commitment import (
    OriginalCommitmentRef,
    Region,
    TileInclusionProof,
    TileRange,
    TransformedCommitmentRef,
)
from .versioning import SCHEMA_VERSION


class SelectiveRevealProof(BaseModel):
    """Proves a disclosed sub-region came from a committed original."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["selective_reveal"] = "selective_reveal"
    schema_version: str = SCHEMA_VERSION
    original_commitment: OriginalCommitmentRef
    revealed_commitment: TransformedCommitmentRef
    region: Region
    tile_range: TileRange
    tile_proofs: list[TileInclusionProof] = Field(default_factory=list)
    revealed_tile_count: int = Field(..., ge=0)
    total_original_tiles: int = Field(..., gt=0)
    reveal_ratio: str
    binding_commitment: str
    original_signature: str | None = Field(
        default=None,
        description="Opaque device signature over the original root, carried through",
    )
    valid: bool = True
    proving_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)


class RedactionRegion(Region):
    """A region to redact and how to obscure it."""

    mode: Literal["blur", "fill"] = "blur"


class RedactionOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    blur_sigma: float = Field(default=20.0, gt=0)
    fill_color: str = Field(default="#000000", pattern=r"^#[0-9a-fA-F]{6}$")
    spot_check_count: int = Field(default=10, ge=0)


class SpotCheck(BaseModel):
    """Equality check of one unaffected tile. Hashes are 16-char prefixes."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tile_index: int = Field(..., ge=0)
    original_leaf_prefix: str
    redacted_leaf_prefix: str
    match: bool


class RedactionSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    region_count: int = Field(..., ge=0)
    affected_tile_count: int = Field(..., ge=0)
    unaffected_tile_count: int = Field(..., ge=0)
    total_tiles: int = Field(..., gt=0)
    preserved_ratio: str


class RedactionProof(BaseModel):
    """
    Proves that everything outside the redacted regions is unchanged.

    Spot checks sample unaffected tiles; they are a weak witness, not full
    coverage.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["regional_redaction"] = "regional_redaction"
    schema_version: str = SCHEMA_VERSION
    original_commitment: OriginalCommitmentRef
    redacted_commitment: TransformedCommitmentRef
    regions: list[RedactionRegion]
    affected_tile_indices: list[int] = Field(default_factory=list)
    spot_checks: list[SpotCheck] = Field(default_factory=list)
    all_unaffected_match: bool
    redactions: RedactionSummary
    binding_commitment: str
    valid: bool = True
    proving_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def region_keys(self) -> list[str]:
        return [region.as_key() for region in self.regions]
