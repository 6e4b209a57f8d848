"""
Module 01 - Schemas & Canonicalization
File: transformation.py

Purpose: Transformation specs and the transformation proof tagged union.

Each proof variant is a strongly typed model discriminated on `tag`.
Common fields live on `_TransformationProofBase`; no variant carries the
original leaf list.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .canonical import utc_now
from .commitment import (
    OriginalCommitmentRef,
    Region,
    TileInclusionProof,
    TileRange,
    TransformedCommitmentRef,
)
from .versioning import SCHEMA_VERSION

TransformationTag = Literal[
    "crop", "resize", "grayscale", "blur", "brightness", "contrast", "generic"
]

SUPPORTED_TAGS: frozenset[str] = frozenset(
    {"crop", "resize", "grayscale", "blur", "brightness", "contrast", "generic"}
)

# Tags whose output must keep the input dimensions exactly
DIMENSION_PRESERVING_TAGS: frozenset[str] = frozenset(
    {"grayscale", "blur", "brightness", "contrast"}
)


class TransformationSpec(BaseModel):
    """
    A requested transformation: free-form `type` plus parameters.

    Any `type` outside the supported tags degrades to the `generic` tag.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def tag(self) -> str:
        normalized = self.type.strip().lower()
        return normalized if normalized in SUPPORTED_TAGS else "generic"

    @property
    def is_supported(self) -> bool:
        return self.type.strip().lower() in SUPPORTED_TAGS


class ProofMetrics(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    proving_time_ms: float = Field(default=0.0, ge=0)
    proof_size: int = Field(default=0, ge=0, description="Canonical JSON size in bytes")
    original_tiles: int = Field(default=0, ge=0)
    transformed_tiles: int = Field(default=0, ge=0)


class ProofGuarantees(BaseModel):
    """What a proof does and does not establish."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    original_committed: bool = True
    transformation_checked: bool = False
    privacy_preserved: bool = True
    witness: Literal["merkle_paths", "sampled", "parameters", "binding_only"] = "binding_only"


class _TransformationProofBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["transformation"] = "transformation"
    schema_version: str = SCHEMA_VERSION
    original_commitment: OriginalCommitmentRef
    transformed_commitment: TransformedCommitmentRef
    binding_commitment: str
    valid: bool
    metrics: ProofMetrics = Field(default_factory=ProofMetrics)
    guarantees: ProofGuarantees = Field(default_factory=ProofGuarantees)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def original_root(self) -> str:
        return self.original_commitment.root

    @property
    def transformed_root(self) -> str:
        return self.transformed_commitment.root


class CropProof(_TransformationProofBase):
    tag: Literal["crop"] = "crop"
    crop_region: Region
    tile_range: TileRange
    involved_tile_count: int = Field(..., ge=0)
    corner_proofs: list[TileInclusionProof] = Field(default_factory=list)
    dimension_match: bool


class ResizeProof(_TransformationProofBase):
    tag: Literal["resize"] = "resize"
    scale_x: float
    scale_y: float
    aspect_preserved: bool
    scale_valid: bool
    interpolation: str = "cover"


class GrayscaleProof(_TransformationProofBase):
    """
    Grayscale proof. The sampled tiles are a weak witness: a party holding
    both images could satisfy the sample while differing elsewhere.
    """

    tag: Literal["grayscale"] = "grayscale"
    dimensions_match: bool
    method: str = "luminance"
    sampled_tile_indices: list[int] = Field(default_factory=list)
    sample_consistent: bool = True


class BlurProof(_TransformationProofBase):
    tag: Literal["blur"] = "blur"
    sigma: float = Field(..., ge=0)
    kernel_size: int = Field(..., ge=1)
    kernel: str = "gaussian"
    dimensions_match: bool


class AdjustmentProof(_TransformationProofBase):
    tag: Literal["brightness", "contrast"]
    factor: float
    factor_min: float = 0.0
    factor_max: float = 3.0
    factor_in_range: bool
    dimensions_match: bool


class GenericProof(_TransformationProofBase):
    """Fallback for unrecognized transformations: binding commitment only."""

    tag: Literal["generic"] = "generic"
    transformation_type: str
    params: dict[str, Any] = Field(default_factory=dict)


TransformationProof = Annotated[
    Union[CropProof, ResizeProof, GrayscaleProof, BlurProof, AdjustmentProof, GenericProof],
    Field(discriminator="tag"),
]

TransformationProofAdapter: TypeAdapter[TransformationProof] = TypeAdapter(TransformationProof)


def parse_transformation_proof(data: Any) -> TransformationProof:
    """
    Validate a dict (or JSON-mode dump) into the matching proof variant.

    Raises:
        pydantic.ValidationError: If the record matches no variant.
    """
    if isinstance(data, BaseModel):
        return TransformationProofAdapter.validate_python(data.model_dump())
    return TransformationProofAdapter.validate_python(data)


def tag_fields(proof: TransformationProof) -> dict[str, Any]:
    """Tag-specific public fields of a proof, used for binding commitments."""
    common = set(_TransformationProofBase.model_fields)
    return proof.model_dump(mode="json", exclude=common | {"corner_proofs"})
