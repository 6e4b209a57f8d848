"""
Module 01 - Schemas & Canonicalization
File: video.py

Purpose: Video commitments and proofs built from per-keyframe commitments.
Segment bounds are inclusive frame indices.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .canonical import utc_now
from .commitment import MerklePathStep
from .transformation import TransformationSpec
from .versioning import SCHEMA_VERSION


class FrameCommitment(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    frame_index: int = Field(..., ge=0)
    timestamp_ms: float = Field(..., ge=0)
    root: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    tile_size: int = Field(..., gt=0)
    total_tiles: int = Field(..., gt=0)


class VideoCommitment(BaseModel):
    """Video-level Merkle root over ordered keyframe commitments."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["video_commitment"] = "video_commitment"
    schema_version: str = SCHEMA_VERSION
    video_id: str
    video_root: str
    frame_count: int = Field(..., ge=0)
    keyframe_interval: int = Field(..., ge=1)
    depth: int = Field(..., ge=0)
    frames: list[FrameCommitment] = Field(default_factory=list)
    processing_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)


class FrameProofSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    frame_index: int = Field(..., ge=0)
    tag: str
    original_root: str
    transformed_root: str
    transformed_width: int = Field(..., gt=0)
    transformed_height: int = Field(..., gt=0)
    binding_commitment: str
    valid: bool


class VideoTransformationProof(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["video_transformation"] = "video_transformation"
    schema_version: str = SCHEMA_VERSION
    transformation: TransformationSpec
    frame_count: int = Field(..., ge=0)
    tile_size: int = Field(..., gt=0)
    original_video_root: str
    transformed_video_root: str
    frame_proofs: list[FrameProofSummary] = Field(default_factory=list)
    all_frames_valid: bool
    binding_commitment: str
    valid: bool
    proving_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)


class FrameInclusionProof(BaseModel):
    """Frame root plus its path to the video root."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    frame_index: int = Field(..., ge=0)
    frame_root: str
    leaf_hash: str
    path: list[MerklePathStep] = Field(default_factory=list)


class VideoSegmentRevealProof(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["video_segment_reveal"] = "video_segment_reveal"
    schema_version: str = SCHEMA_VERSION
    video_root: str
    frame_count: int = Field(..., ge=1)
    tile_size: int = Field(..., gt=0)
    start_frame: int = Field(..., ge=0)
    end_frame: int = Field(..., ge=0)
    revealed_frame_count: int = Field(..., ge=1)
    hidden_frame_count: int = Field(..., ge=0)
    reveal_ratio: str
    frame_proofs: list[FrameInclusionProof] = Field(default_factory=list)
    binding_commitment: str
    proving_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_bounds(self) -> "VideoSegmentRevealProof":
        if self.end_frame < self.start_frame:
            raise ValueError("end_frame must not precede start_frame")
        return self


class VideoRedactionProof(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    proof_type: Literal["video_redaction"] = "video_redaction"
    schema_version: str = SCHEMA_VERSION
    video_root: str
    frame_count: int = Field(..., ge=1)
    redaction_type: str = "blur"
    redacted_frame_indices: list[int] = Field(default_factory=list)
    unaffected_proofs: list[FrameInclusionProof] = Field(default_factory=list)
    preserved_ratio: str
    binding_commitment: str
    proving_time_ms: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def redaction_count(self) -> int:
        return len(self.redacted_frame_indices)


class StreamFrameUpdate(BaseModel):
    """Returned by the stream processor after each added frame."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    frame_index: int = Field(..., ge=0)
    frame_root: str
    running_root: str


class StreamSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    stream_id: str
    total_frames: int = Field(..., ge=0)
    duration_ms: float = Field(..., ge=0)
    video_root: str
    frames: list[FrameCommitment] = Field(default_factory=list)
    finalized_at: datetime = Field(default_factory=utc_now)
