"""
Module 09 - Video Extension

Applies the tile-commitment primitives per keyframe and commits to the
ordered keyframe roots with a video-level Merkle tree:

    frame leaf = sha256(0x00 || u32be(frame_index) || frame_root_bytes)

frame_index is the keyframe's position in the sequence, and the tree is
padded exactly like a tile tree. Segment bounds are inclusive.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Sequence

from tileproof.commitment.engine import TileCommitment, TileCommitmentEngine
from tileproof.crypto.hashing import binding_commitment, from_hex, hash_indexed_leaf
from tileproof.merkle.merkle_tree import (
    build_merkle_levels,
    build_merkle_proof,
    compute_tree_depth,
)
from tileproof.proofs.generator import TransformationProofGenerator
from tileproof.schemas.commitment import MerklePathStep
from tileproof.schemas.errors import DimensionError, IndexOutOfRangeError, KeyframeMismatchError
from tileproof.schemas.transformation import TransformationSpec
from tileproof.schemas.video import (
    FrameCommitment,
    FrameInclusionProof,
    FrameProofSummary,
    StreamFrameUpdate,
    StreamSummary,
    VideoCommitment,
    VideoRedactionProof,
    VideoSegmentRevealProof,
    VideoTransformationProof,
)

logger = logging.getLogger(__name__)

DEFAULT_KEYFRAME_INTERVAL = 30
DEFAULT_ASSUMED_FPS = 30.0


@dataclass(frozen=True)
class Keyframe:
    """Encoded keyframe image with an optional presentation timestamp."""
    data: bytes
    timestamp_ms: float | None = None


def frame_leaf(frame_index: int, frame_root: str) -> bytes:
    return hash_indexed_leaf(frame_index, from_hex(frame_root))


def build_video_levels(frame_roots: Sequence[str]) -> list[list[bytes]]:
    """Padded video tree levels over ordered frame roots."""
    return build_merkle_levels([frame_leaf(i, root) for i, root in enumerate(frame_roots)])


def compute_video_root(frame_roots: Sequence[str]) -> str:
    return build_video_levels(frame_roots)[-1][0].hex()


def frame_inclusion_proof(
    levels: Sequence[Sequence[bytes]], frame_index: int, frame_root: str,
) -> FrameInclusionProof:
    proof = build_merkle_proof(levels, frame_index)
    return FrameInclusionProof(
        frame_index=frame_index,
        frame_root=frame_root,
        leaf_hash=frame_leaf(frame_index, frame_root).hex(),
        path=[MerklePathStep(**step) for step in proof.to_path()],
    )


def segment_binding_payload(proof: VideoSegmentRevealProof) -> dict[str, Any]:
    return {
        "video_root": proof.video_root,
        "frame_count": proof.frame_count,
        "tile_size": proof.tile_size,
        "start_frame": proof.start_frame,
        "end_frame": proof.end_frame,
        "frame_roots": [fp.frame_root for fp in proof.frame_proofs],
    }


def video_redaction_binding_payload(proof: VideoRedactionProof) -> dict[str, Any]:
    return {
        "video_root": proof.video_root,
        "frame_count": proof.frame_count,
        "redaction_type": proof.redaction_type,
        "redacted_frame_indices": list(proof.redacted_frame_indices),
    }


def video_transformation_binding_payload(proof: VideoTransformationProof) -> dict[str, Any]:
    return {
        "transformation": proof.transformation.model_dump(mode="json"),
        "frame_count": proof.frame_count,
        "tile_size": proof.tile_size,
        "original_video_root": proof.original_video_root,
        "transformed_video_root": proof.transformed_video_root,
        "frame_bindings": [fp.binding_commitment for fp in proof.frame_proofs],
    }


def _frame_data(frame: Keyframe | bytes) -> bytes:
    return frame.data if isinstance(frame, Keyframe) else frame


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


class VideoProofExtension:
    """
    Video commitments and proofs over keyframes.

    Args:
        engine: Tile commitment engine used for every keyframe
        generator: Transformation proof generator for per-frame proofs
        keyframe_interval: Source frames between keyframes (recorded only)
        assumed_fps: Frame rate used for missing keyframe timestamps
    """

    def __init__(
        self,
        engine: TileCommitmentEngine | None = None,
        generator: TransformationProofGenerator | None = None,
        keyframe_interval: int = DEFAULT_KEYFRAME_INTERVAL,
        assumed_fps: float = DEFAULT_ASSUMED_FPS,
    ) -> None:
        self.engine = engine or TileCommitmentEngine()
        self.generator = generator or TransformationProofGenerator(self.engine)
        self.keyframe_interval = keyframe_interval
        self.assumed_fps = assumed_fps

    def default_timestamp(self, position: int) -> float:
        return round(position * 1000.0 / self.assumed_fps, 3)

    def frame_commitment(
        self, position: int, commitment: TileCommitment, timestamp_ms: float | None = None,
    ) -> FrameCommitment:
        return FrameCommitment(
            frame_index=position,
            timestamp_ms=self.default_timestamp(position) if timestamp_ms is None else timestamp_ms,
            root=commitment.root,
            width=commitment.width,
            height=commitment.height,
            tile_size=commitment.tile_size,
            total_tiles=commitment.total_tiles,
        )

    def _commit_frames(self, frames: Sequence[Keyframe | bytes]) -> list[TileCommitment]:
        return [self.engine.compute_commitment(_frame_data(frame)) for frame in frames]

    # ------------------------------------------------------------------
    # Commitment
    # ------------------------------------------------------------------

    def create_video_commitment(self, keyframes: Sequence[Keyframe | bytes]) -> VideoCommitment:
        """Commit to every keyframe and to their order."""
        start = time.perf_counter()
        logger.info("Creating video commitment for %d keyframes", len(keyframes))

        frames = [
            self.frame_commitment(
                i, commitment,
                keyframe.timestamp_ms if isinstance(keyframe, Keyframe) else None,
            )
            for i, (keyframe, commitment) in enumerate(zip(keyframes, self._commit_frames(keyframes)))
        ]
        return VideoCommitment(
            video_id=str(uuid.uuid4()),
            video_root=compute_video_root([frame.root for frame in frames]),
            frame_count=len(frames),
            keyframe_interval=self.keyframe_interval,
            depth=compute_tree_depth(len(frames)),
            frames=frames,
            processing_time_ms=_elapsed_ms(start),
        )

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def generate_video_transformation_proof(
        self,
        original_keyframes: Sequence[Keyframe | bytes],
        transformed_keyframes: Sequence[Keyframe | bytes],
        spec: TransformationSpec | dict[str, Any],
    ) -> VideoTransformationProof:
        """
        One transformation proof per keyframe pair, bound together by the
        original and transformed video roots.

        Raises:
            KeyframeMismatchError: If the keyframe counts differ or are zero
        """
        start = time.perf_counter()
        if len(original_keyframes) != len(transformed_keyframes) or not original_keyframes:
            raise KeyframeMismatchError(len(original_keyframes), len(transformed_keyframes))
        if not isinstance(spec, TransformationSpec):
            spec = TransformationSpec.model_validate(spec)

        logger.info(
            "Generating video %s proof for %d keyframes", spec.type, len(original_keyframes),
        )
        summaries = []
        for i, (original, transformed) in enumerate(zip(original_keyframes, transformed_keyframes)):
            proof = self.generator.generate_proof(
                _frame_data(original), _frame_data(transformed), spec,
            )
            summaries.append(FrameProofSummary(
                frame_index=i,
                tag=proof.tag,
                original_root=proof.original_commitment.root,
                transformed_root=proof.transformed_commitment.root,
                transformed_width=proof.transformed_commitment.width,
                transformed_height=proof.transformed_commitment.height,
                binding_commitment=proof.binding_commitment,
                valid=proof.valid,
            ))

        all_valid = all(summary.valid for summary in summaries)
        proof = VideoTransformationProof(
            transformation=spec,
            frame_count=len(summaries),
            tile_size=self.generator.engine.tile_size,
            original_video_root=compute_video_root([s.original_root for s in summaries]),
            transformed_video_root=compute_video_root([s.transformed_root for s in summaries]),
            frame_proofs=summaries,
            all_frames_valid=all_valid,
            binding_commitment="",
            valid=all_valid,
        )
        return proof.model_copy(update={
            "binding_commitment": binding_commitment(video_transformation_binding_payload(proof)),
            "proving_time_ms": _elapsed_ms(start),
        })

    def generate_segment_reveal_proof(
        self, keyframes: Sequence[Keyframe | bytes], start_frame: int, end_frame: int,
    ) -> VideoSegmentRevealProof:
        """
        Prove that keyframes start_frame..end_frame (inclusive) belong to the
        committed video without disclosing the others.

        Raises:
            IndexOutOfRangeError: If the segment is empty or leaves the video
        """
        start = time.perf_counter()
        total = len(keyframes)
        if not 0 <= start_frame <= end_frame < total:
            raise IndexOutOfRangeError(
                f"Segment {start_frame}..{end_frame} out of range for {total} keyframes",
                index=end_frame if start_frame >= 0 else start_frame,
                size=total,
            )

        roots = [commitment.root for commitment in self._commit_frames(keyframes)]
        levels = build_video_levels(roots)
        revealed = end_frame - start_frame + 1

        proof = VideoSegmentRevealProof(
            video_root=levels[-1][0].hex(),
            frame_count=total,
            tile_size=self.engine.tile_size,
            start_frame=start_frame,
            end_frame=end_frame,
            revealed_frame_count=revealed,
            hidden_frame_count=total - revealed,
            reveal_ratio=f"{revealed / total:.4f}",
            frame_proofs=[
                frame_inclusion_proof(levels, i, roots[i])
                for i in range(start_frame, end_frame + 1)
            ],
            binding_commitment="",
        )
        return proof.model_copy(update={
            "binding_commitment": binding_commitment(segment_binding_payload(proof)),
            "proving_time_ms": _elapsed_ms(start),
        })

    def generate_video_redaction_proof(
        self,
        keyframes: Sequence[Keyframe | bytes],
        redacted_indices: Sequence[int],
        redaction_type: str = "blur",
    ) -> VideoRedactionProof:
        """
        Prove every keyframe outside `redacted_indices` is part of the
        committed video and unmodified.

        Raises:
            IndexOutOfRangeError: If a redacted index is not a keyframe
            DimensionError: If there are no keyframes
        """
        start = time.perf_counter()
        total = len(keyframes)
        if total == 0:
            raise DimensionError("Video redaction requires at least one keyframe")
        for index in redacted_indices:
            if not 0 <= index < total:
                raise IndexOutOfRangeError(
                    f"Redacted frame {index} out of range for {total} keyframes",
                    index=index, size=total,
                )

        redacted = sorted(set(redacted_indices))
        redacted_set = set(redacted)
        roots = [commitment.root for commitment in self._commit_frames(keyframes)]
        levels = build_video_levels(roots)
        unaffected = [
            frame_inclusion_proof(levels, i, roots[i])
            for i in range(total) if i not in redacted_set
        ]
        logger.info("Video redaction: %d of %d keyframes redacted", len(redacted), total)

        proof = VideoRedactionProof(
            video_root=levels[-1][0].hex(),
            frame_count=total,
            redaction_type=redaction_type,
            redacted_frame_indices=redacted,
            unaffected_proofs=unaffected,
            preserved_ratio=f"{len(unaffected) / total:.4f}",
            binding_commitment="",
        )
        return proof.model_copy(update={
            "binding_commitment": binding_commitment(video_redaction_binding_payload(proof)),
            "proving_time_ms": _elapsed_ms(start),
        })

    def create_stream_processor(self) -> "VideoStreamProcessor":
        return VideoStreamProcessor(self)


class VideoStreamProcessor:
    """Incrementally commits to a live stream of frames."""

    def __init__(self, extension: VideoProofExtension) -> None:
        self.extension = extension
        self.stream_id = str(uuid.uuid4())
        self._started = time.perf_counter()
        self._frames: list[FrameCommitment] = []

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def add_frame(self, frame_bytes: bytes, timestamp_ms: float | None = None) -> StreamFrameUpdate:
        """Commit to the next frame and return the running video root."""
        position = len(self._frames)
        if timestamp_ms is None:
            timestamp_ms = round((time.perf_counter() - self._started) * 1000, 3)
        commitment = self.extension.engine.compute_commitment(frame_bytes)
        self._frames.append(self.extension.frame_commitment(position, commitment, timestamp_ms))
        return StreamFrameUpdate(
            frame_index=position,
            frame_root=commitment.root,
            running_root=compute_video_root([frame.root for frame in self._frames]),
        )

    def finalize(self) -> StreamSummary:
        summary = StreamSummary(
            stream_id=self.stream_id,
            total_frames=len(self._frames),
            duration_ms=_elapsed_ms(self._started),
            video_root=compute_video_root([frame.root for frame in self._frames]),
            frames=list(self._frames),
        )
        logger.info(
            "Stream %s finalized: %d frames, root %s",
            self.stream_id[:8], summary.total_frames, summary.video_root[:16],
        )
        return summary
