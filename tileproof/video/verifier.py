"""
Module 09 - Video Proof Verifier

Verifies video transformation, segment-reveal and redaction proofs. Like
the image verifiers, every entry point returns a VerificationResult and
never raises.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from pydantic import BaseModel, ValidationError

from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.crypto.hashing import binding_commitment
from tileproof.proofs.checks import check_commitment_match, check_hash_format, make_check
from tileproof.schemas.errors import TileproofException
from tileproof.schemas.verification import CheckResult, VerificationResult
from tileproof.schemas.video import (
    FrameInclusionProof,
    VideoRedactionProof,
    VideoSegmentRevealProof,
    VideoTransformationProof,
)

from .extension import (
    Keyframe,
    compute_video_root,
    frame_leaf,
    segment_binding_payload,
    video_redaction_binding_payload,
    video_transformation_binding_payload,
)

logger = logging.getLogger(__name__)

class VideoProofVerifier:
    """Verifier for video proofs."""

    def __init__(self, engine: TileCommitmentEngine | None = None) -> None:
        self.engine = engine or TileCommitmentEngine()

    def verify(self, proof: BaseModel | dict[str, Any]) -> VerificationResult:
        """Dispatch on proof_type."""
        proof_type = proof.get("proof_type") if isinstance(proof, dict) else getattr(proof, "proof_type", None)
        if proof_type == "video_transformation":
            return self.verify_video_proof(proof)
        if proof_type == "video_segment_reveal":
            return self.verify_segment_reveal_proof(proof)
        if proof_type == "video_redaction":
            return self.verify_video_redaction_proof(proof)
        return VerificationResult.from_checks(
            [make_check("structure", False, f"Not a verifiable video proof: {proof_type!r}")],
            proof_kind="video",
        )

    # ------------------------------------------------------------------
    # Transformation
    # ------------------------------------------------------------------

    def verify_video_proof(
        self,
        proof: VideoTransformationProof | dict[str, Any],
        transformed_keyframes: Sequence[Keyframe | bytes] | None = None,
    ) -> VerificationResult:
        """
        Recompute both video roots from the per-frame summaries, the binding
        commitment, and frame validity. With transformed keyframes, also
        recommit each one and compare with its claimed root.
        """
        start = time.perf_counter()
        kind = "video_transformation"
        proof, checks = self._parse(proof, VideoTransformationProof)
        if proof is None:
            return self._result(checks, start, kind)

        try:
            self._check_binding(checks, proof.binding_commitment, video_transformation_binding_payload(proof))

            frames = proof.frame_proofs
            ordered = [fp.frame_index for fp in frames] == list(range(proof.frame_count))
            checks.append(make_check(
                "frame_accounting", ordered and proof.frame_count > 0,
                f"{proof.frame_count} frames accounted for" if ordered
                else "Frame proofs do not match frame_count",
            ))

            checks.append(check_commitment_match(
                "original_video_root", proof.original_video_root,
                compute_video_root([fp.original_root for fp in frames]), "original video root",
            ))
            checks.append(check_commitment_match(
                "transformed_video_root", proof.transformed_video_root,
                compute_video_root([fp.transformed_root for fp in frames]), "transformed video root",
            ))

            invalid = [fp.frame_index for fp in frames if not fp.valid]
            consistent = proof.all_frames_valid == (not invalid) and proof.valid == (not invalid)
            checks.append(make_check(
                "frame_validity", not invalid and consistent,
                "Every frame proof is valid" if not invalid and consistent
                else "Frame proofs invalid or validity flags inconsistent",
                {"invalid_frames": invalid},
            ))

            if transformed_keyframes is not None:
                checks.append(self._check_keyframes(
                    "transformed_keyframes",
                    [fp.transformed_root for fp in frames],
                    transformed_keyframes,
                    proof.tile_size,
                ))
        except Exception as e:
            logger.exception("Video transformation verification failed")
            checks.append(make_check("internal", False, f"Verification error: {e}"))

        return self._result(checks, start, kind)

    # ------------------------------------------------------------------
    # Segment reveal
    # ------------------------------------------------------------------

    def verify_segment_reveal_proof(
        self,
        proof: VideoSegmentRevealProof | dict[str, Any],
        segment_keyframes: Sequence[Keyframe | bytes] | None = None,
    ) -> VerificationResult:
        """
        Every revealed frame must be proven against the video root, and
        exactly the frames start_frame..end_frame must be revealed.
        """
        start = time.perf_counter()
        kind = "video_segment_reveal"
        proof, checks = self._parse(proof, VideoSegmentRevealProof)
        if proof is None:
            return self._result(checks, start, kind)

        try:
            self._check_binding(checks, proof.binding_commitment, segment_binding_payload(proof))

            expected_indices = list(range(proof.start_frame, proof.end_frame + 1))
            revealed = len(expected_indices)
            bounds_ok = (
                proof.end_frame < proof.frame_count
                and [fp.frame_index for fp in proof.frame_proofs] == expected_indices
                and proof.revealed_frame_count == revealed
                and proof.hidden_frame_count == proof.frame_count - revealed
                and proof.reveal_ratio == f"{revealed / proof.frame_count:.4f}"
            )
            checks.append(make_check(
                "segment_bounds", bounds_ok,
                f"Frames {proof.start_frame}..{proof.end_frame} revealed" if bounds_ok
                else "Segment bounds inconsistent with frame proofs",
            ))

            checks.append(self._check_frame_paths(proof.frame_proofs, proof.video_root))

            if segment_keyframes is not None:
                checks.append(self._check_keyframes(
                    "segment_keyframes",
                    [fp.frame_root for fp in proof.frame_proofs],
                    segment_keyframes,
                    proof.tile_size,
                ))
        except Exception as e:
            logger.exception("Segment reveal verification failed")
            checks.append(make_check("internal", False, f"Verification error: {e}"))

        return self._result(checks, start, kind)

    # ------------------------------------------------------------------
    # Redaction
    # ------------------------------------------------------------------

    def verify_video_redaction_proof(self, proof: VideoRedactionProof | dict[str, Any]) -> VerificationResult:
        """Unaffected frames must be proven and, with the redacted ones, cover the video."""
        start = time.perf_counter()
        kind = "video_redaction"
        proof, checks = self._parse(proof, VideoRedactionProof)
        if proof is None:
            return self._result(checks, start, kind)

        try:
            self._check_binding(checks, proof.binding_commitment, video_redaction_binding_payload(proof))

            redacted = set(proof.redacted_frame_indices)
            unaffected = [fp.frame_index for fp in proof.unaffected_proofs]
            accounted = (
                len(redacted) == len(proof.redacted_frame_indices)
                and not redacted.intersection(unaffected)
                and sorted(redacted.union(unaffected)) == list(range(proof.frame_count))
                and len(unaffected) == len(set(unaffected))
                and proof.preserved_ratio == f"{len(unaffected) / proof.frame_count:.4f}"
            )
            checks.append(make_check(
                "frame_accounting", accounted,
                "Redacted and unaffected frames partition the video" if accounted
                else "Redacted and unaffected frames do not partition the video",
                {"redacted": len(redacted), "unaffected": len(unaffected)},
            ))

            if proof.unaffected_proofs:
                checks.append(self._check_frame_paths(proof.unaffected_proofs, proof.video_root))
        except Exception as e:
            logger.exception("Video redaction verification failed")
            checks.append(make_check("internal", False, f"Verification error: {e}"))

        return self._result(checks, start, kind)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(proof: Any, model: type[BaseModel]) -> tuple[Any, list[CheckResult]]:
        try:
            if isinstance(proof, dict):
                proof = model.model_validate(proof)
            elif not isinstance(proof, model):
                raise TypeError(f"Expected {model.__name__}, got {type(proof).__name__}")
        except (ValidationError, TypeError) as e:
            return None, [make_check("structure", False, f"Malformed video proof: {e}")]
        return proof, [make_check("structure", True, f"Well-formed {model.__name__}")]

    @staticmethod
    def _check_binding(checks: list[CheckResult], claimed: str, payload: dict[str, Any]) -> None:
        format_check = check_hash_format("binding_commitment_format", claimed, "binding_commitment")
        checks.append(format_check)
        if format_check.ok:
            checks.append(check_commitment_match(
                "binding_commitment", claimed, binding_commitment(payload), "binding_commitment",
            ))

    def _check_frame_paths(self, frame_proofs: Sequence[FrameInclusionProof], video_root: str) -> CheckResult:
        failed = []
        for fp in frame_proofs:
            leaf_ok = fp.leaf_hash == frame_leaf(fp.frame_index, fp.frame_root).hex()
            orientation_ok = all(
                step.is_left == bool((fp.frame_index >> level) & 1)
                for level, step in enumerate(fp.path)
            )
            if not (leaf_ok and orientation_ok and self.engine.verify_merkle_proof(
                fp.leaf_hash, fp.path, video_root, fp.frame_index,
            )):
                failed.append(fp.frame_index)
        ok = bool(frame_proofs) and not failed
        return make_check(
            "merkle_proofs", ok,
            f"{len(frame_proofs)} frame paths terminate at the video root" if ok
            else "Frame paths do not terminate at the video root",
            {"failed_frames": failed},
        )

    def _check_keyframes(
        self,
        check_id: str,
        claimed_roots: list[str],
        keyframes: Sequence[Keyframe | bytes],
        tile_size: int,
    ) -> CheckResult:
        if len(keyframes) != len(claimed_roots):
            return make_check(
                check_id, False,
                f"Expected {len(claimed_roots)} keyframes, got {len(keyframes)}",
            )
        engine = self.engine.with_tile_size(tile_size)
        mismatched = []
        for position, (root, frame) in enumerate(zip(claimed_roots, keyframes)):
            data = frame.data if isinstance(frame, Keyframe) else frame
            try:
                if engine.compute_commitment(data).root != root:
                    mismatched.append(position)
            except TileproofException as e:
                logger.warning("Keyframe %d cannot be committed: %s", position, e.message)
                mismatched.append(position)
        return make_check(
            check_id, not mismatched,
            "Keyframes match their committed roots" if not mismatched
            else f"{len(mismatched)} keyframes do not match their committed roots",
            {"mismatched": mismatched},
        )

    @staticmethod
    def _result(checks: list[CheckResult], start: float, kind: str) -> VerificationResult:
        return VerificationResult.from_checks(
            checks,
            proof_kind=kind,
            verification_time_ms=round((time.perf_counter() - start) * 1000, 3),
        )
