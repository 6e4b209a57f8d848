"""
Module 04 - Transformation Proof Verifier

Checks, all of which must pass:
1. structure                   - record parses as a known proof variant
2. transformation_supported    - tag is in the supported set
3. binding_commitment_format   - binding is a SHA-256 hex digest (format only)
4. binding_commitment          - binding recomputed from the public fields
5. dimensions                  - per-tag dimension rule
6. image_commitment            - only with transformed bytes; recomputed root
                                 equals the claimed transformed root
7. transformation_proof        - tag-specific validity

Only image_commitment is fully sound: the others bind the proof record to
itself and to its claimed parameters, not to the original pixels.

verify() never raises; malformed input yields an invalid result.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import BaseModel, ValidationError

from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.crypto.hashing import binding_commitment
from tileproof.schemas.commitment import TileRange
from tileproof.schemas.errors import (
    CommitmentMismatchError,
    StructuralProofError,
    TileproofException,
)
from tileproof.schemas.transformation import (
    DIMENSION_PRESERVING_TAGS,
    SUPPORTED_TAGS,
    AdjustmentProof,
    CropProof,
    GenericProof,
    ResizeProof,
    TransformationProof,
    parse_transformation_proof,
)
from tileproof.schemas.verification import CheckResult, VerificationResult

from .checks import check_commitment_match, check_hash_format, make_check
from .generator import DEFAULT_ADJUSTMENT_BOUNDS, transformation_binding_payload

logger = logging.getLogger(__name__)

_SCALE_TOLERANCE = 1e-6


class TransformationProofVerifier:
    """Verifies transformation proofs produced by TransformationProofGenerator."""

    def __init__(
        self,
        engine: TileCommitmentEngine | None = None,
        adjustment_bounds: tuple[float, float] = DEFAULT_ADJUSTMENT_BOUNDS,
    ) -> None:
        self.engine = engine or TileCommitmentEngine()
        self.adjustment_bounds = adjustment_bounds

    def verify(
        self,
        proof: TransformationProof | dict[str, Any],
        transformed_bytes: bytes | None = None,
    ) -> VerificationResult:
        """
        Verify a transformation proof.

        Args:
            proof: Proof model or its dict/JSON-mode dump
            transformed_bytes: Optional transformed image for the sound check

        Returns:
            VerificationResult with one CheckResult per check
        """
        start = time.perf_counter()
        checks: list[CheckResult] = []
        tag = proof.get("tag") if isinstance(proof, dict) else getattr(proof, "tag", None)

        try:
            parsed, structure_check = self._check_structure(proof)
            checks.append(structure_check)
            if parsed is None:
                error = StructuralProofError(structure_check.message).to_error_model()
                return self._result(checks, start, tag, error=error)

            checks.append(self._check_supported(parsed))
            format_check = check_hash_format(
                "binding_commitment_format", parsed.binding_commitment, "binding_commitment",
            )
            checks.append(format_check)
            if format_check.ok:
                checks.append(check_commitment_match(
                    "binding_commitment",
                    parsed.binding_commitment,
                    binding_commitment(transformation_binding_payload(parsed)),
                    "binding_commitment",
                ))
            checks.append(self._check_dimensions(parsed))
            if transformed_bytes is not None:
                checks.append(self._check_image_commitment(parsed, transformed_bytes))
            checks.append(self._check_transformation(parsed))
            return self._result(checks, start, parsed.tag)

        except Exception as e:
            logger.exception("Transformation proof verification failed")
            checks.append(make_check("internal", False, f"Verification error: {e}"))
            error = TileproofException(str(e)).to_error_model()
            return self._result(checks, start, tag, error=error)

    # ------------------------------------------------------------------

    @staticmethod
    def _result(checks, start, tag, error=None) -> VerificationResult:
        return VerificationResult.from_checks(
            checks,
            proof_kind="transformation",
            proof_tag=tag if isinstance(tag, str) else None,
            verification_time_ms=round((time.perf_counter() - start) * 1000, 3),
            error=error,
        )

    @staticmethod
    def _check_structure(proof: Any) -> tuple[TransformationProof | None, CheckResult]:
        if proof is None or not isinstance(proof, (dict, BaseModel)):
            return None, make_check(
                "structure", False, f"Proof must be an object, got {type(proof).__name__}",
            )
        try:
            parsed = parse_transformation_proof(proof)
        except ValidationError as e:
            return None, make_check(
                "structure", False,
                f"Proof does not match any transformation proof variant ({e.error_count()} errors)",
                {"errors": [err["msg"] for err in e.errors()[:5]]},
            )
        return parsed, make_check("structure", True, f"Well-formed {parsed.tag} proof")

    @staticmethod
    def _check_supported(proof: TransformationProof) -> CheckResult:
        ok = proof.tag in SUPPORTED_TAGS
        details: dict[str, Any] = {"tag": proof.tag}
        if isinstance(proof, GenericProof):
            details["transformation_type"] = proof.transformation_type
        return make_check(
            "transformation_supported", ok,
            f"Tag {proof.tag!r} supported" if ok else f"Tag {proof.tag!r} unsupported",
            details,
        )

    @staticmethod
    def _check_dimensions(proof: TransformationProof) -> CheckResult:
        original = proof.original_commitment
        transformed = proof.transformed_commitment
        details = {
            "original": [original.width, original.height],
            "transformed": [transformed.width, transformed.height],
        }

        if proof.tag == "crop":
            ok = transformed.width <= original.width and transformed.height <= original.height
            message = "Crop output within original" if ok else "Crop output exceeds original"
        elif proof.tag == "resize":
            ok = transformed.width > 0 and transformed.height > 0
            message = "Resize output positive" if ok else "Resize output not positive"
        elif proof.tag in DIMENSION_PRESERVING_TAGS:
            ok = transformed.width == original.width and transformed.height == original.height
            message = (
                f"{proof.tag} preserves dimensions" if ok
                else f"{proof.tag} must preserve dimensions"
            )
        else:
            ok = True
            message = "No dimension rule for generic proofs"

        return make_check("dimensions", ok, message, details)

    def _check_image_commitment(
        self, proof: TransformationProof, transformed_bytes: bytes,
    ) -> CheckResult:
        try:
            engine = self.engine.with_tile_size(proof.transformed_commitment.tile_size)
            recomputed = engine.compute_commitment(transformed_bytes)
        except TileproofException as e:
            return make_check(
                "image_commitment", False,
                f"Cannot commit to supplied image: {e.message}",
                {"code": e.code},
            )

        claimed = proof.transformed_commitment.root
        if recomputed.root == claimed:
            return make_check("image_commitment", True, "Transformed image matches commitment")

        mismatch = CommitmentMismatchError(claimed, recomputed.root, what="transformed image")
        return make_check(
            "image_commitment", False, mismatch.message,
            {"code": mismatch.code, **mismatch.details},
        )

    def _check_transformation(self, proof: TransformationProof) -> CheckResult:
        if isinstance(proof, CropProof):
            return self._check_crop(proof)

        if isinstance(proof, ResizeProof):
            original = proof.original_commitment
            transformed = proof.transformed_commitment
            consistent = (
                abs(proof.scale_x - transformed.width / original.width) < _SCALE_TOLERANCE
                and abs(proof.scale_y - transformed.height / original.height) < _SCALE_TOLERANCE
            )
            ok = proof.scale_valid and proof.scale_x > 0 and proof.scale_y > 0 and consistent
            return make_check(
                "transformation_proof", ok,
                "Resize scales valid" if ok else "Resize scales invalid or inconsistent",
                {"scale_x": proof.scale_x, "scale_y": proof.scale_y},
            )

        if isinstance(proof, AdjustmentProof):
            low, high = self.adjustment_bounds
            ok = proof.factor_in_range and low <= proof.factor <= high and proof.dimensions_match
            return make_check(
                "transformation_proof", ok,
                f"{proof.tag} factor {proof.factor} in [{low}, {high}]" if ok
                else f"{proof.tag} factor {proof.factor} invalid",
                {"factor": proof.factor},
            )

        if isinstance(proof, GenericProof):
            return make_check(
                "transformation_proof", proof.valid,
                "Generic proof carries binding only" if proof.valid else "Generic proof marked invalid",
                {"transformation_type": proof.transformation_type},
            )

        # grayscale / blur
        ok = proof.dimensions_match and proof.valid
        return make_check(
            "transformation_proof", ok,
            f"{proof.tag} proof valid" if ok else f"{proof.tag} proof invalid",
        )

    def _check_crop(self, proof: CropProof) -> CheckResult:
        region = proof.crop_region
        transformed = proof.transformed_commitment
        original = proof.original_commitment
        dimension_match = (
            transformed.width == region.width and transformed.height == region.height
        )
        inside = region.fits_within(original.width, original.height)
        range_matches = proof.tile_range == TileRange.for_region(
            region, original.tile_size, original.tiles_x, original.tiles_y,
        )
        corners_complete = (
            [cp.tile_index for cp in proof.corner_proofs]
            == proof.tile_range.corners(original.tiles_x)
        )
        corners_in_range = all(
            proof.tile_range.contains(cp.tile_x, cp.tile_y) for cp in proof.corner_proofs
        )
        corners_verified = all(
            self.engine.verify_inclusion_proof(cp, original.root) for cp in proof.corner_proofs
        )
        ok = (
            proof.dimension_match and dimension_match and inside
            and range_matches and corners_complete and corners_in_range and corners_verified
        )
        return make_check(
            "transformation_proof", ok,
            "Crop proof valid" if ok else "Crop proof invalid",
            {
                "dimension_match": dimension_match,
                "region_inside_original": inside,
                "tile_range_matches_region": range_matches,
                "corner_proofs_complete": corners_complete,
                "corner_proofs_in_range": corners_in_range,
                "corner_proofs_verified": corners_verified,
            },
        )
