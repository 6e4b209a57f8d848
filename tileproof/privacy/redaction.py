"""
Module 05 - Regional Redaction

Redacts regions of an image (Gaussian blur or solid fill) and proves the
remainder is unchanged by spot-checking unaffected tiles for exact leaf
equality. Spot checks sample; they do not cover every unaffected tile.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.crypto.hashing import binding_commitment
from tileproof.imaging.operations import redact_regions
from tileproof.proofs.checks import check_commitment_match, check_hash_format, make_check
from tileproof.schemas.errors import DimensionError, TileproofException
from tileproof.schemas.privacy import (
    RedactionOptions,
    RedactionProof,
    RedactionRegion,
    RedactionSummary,
    SpotCheck,
)
from tileproof.schemas.verification import CheckResult, VerificationResult

logger = logging.getLogger(__name__)

LEAF_PREFIX_LENGTH = 16


def redaction_binding_payload(proof: RedactionProof) -> dict[str, Any]:
    return {
        "original_root": proof.original_commitment.root,
        "redacted_root": proof.redacted_commitment.root,
        "regions": proof.region_keys,
        "affected_count": proof.redactions.affected_tile_count,
    }


def spread_sample(items: Sequence[int], count: int) -> list[int]:
    """Up to `count` items spread evenly across `items`, in order."""
    if count <= 0 or not items:
        return []
    if len(items) <= count:
        return list(items)
    return [items[i * len(items) // count] for i in range(count)]


class RegionalRedactionService:
    """Redacts regions and proves the rest of the image is unmodified."""

    def __init__(
        self,
        engine: TileCommitmentEngine | None = None,
        default_options: RedactionOptions | None = None,
    ) -> None:
        self.engine = engine or TileCommitmentEngine()
        self.default_options = default_options or RedactionOptions()

    def redact_with_proof(
        self,
        original_bytes: bytes,
        regions: Sequence[RedactionRegion | dict[str, Any]],
        options: RedactionOptions | dict[str, Any] | None = None,
    ) -> tuple[bytes, RedactionProof]:
        """
        Redact `regions` in order and build a redaction proof.

        Regions are clipped to the image; a region entirely outside it is
        rejected.

        Returns:
            (redacted PNG bytes, RedactionProof)

        Raises:
            ImageDecodeError: If the original cannot be decoded
            DimensionError: If no region is given or a region misses the image
        """
        start = time.perf_counter()
        if options is None:
            options = self.default_options
        elif isinstance(options, dict):
            options = RedactionOptions.model_validate(options)

        if not regions:
            raise DimensionError("At least one redaction region is required")

        original = self.engine.compute_commitment(original_bytes)

        clipped: list[RedactionRegion] = []
        for raw in regions:
            region = raw if isinstance(raw, RedactionRegion) else RedactionRegion.model_validate(raw)
            inside = region.clip(original.width, original.height)
            if inside is None:
                raise DimensionError(
                    f"Redaction region {region.as_key()} does not intersect "
                    f"{original.width}x{original.height} image",
                    details={"region": region.as_key()},
                )
            clipped.append(inside)

        redacted_bytes = redact_regions(original_bytes, clipped, options)
        redacted = self.engine.compute_commitment(redacted_bytes)

        affected: set[int] = set()
        for region in clipped:
            affected.update(self.engine.tile_indices_for_region(original, region))
        unaffected = [i for i in range(original.total_tiles) if i not in affected]

        spot_checks = []
        for index in spread_sample(unaffected, options.spot_check_count):
            original_leaf = original.leaf_hash(index)
            redacted_leaf = redacted.leaf_hash(index)
            spot_checks.append(SpotCheck(
                tile_index=index,
                original_leaf_prefix=original_leaf[:LEAF_PREFIX_LENGTH],
                redacted_leaf_prefix=redacted_leaf[:LEAF_PREFIX_LENGTH],
                match=original_leaf == redacted_leaf,
            ))
        all_match = all(check.match for check in spot_checks)

        proof = RedactionProof(
            original_commitment=original.original_ref(),
            redacted_commitment=redacted.transformed_ref(),
            regions=clipped,
            affected_tile_indices=sorted(affected),
            spot_checks=spot_checks,
            all_unaffected_match=all_match,
            redactions=RedactionSummary(
                region_count=len(clipped),
                affected_tile_count=len(affected),
                unaffected_tile_count=len(unaffected),
                total_tiles=original.total_tiles,
                preserved_ratio=f"{len(unaffected) / original.total_tiles:.4f}",
            ),
            binding_commitment="",
            valid=all_match,
        )
        proof = proof.model_copy(update={
            "binding_commitment": binding_commitment(redaction_binding_payload(proof)),
            "proving_time_ms": round((time.perf_counter() - start) * 1000, 3),
        })

        if not all_match:
            logger.warning("Redaction altered unaffected tiles; proof marked invalid")
        logger.debug(
            "Redacted %d regions: %d/%d tiles affected",
            len(clipped), len(affected), original.total_tiles,
        )
        return redacted_bytes, proof

    def verify_redaction_proof(
        self,
        proof: RedactionProof | dict[str, Any],
        redacted_bytes: bytes | None = None,
    ) -> VerificationResult:
        """Verify a redaction proof. Never raises."""
        start = time.perf_counter()
        checks: list[CheckResult] = []

        try:
            if isinstance(proof, dict):
                proof = RedactionProof.model_validate(proof)
            elif not isinstance(proof, RedactionProof):
                raise TypeError(f"Expected a redaction proof, got {type(proof).__name__}")
        except (ValueError, TypeError) as e:
            checks.append(make_check("structure", False, f"Malformed redaction proof: {e}"))
            return self._result(checks, start)
        checks.append(make_check("structure", True, "Well-formed redaction proof"))

        try:
            format_check = check_hash_format(
                "binding_commitment_format", proof.binding_commitment, "binding_commitment",
            )
            checks.append(format_check)
            if format_check.ok:
                checks.append(check_commitment_match(
                    "binding_commitment",
                    proof.binding_commitment,
                    binding_commitment(redaction_binding_payload(proof)),
                    "binding_commitment",
                ))

            summary = proof.redactions
            affected = set(proof.affected_tile_indices)
            accounting_ok = (
                summary.affected_tile_count == len(affected)
                and summary.affected_tile_count + summary.unaffected_tile_count == summary.total_tiles
                and summary.region_count == len(proof.regions)
                and summary.preserved_ratio
                == f"{summary.unaffected_tile_count / summary.total_tiles:.4f}"
            )
            checks.append(make_check(
                "tile_accounting", accounting_ok,
                "Tile counts consistent" if accounting_ok else "Tile counts inconsistent",
            ))

            spot_ok = (
                proof.all_unaffected_match
                and all(check.match for check in proof.spot_checks)
                and all(check.tile_index not in affected for check in proof.spot_checks)
            )
            checks.append(make_check(
                "spot_checks", spot_ok,
                f"{len(proof.spot_checks)} unaffected tiles unchanged" if spot_ok
                else "Spot checks report modified unaffected tiles",
            ))

            if redacted_bytes is not None:
                checks.append(self._check_redacted_image(proof, redacted_bytes))

        except Exception as e:
            logger.exception("Redaction proof verification failed")
            checks.append(make_check("internal", False, f"Verification error: {e}"))

        return self._result(checks, start)

    def _check_redacted_image(self, proof: RedactionProof, redacted_bytes: bytes) -> CheckResult:
        try:
            engine = self.engine.with_tile_size(proof.redacted_commitment.tile_size)
            recomputed = engine.compute_commitment(redacted_bytes)
        except TileproofException as e:
            return make_check("redacted_image", False, f"Cannot commit to redacted image: {e.message}")
        return check_commitment_match(
            "redacted_image", proof.redacted_commitment.root, recomputed.root, "redacted image",
        )

    @staticmethod
    def _result(checks: list[CheckResult], start: float) -> VerificationResult:
        return VerificationResult.from_checks(
            checks,
            proof_kind="regional_redaction",
            verification_time_ms=round((time.perf_counter() - start) * 1000, 3),
        )
