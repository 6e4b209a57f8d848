"""
Module 05 - Selective Reveal

Proves that a disclosed sub-region came from a committed, undisclosed
original. The proof carries the original root, the revealed region's own
commitment and Merkle paths for a bounded number of revealed tiles.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import numpy as np

from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.crypto.hashing import binding_commitment
from tileproof.imaging.operations import crop_region
from tileproof.imaging.raster import open_image
from tileproof.proofs.checks import check_commitment_match, check_hash_format, make_check
from tileproof.schemas.commitment import Region, TileRange
from tileproof.schemas.errors import DimensionError, TileproofException
from tileproof.schemas.privacy import SelectiveRevealProof
from tileproof.schemas.verification import CheckResult, VerificationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_TILE_PROOFS = 4


def _as_region(region: Region | dict[str, Any]) -> Region:
    if isinstance(region, Region):
        return region
    return Region.from_params(region)


def reveal_binding_payload(proof: SelectiveRevealProof) -> dict[str, Any]:
    return {
        "original_root": proof.original_commitment.root,
        "revealed_root": proof.revealed_commitment.root,
        "region": proof.region.model_dump(),
        "tile_count": proof.revealed_tile_count,
    }


class SelectiveRevealService:
    """Generates and verifies selective-reveal proofs."""

    def __init__(
        self,
        engine: TileCommitmentEngine | None = None,
        max_tile_proofs: int = DEFAULT_MAX_TILE_PROOFS,
    ) -> None:
        self.engine = engine or TileCommitmentEngine()
        self.max_tile_proofs = max_tile_proofs

    def generate_proof(
        self,
        original_bytes: bytes,
        region: Region | dict[str, Any],
        original_signature: str | None = None,
    ) -> SelectiveRevealProof:
        """
        Build a selective-reveal proof for `region` of the original.

        Raises:
            ImageDecodeError: If the original cannot be decoded
            DimensionError: If the region does not lie inside the original
        """
        start = time.perf_counter()
        region = _as_region(region)

        raster = np.asarray(open_image(original_bytes, self.engine.max_dimension), dtype=np.uint8)
        original = self.engine.compute_commitment_from_array(raster)
        if not region.fits_within(original.width, original.height):
            raise DimensionError(
                f"Reveal region {region.as_key()} exceeds original {original.width}x{original.height}",
                details={"region": region.as_key()},
            )

        revealed = self.engine.compute_commitment_from_array(
            raster[region.y:region.bottom, region.x:region.right]
        )

        tile_range = self.engine.tile_range_for_region(original, region)
        indices = tile_range.indices(original.tiles_x)
        tile_proofs = [
            self.engine.inclusion_proof(original, index)
            for index in indices[: self.max_tile_proofs]
        ]

        proof = SelectiveRevealProof(
            original_commitment=original.original_ref(),
            revealed_commitment=revealed.transformed_ref(),
            region=region,
            tile_range=tile_range,
            tile_proofs=tile_proofs,
            revealed_tile_count=len(indices),
            total_original_tiles=original.total_tiles,
            reveal_ratio=f"{len(indices) / original.total_tiles:.4f}",
            binding_commitment="",
            original_signature=original_signature,
        )
        proof = proof.model_copy(update={
            "binding_commitment": binding_commitment(reveal_binding_payload(proof)),
            "proving_time_ms": round((time.perf_counter() - start) * 1000, 3),
        })
        logger.debug(
            "Selective reveal %s: %d/%d tiles", region.as_key(), len(indices), original.total_tiles,
        )
        return proof

    def extract_revealed_image(self, original_bytes: bytes, region: Region | dict[str, Any]) -> bytes:
        """The revealed region as lossless PNG."""
        return crop_region(original_bytes, _as_region(region))

    def verify_proof(
        self,
        proof: SelectiveRevealProof | dict[str, Any],
        revealed_bytes: bytes | None = None,
    ) -> VerificationResult:
        """
        Verify a selective-reveal proof. Never raises.

        Checks the binding commitment, every included Merkle path against the
        original root, that every proven tile lies in the region's tile range,
        and optionally the revealed image against its commitment.
        """
        start = time.perf_counter()
        checks: list[CheckResult] = []

        try:
            if isinstance(proof, dict):
                proof = SelectiveRevealProof.model_validate(proof)
            elif not isinstance(proof, SelectiveRevealProof):
                raise TypeError(f"Expected a selective reveal proof, got {type(proof).__name__}")
        except (ValueError, TypeError) as e:
            checks.append(make_check("structure", False, f"Malformed selective reveal proof: {e}"))
            return self._result(checks, start)
        checks.append(make_check("structure", True, "Well-formed selective reveal proof"))

        try:
            format_check = check_hash_format(
                "binding_commitment_format", proof.binding_commitment, "binding_commitment",
            )
            checks.append(format_check)
            if format_check.ok:
                checks.append(check_commitment_match(
                    "binding_commitment",
                    proof.binding_commitment,
                    binding_commitment(reveal_binding_payload(proof)),
                    "binding_commitment",
                ))

            original = proof.original_commitment
            expected_range = TileRange.for_region(
                proof.region, original.tile_size, original.tiles_x, original.tiles_y,
            )
            range_ok = (
                expected_range == proof.tile_range
                and expected_range.count == proof.revealed_tile_count
                and proof.region.fits_within(original.width, original.height)
            )
            checks.append(make_check(
                "region_tiles", range_ok,
                "Tile range matches region" if range_ok else "Tile range inconsistent with region",
                {"expected_count": expected_range.count, "claimed_count": proof.revealed_tile_count},
            ))

            in_region = all(
                expected_range.contains(tp.tile_x, tp.tile_y)
                and tp.tile_index == tp.tile_y * original.tiles_x + tp.tile_x
                for tp in proof.tile_proofs
            )
            checks.append(make_check(
                "tiles_in_region", in_region,
                "Proven tiles lie in the revealed region" if in_region
                else "A proven tile lies outside the revealed region",
            ))

            failed = [
                tp.tile_index for tp in proof.tile_proofs
                if not self.engine.verify_inclusion_proof(tp, original.root)
            ]
            paths_ok = bool(proof.tile_proofs) and not failed
            checks.append(make_check(
                "merkle_proofs", paths_ok,
                f"{len(proof.tile_proofs)} tile paths terminate at the original root" if paths_ok
                else "Tile paths do not terminate at the original root",
                {"failed_tiles": failed},
            ))

            revealed = proof.revealed_commitment
            dims_ok = revealed.width == proof.region.width and revealed.height == proof.region.height
            checks.append(make_check(
                "revealed_dimensions", dims_ok,
                "Revealed commitment matches region size" if dims_ok
                else "Revealed commitment size differs from region",
            ))

            if revealed_bytes is not None:
                checks.append(self._check_revealed_image(proof, revealed_bytes))

        except Exception as e:
            logger.exception("Selective reveal verification failed")
            checks.append(make_check("internal", False, f"Verification error: {e}"))

        return self._result(checks, start)

    def _check_revealed_image(self, proof: SelectiveRevealProof, revealed_bytes: bytes) -> CheckResult:
        try:
            engine = self.engine.with_tile_size(proof.revealed_commitment.tile_size)
            recomputed = engine.compute_commitment(revealed_bytes)
        except TileproofException as e:
            return make_check("revealed_image", False, f"Cannot commit to revealed image: {e.message}")
        return check_commitment_match(
            "revealed_image", proof.revealed_commitment.root, recomputed.root, "revealed image",
        )

    @staticmethod
    def _result(checks: list[CheckResult], start: float) -> VerificationResult:
        return VerificationResult.from_checks(
            checks,
            proof_kind="selective_reveal",
            verification_time_ms=round((time.perf_counter() - start) * 1000, 3),
        )
