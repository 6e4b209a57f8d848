"""
Module 04 - Transformation Proof Generator

Builds a proof binding an original commitment to a transformed commitment,
one strongly typed variant per transformation tag.

Every variant carries:
- original_commitment: root + geometry (never the leaf list)
- transformed_commitment: root + dimensions
- binding_commitment = sha256(canonical_json({tag, original_root,
  transformed_root, ...tag fields}))

Unrecognized transformation types degrade to a generic proof.
"""

from __future__ import annotations

import logging
import math
import random
import time
from typing import Any, Callable

import numpy as np

from tileproof.commitment.engine import TileCommitment, TileCommitmentEngine
from tileproof.crypto.hashing import binding_commitment, sha256
from tileproof.imaging.raster import decode_rgb
from tileproof.schemas.canonical import dumps_canonical
from tileproof.schemas.commitment import Region
from tileproof.schemas.errors import DimensionError, UnsupportedTransformationError
from tileproof.schemas.transformation import (
    AdjustmentProof,
    BlurProof,
    CropProof,
    GenericProof,
    GrayscaleProof,
    ProofGuarantees,
    ProofMetrics,
    ResizeProof,
    TransformationProof,
    TransformationSpec,
    tag_fields,
)

logger = logging.getLogger(__name__)

DEFAULT_GRAYSCALE_SAMPLES = 10
DEFAULT_ADJUSTMENT_BOUNDS = (0.0, 3.0)
DEFAULT_ASPECT_EPSILON = 0.01


def transformation_binding_payload(proof: TransformationProof) -> dict[str, Any]:
    """Public fields covered by a transformation proof's binding commitment."""
    return {
        "original_root": proof.original_commitment.root,
        "transformed_root": proof.transformed_commitment.root,
        **tag_fields(proof),
    }


def sample_tile_indices(seed_material: bytes, total_tiles: int, count: int) -> list[int]:
    """
    Deterministic sample of tile indices seeded from `seed_material`.

    The same inputs always give the same sample, so a verifier holding the
    images can re-run it.
    """
    rng = random.Random(int.from_bytes(sha256(seed_material)[:8], "big"))
    return sorted(rng.sample(range(total_tiles), min(count, total_tiles)))


def _tile_is_achromatic(raster: np.ndarray, commitment: TileCommitment, index: int) -> bool:
    ts = commitment.tile_size
    tile_x, tile_y = commitment.tile_position(index)
    tile = raster[tile_y * ts:(tile_y + 1) * ts, tile_x * ts:(tile_x + 1) * ts]
    return bool(
        np.array_equal(tile[..., 0], tile[..., 1]) and np.array_equal(tile[..., 1], tile[..., 2])
    )


class TransformationProofGenerator:
    """
    Generates transformation proofs.

    Args:
        engine: Commitment engine shared with verifiers
        grayscale_sample_count: Tiles sampled as the grayscale witness
        adjustment_bounds: Inclusive [min, max] for brightness/contrast factors
        aspect_epsilon: Max |scale_x - scale_y| for an aspect-preserving resize
    """

    def __init__(
        self,
        engine: TileCommitmentEngine | None = None,
        grayscale_sample_count: int = DEFAULT_GRAYSCALE_SAMPLES,
        adjustment_bounds: tuple[float, float] = DEFAULT_ADJUSTMENT_BOUNDS,
        aspect_epsilon: float = DEFAULT_ASPECT_EPSILON,
    ) -> None:
        self.engine = engine or TileCommitmentEngine()
        self.grayscale_sample_count = grayscale_sample_count
        self.adjustment_bounds = adjustment_bounds
        self.aspect_epsilon = aspect_epsilon

        self._builders: dict[str, Callable[..., TransformationProof]] = {
            "crop": self._build_crop,
            "resize": self._build_resize,
            "grayscale": self._build_grayscale,
            "blur": self._build_blur,
            "brightness": self._build_adjustment,
            "contrast": self._build_adjustment,
            "generic": self._build_generic,
        }

    def generate_proof(
        self,
        original_bytes: bytes | None,
        transformed_bytes: bytes,
        spec: TransformationSpec | dict[str, Any],
        precomputed_original_commitment: TileCommitment | None = None,
    ) -> TransformationProof:
        """
        Build a transformation proof.

        Args:
            original_bytes: Original image (ignored when a commitment is supplied)
            transformed_bytes: Transformed image
            spec: Requested transformation
            precomputed_original_commitment: Reuse an existing original commitment

        Raises:
            ImageDecodeError: If either image cannot be decoded
            DimensionError: For bad dimensions or an out-of-bounds crop
        """
        start = time.perf_counter()
        if not isinstance(spec, TransformationSpec):
            spec = TransformationSpec.model_validate(spec)

        original = precomputed_original_commitment
        if original is None:
            if original_bytes is None:
                raise DimensionError("Either original bytes or an original commitment is required")
            original = self.engine.compute_commitment(original_bytes)

        raster = decode_rgb(transformed_bytes, self.engine.max_dimension)
        transformed = self.engine.compute_commitment_from_array(raster)

        tag = spec.tag
        if not spec.is_supported:
            # Degrade, don't reject
            logger.warning("%s; degrading to generic proof", UnsupportedTransformationError(spec.type).message)

        base = {
            "original_commitment": original.original_ref(),
            "transformed_commitment": transformed.transformed_ref(),
            "binding_commitment": "",
        }
        proof = self._builders[tag](spec, original, transformed, raster, base)

        binding = binding_commitment(transformation_binding_payload(proof))
        proof = proof.model_copy(update={"binding_commitment": binding})

        elapsed_ms = (time.perf_counter() - start) * 1000
        metrics = ProofMetrics(
            proving_time_ms=round(elapsed_ms, 3),
            proof_size=len(dumps_canonical(proof).encode("utf-8")),
            original_tiles=original.total_tiles,
            transformed_tiles=transformed.total_tiles,
        )
        proof = proof.model_copy(update={"metrics": metrics})

        logger.debug(
            "Generated %s proof valid=%s in %.1fms", tag, proof.valid, elapsed_ms,
        )
        return proof

    # ------------------------------------------------------------------
    # Per-tag builders
    # ------------------------------------------------------------------

    def _build_crop(self, spec, original, transformed, raster, base) -> CropProof:
        try:
            region = Region.from_params(spec.params)
        except (KeyError, TypeError, ValueError) as e:
            raise DimensionError(
                f"Crop requires non-negative left/top and positive width/height: {e}",
                details={"params": spec.params},
            ) from e

        if not region.fits_within(original.width, original.height):
            raise DimensionError(
                f"Crop region {region.as_key()} exceeds original {original.width}x{original.height}",
                details={"region": region.as_key(), "width": original.width, "height": original.height},
            )

        tile_range = self.engine.tile_range_for_region(original, region)
        corner_proofs = [
            self.engine.inclusion_proof(original, index)
            for index in tile_range.corners(original.tiles_x)
        ]
        dimension_match = (
            transformed.width == region.width and transformed.height == region.height
        )
        return CropProof(
            **base,
            crop_region=region,
            tile_range=tile_range,
            involved_tile_count=tile_range.count,
            corner_proofs=corner_proofs,
            dimension_match=dimension_match,
            valid=dimension_match,
            guarantees=ProofGuarantees(transformation_checked=True, witness="merkle_paths"),
        )

    def _build_resize(self, spec, original, transformed, raster, base) -> ResizeProof:
        scale_x = round(transformed.width / original.width, 6)
        scale_y = round(transformed.height / original.height, 6)
        scale_valid = scale_x > 0 and scale_y > 0
        return ResizeProof(
            **base,
            scale_x=scale_x,
            scale_y=scale_y,
            aspect_preserved=abs(scale_x - scale_y) < self.aspect_epsilon,
            scale_valid=scale_valid,
            interpolation=str(spec.params.get("fit", "cover")),
            valid=scale_valid,
            guarantees=ProofGuarantees(transformation_checked=True, witness="parameters"),
        )

    def _build_grayscale(self, spec, original, transformed, raster, base) -> GrayscaleProof:
        dimensions_match = (
            original.width == transformed.width and original.height == transformed.height
        )
        sampled = sample_tile_indices(
            (original.root + transformed.root).encode("ascii"),
            transformed.total_tiles,
            self.grayscale_sample_count,
        )
        sample_consistent = all(_tile_is_achromatic(raster, transformed, i) for i in sampled)
        return GrayscaleProof(
            **base,
            dimensions_match=dimensions_match,
            method=str(spec.params.get("method", "luminance")),
            sampled_tile_indices=sampled,
            sample_consistent=sample_consistent,
            valid=dimensions_match,
            guarantees=ProofGuarantees(transformation_checked=True, witness="sampled"),
        )

    def _build_blur(self, spec, original, transformed, raster, base) -> BlurProof:
        sigma = float(spec.params.get("sigma", 1.0))
        radius = spec.params.get("radius")
        kernel_size = int(radius) if radius else math.ceil(sigma * 3) * 2 + 1
        dimensions_match = (
            original.width == transformed.width and original.height == transformed.height
        )
        return BlurProof(
            **base,
            sigma=sigma,
            kernel_size=kernel_size,
            dimensions_match=dimensions_match,
            valid=dimensions_match,
            guarantees=ProofGuarantees(transformation_checked=True, witness="parameters"),
        )

    def _build_adjustment(self, spec, original, transformed, raster, base) -> AdjustmentProof:
        tag = spec.tag
        factor = float(spec.params.get(tag, spec.params.get("factor", 1.0)))
        low, high = self.adjustment_bounds
        factor_in_range = low <= factor <= high
        dimensions_match = (
            original.width == transformed.width and original.height == transformed.height
        )
        return AdjustmentProof(
            **base,
            tag=tag,
            factor=factor,
            factor_min=low,
            factor_max=high,
            factor_in_range=factor_in_range,
            dimensions_match=dimensions_match,
            valid=dimensions_match and factor_in_range,
            guarantees=ProofGuarantees(transformation_checked=True, witness="parameters"),
        )

    def _build_generic(self, spec, original, transformed, raster, base) -> GenericProof:
        return GenericProof(
            **base,
            transformation_type=spec.type,
            params=dict(spec.params),
            valid=True,
            guarantees=ProofGuarantees(transformation_checked=False, witness="binding_only"),
        )
