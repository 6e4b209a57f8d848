"""
Module 03 - Tile Commitment Engine Tests
Tests for tileproof/commitment/engine.py and tileproof/imaging/

Covers:
- 256x256 at 32px -> 8x8 grid, 64 leaves, depth 6
- determinism across encodings and runs
- single-pixel sensitivity, including seeded random byte mutations
- truncated edge tiles
- inclusion proofs and tamper rejection
- region -> tile range arithmetic
- decode and dimension errors
"""
import io
import random

import numpy as np
import pytest
from PIL import Image

from fixtures.images import make_gradient_png, make_png, make_solid_png
from tileproof.commitment.engine import TileCommitmentEngine
from tileproof.crypto.hashing import is_sha256_hex
from tileproof.imaging.raster import decode_rgb
from tileproof.schemas.commitment import Region, TileRange
from tileproof.schemas.errors import DimensionError, ImageDecodeError, IndexOutOfRangeError


class TestGridGeometry:
    """Grid layout and tree shape."""

    def test_256_square_grid(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)

        assert (commitment.tiles_x, commitment.tiles_y) == (8, 8)
        assert commitment.total_tiles == 64
        assert len(commitment.leaf_hashes) == 64
        assert commitment.depth == 6
        assert commitment.padded_leaf_count == 64
        assert is_sha256_hex(commitment.root)

    def test_truncated_edge_tiles(self, engine, image_100x60):
        commitment = engine.compute_commitment(image_100x60)

        assert (commitment.tiles_x, commitment.tiles_y) == (4, 2)
        assert commitment.total_tiles == 8
        assert commitment.padded_leaf_count == 8

    def test_padding_for_non_power_of_two(self):
        engine = TileCommitmentEngine(tile_size=32)
        commitment = engine.compute_commitment(make_gradient_png(96, 32))

        assert commitment.total_tiles == 3
        assert commitment.padded_leaf_count == 4
        assert commitment.depth == 2

    def test_single_tile_image(self, engine):
        commitment = engine.compute_commitment(make_solid_png(10, 10))
        assert commitment.total_tiles == 1
        assert commitment.depth == 0
        assert commitment.root == commitment.leaf_hash(0)

    def test_summary_carries_no_leaves(self, engine, image_256):
        summary = engine.compute_commitment(image_256).to_summary()
        dumped = summary.model_dump()

        assert dumped["total_tiles"] == 64
        assert dumped["depth"] == 6
        assert "leaves" not in dumped and "leaf_hashes" not in dumped

    def test_invalid_tile_size(self):
        with pytest.raises(DimensionError):
            TileCommitmentEngine(tile_size=0)


class TestDeterminism:
    """Same pixels -> same root, regardless of container."""

    def test_repeated_commitments_equal(self, engine, image_256):
        roots = {engine.compute_commitment(image_256).root for _ in range(3)}
        assert len(roots) == 1

    def test_alpha_and_container_ignored(self, engine):
        pixels = decode_rgb(make_gradient_png(64, 64))
        rgba = np.dstack([pixels, np.full(pixels.shape[:2], 200, dtype=np.uint8)])
        buffer = io.BytesIO()
        Image.fromarray(rgba).save(buffer, format="PNG")

        assert (
            engine.compute_commitment(buffer.getvalue()).root
            == engine.compute_commitment(make_png(pixels)).root
        )

    def test_array_and_bytes_agree(self, engine, image_256):
        raster = decode_rgb(image_256)
        assert engine.compute_commitment_from_array(raster).root == engine.compute_commitment(image_256).root


class TestSensitivity:
    """Any pixel change moves the root."""

    def test_single_pixel_changes_root(self, engine, image_256):
        pixels = decode_rgb(image_256).copy()
        pixels[200, 17, 1] ^= 1

        original = engine.compute_commitment(image_256)
        modified = engine.compute_commitment(make_png(pixels))

        assert original.root != modified.root
        changed = [i for i in range(64) if original.leaf_hash(i) != modified.leaf_hash(i)]
        assert changed == [6 * 8 + 0]

    @pytest.mark.parametrize("image_fixture", ["image_100x60", "image_256"])
    def test_random_byte_mutations_change_root(self, engine, request, image_fixture):
        pixels = decode_rgb(request.getfixturevalue(image_fixture))
        height, width = pixels.shape[:2]
        original = engine.compute_commitment_from_array(pixels)
        rng = random.Random(1234)

        # Last row and column hit the truncated edge tiles on non-aligned images.
        positions = [(height - 1, width - 1), (height - 1, 0), (0, width - 1)]
        positions += [(rng.randrange(height), rng.randrange(width)) for _ in range(60)]

        for y, x in positions:
            channel = rng.randrange(3)
            mutated = pixels.copy()
            mutated[y, x, channel] = (int(mutated[y, x, channel]) + rng.randint(1, 255)) % 256
            modified = engine.compute_commitment_from_array(mutated)

            assert modified.root != original.root, (y, x, channel)
            changed = [
                i for i in range(original.total_tiles)
                if original.leaf_hash(i) != modified.leaf_hash(i)
            ]
            assert changed == [(y // 32) * original.tiles_x + x // 32], (y, x, channel)

    def test_tile_size_changes_root(self, image_256):
        small = TileCommitmentEngine(tile_size=16).compute_commitment(image_256)
        large = TileCommitmentEngine(tile_size=32).compute_commitment(image_256)
        assert small.root != large.root


class TestInclusionProofs:
    """Per-tile inclusion proofs."""

    def test_every_tile_verifies(self, engine, image_100x60):
        commitment = engine.compute_commitment(image_100x60)
        for index in range(commitment.total_tiles):
            proof = engine.inclusion_proof(commitment, index)
            assert (proof.tile_x, proof.tile_y) == commitment.tile_position(index)
            assert engine.verify_inclusion_proof(proof, commitment.root)

    def test_out_of_range_index(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        with pytest.raises(IndexOutOfRangeError) as exc_info:
            engine.get_merkle_proof(commitment, 64)
        assert exc_info.value.details["size"] == 64

    def test_tampered_sibling_rejected(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        proof = engine.inclusion_proof(commitment, 10)
        forged_step = proof.path[2].model_copy(update={"sibling": "00" * 32})
        forged = proof.model_copy(update={"path": proof.path[:2] + [forged_step] + proof.path[3:]})

        assert not engine.verify_inclusion_proof(forged, commitment.root)

    def test_relabelled_index_rejected(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        proof = engine.inclusion_proof(commitment, 10)
        relabelled = proof.model_copy(update={"tile_index": 11})

        assert not engine.verify_inclusion_proof(relabelled, commitment.root)

    def test_malformed_path_is_false_not_error(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        assert not engine.verify_merkle_proof("zz", [{"sibling": "nothex", "is_left": True}], commitment.root)

    def test_verify_with_raw_path(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        proof = engine.get_merkle_proof(commitment, 33)
        assert engine.verify_merkle_proof(commitment.leaf_hash(33), proof.to_path(), commitment.root, 33)


class TestRegionArithmetic:
    """Region -> tile range, floor/ceil clipped to the grid."""

    def test_aligned_crop_region(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        tile_range = engine.tile_range_for_region(commitment, Region(x=64, y=64, width=128, height=128))

        assert tile_range == TileRange(x_start=2, x_end=6, y_start=2, y_end=6)
        assert tile_range.count == 16

    def test_unaligned_region_rounds_outward(self, engine, image_256):
        commitment = engine.compute_commitment(image_256)
        indices = engine.tile_indices_for_region(commitment, Region(x=40, y=10, width=30, height=30))
        assert indices == [1, 2, 9, 10]

    def test_region_clipped_to_grid(self, engine, image_100x60):
        commitment = engine.compute_commitment(image_100x60)
        tile_range = engine.tile_range_for_region(commitment, Region(x=90, y=50, width=500, height=500))
        assert (tile_range.x_end, tile_range.y_end) == (4, 2)

    def test_corners_deduplicated(self):
        single_column = TileRange(x_start=3, x_end=4, y_start=0, y_end=2)
        assert single_column.corners(8) == [3, 11]


class TestDecodeErrors:
    def test_garbage_bytes(self, engine):
        with pytest.raises(ImageDecodeError):
            engine.compute_commitment(b"definitely not an image")

    def test_empty_bytes(self, engine):
        with pytest.raises(ImageDecodeError):
            engine.compute_commitment(b"")

    def test_dimension_limit(self):
        engine = TileCommitmentEngine(max_dimension=100)
        with pytest.raises(DimensionError):
            engine.compute_commitment(make_solid_png(101, 10))
