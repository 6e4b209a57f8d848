"""
Module 03 - Tile Commitment Engine
File: engine.py

Purpose: Commit to an image with a tiled Merkle tree and serve per-tile
inclusion proofs.

Pipeline:
1. Decode to an RGB raster (alpha discarded)
2. Partition into tile_size x tile_size tiles, row-major, edge tiles truncated
3. leaf = sha256(0x00 || u32be(tile_x) || u32be(tile_y) || tile RGB bytes)
4. Pad leaves to a power of two with ZERO_HASH and build the tree bottom-up

The leaf list never leaves this module except through inclusion proofs;
proof records carry roots and geometry only.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from tileproof.crypto.hashing import from_hex, hash_tile
from tileproof.imaging.raster import (
    DEFAULT_MAX_DIMENSION,
    decode_rgb,
    iter_tiles,
    validate_raster,
)
from tileproof.merkle.merkle_tree import (
    MerkleProof,
    build_merkle_levels,
    build_merkle_proof,
    compute_tree_depth,
    verify_merkle_proof,
)
from tileproof.schemas.commitment import (
    CommitmentSummary,
    MerklePathStep,
    OriginalCommitmentRef,
    Region,
    TileInclusionProof,
    TileRange,
    TransformedCommitmentRef,
)
from tileproof.schemas.errors import DimensionError, IndexOutOfRangeError

logger = logging.getLogger(__name__)

DEFAULT_TILE_SIZE = 32


@dataclass(frozen=True)
class TileCommitment:
    """
    Tiled Merkle commitment to one image.

    Attributes:
        width, height: Image dimensions in pixels
        tile_size: Tile edge in pixels
        tiles_x, tiles_y: Grid dimensions
        leaves: Leaf hashes in row-major order (internal)
        levels: Padded tree levels, leaves first, root last (internal)
    """
    width: int
    height: int
    tile_size: int
    tiles_x: int
    tiles_y: int
    leaves: tuple[bytes, ...] = field(repr=False)
    levels: tuple[tuple[bytes, ...], ...] = field(repr=False)

    @property
    def root_bytes(self) -> bytes:
        return self.levels[-1][0]

    @property
    def root(self) -> str:
        return self.root_bytes.hex()

    @property
    def leaf_hashes(self) -> list[str]:
        return [leaf.hex() for leaf in self.leaves]

    @property
    def total_tiles(self) -> int:
        return self.tiles_x * self.tiles_y

    @property
    def padded_leaf_count(self) -> int:
        return len(self.levels[0])

    @property
    def depth(self) -> int:
        return compute_tree_depth(self.total_tiles)

    def leaf_hash(self, tile_index: int) -> str:
        return self.leaves[tile_index].hex()

    def tile_position(self, tile_index: int) -> tuple[int, int]:
        """(tile_x, tile_y) of a row-major leaf index."""
        return tile_index % self.tiles_x, tile_index // self.tiles_x

    def to_summary(self) -> CommitmentSummary:
        return CommitmentSummary(
            root=self.root,
            width=self.width,
            height=self.height,
            tile_size=self.tile_size,
            tiles_x=self.tiles_x,
            tiles_y=self.tiles_y,
            total_tiles=self.total_tiles,
            depth=self.depth,
        )

    def original_ref(self) -> OriginalCommitmentRef:
        return OriginalCommitmentRef(
            root=self.root,
            width=self.width,
            height=self.height,
            tile_size=self.tile_size,
            tiles_x=self.tiles_x,
            tiles_y=self.tiles_y,
        )

    def transformed_ref(self) -> TransformedCommitmentRef:
        return TransformedCommitmentRef(
            root=self.root,
            width=self.width,
            height=self.height,
            tile_size=self.tile_size,
        )


def _as_bytes(value: "str | bytes") -> bytes:
    return value if isinstance(value, bytes) else from_hex(value)


class TileCommitmentEngine:
    """
    Computes tile commitments and Merkle inclusion proofs.

    Args:
        tile_size: Tile edge in pixels (default 32)
        max_dimension: Largest accepted width or height
    """

    def __init__(
        self,
        tile_size: int = DEFAULT_TILE_SIZE,
        max_dimension: int = DEFAULT_MAX_DIMENSION,
    ) -> None:
        if tile_size <= 0:
            raise DimensionError(f"tile_size must be positive, got {tile_size}")
        self.tile_size = tile_size
        self.max_dimension = max_dimension

    def with_tile_size(self, tile_size: int) -> "TileCommitmentEngine":
        """Engine sharing this one's limits but tiling at `tile_size`."""
        if tile_size == self.tile_size:
            return self
        return TileCommitmentEngine(tile_size=tile_size, max_dimension=self.max_dimension)

    # ------------------------------------------------------------------
    # Commitment
    # ------------------------------------------------------------------

    def compute_commitment(self, image_bytes: bytes) -> TileCommitment:
        """
        Commit to encoded image bytes.

        Raises:
            ImageDecodeError: If the bytes cannot be decoded
            DimensionError: If the image has zero or excessive dimensions
        """
        raster = decode_rgb(image_bytes, self.max_dimension)
        return self._commit(raster)

    def compute_commitment_from_array(self, raster: np.ndarray) -> TileCommitment:
        """Commit to an already decoded HxWx3 uint8 raster."""
        return self._commit(validate_raster(raster, self.max_dimension))

    def _commit(self, raster: np.ndarray) -> TileCommitment:
        height, width = raster.shape[:2]
        ts = self.tile_size
        tiles_x = -(-width // ts)
        tiles_y = -(-height // ts)

        leaves = tuple(hash_tile(tx, ty, pixels) for tx, ty, pixels in iter_tiles(raster, ts))
        levels = build_merkle_levels(leaves)

        commitment = TileCommitment(
            width=width,
            height=height,
            tile_size=ts,
            tiles_x=tiles_x,
            tiles_y=tiles_y,
            leaves=leaves,
            levels=tuple(tuple(level) for level in levels),
        )
        logger.debug(
            "Committed %dx%d image: %dx%d tiles, root %s",
            width, height, tiles_x, tiles_y, commitment.root[:16],
        )
        return commitment

    # ------------------------------------------------------------------
    # Inclusion proofs
    # ------------------------------------------------------------------

    def get_merkle_proof(self, commitment: TileCommitment, tile_index: int) -> MerkleProof:
        """
        Inclusion proof for one tile.

        Raises:
            IndexOutOfRangeError: If tile_index is not a committed tile
        """
        if not 0 <= tile_index < commitment.total_tiles:
            raise IndexOutOfRangeError(
                f"Tile index {tile_index} out of range for {commitment.total_tiles} tiles",
                index=tile_index,
                size=commitment.total_tiles,
            )
        return build_merkle_proof(commitment.levels, tile_index)

    def inclusion_proof(self, commitment: TileCommitment, tile_index: int) -> TileInclusionProof:
        """Serializable inclusion proof (leaf hash + path) for one tile."""
        proof = self.get_merkle_proof(commitment, tile_index)
        tile_x, tile_y = commitment.tile_position(tile_index)
        return TileInclusionProof(
            tile_index=tile_index,
            tile_x=tile_x,
            tile_y=tile_y,
            leaf_hash=commitment.leaf_hash(tile_index),
            path=[MerklePathStep(**step) for step in proof.to_path()],
        )

    def verify_merkle_proof(
        self,
        leaf_hash: "str | bytes",
        proof: "MerkleProof | Sequence[Any]",
        root: "str | bytes",
        leaf_index: int = 0,
    ) -> bool:
        """
        Recombine `leaf_hash` along the proof path and compare with `root`.

        Accepts hex or raw hashes and either a MerkleProof or a serialized
        path. Malformed input yields False, never an exception.
        """
        try:
            if not isinstance(proof, MerkleProof):
                proof = MerkleProof.from_path(leaf_index, proof)
            return verify_merkle_proof(_as_bytes(leaf_hash), proof, _as_bytes(root))
        except (ValueError, TypeError, KeyError, AttributeError):
            return False

    def verify_inclusion_proof(self, proof: TileInclusionProof, root: "str | bytes") -> bool:
        """
        Verify a serialized tile proof. The path orientation must also spell
        out the claimed tile index, so a valid path cannot be relabelled.
        """
        orientation_ok = all(
            step.is_left == bool((proof.tile_index >> level) & 1)
            for level, step in enumerate(proof.path)
        )
        return orientation_ok and self.verify_merkle_proof(
            proof.leaf_hash, proof.path, root, proof.tile_index,
        )

    # ------------------------------------------------------------------
    # Region arithmetic
    # ------------------------------------------------------------------

    def tile_range_for_region(self, commitment: TileCommitment, region: Region) -> TileRange:
        """Tile range overlapping `region`, floor/ceil arithmetic clipped to the grid."""
        return TileRange.for_region(
            region, commitment.tile_size, commitment.tiles_x, commitment.tiles_y
        )

    def tile_indices_for_region(self, commitment: TileCommitment, region: Region) -> list[int]:
        """Row-major leaf indices of every tile overlapping `region`."""
        return self.tile_range_for_region(commitment, region).indices(commitment.tiles_x)
