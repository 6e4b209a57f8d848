"""Tiled Merkle commitments over images."""
from .engine import DEFAULT_TILE_SIZE, TileCommitment, TileCommitmentEngine

__all__ = ["DEFAULT_TILE_SIZE", "TileCommitment", "TileCommitmentEngine"]
