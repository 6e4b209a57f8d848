"""
Module 02 - Merkle Tree and Commitments
Padded Merkle tree construction + proof generation/verification.

Usage:
    from tileproof.merkle import build_merkle_levels, build_merkle_proof, verify_merkle_proof

    levels = build_merkle_levels(leaves)
    root = levels[-1][0]
    proof = build_merkle_proof(levels, index=2)
    assert verify_merkle_proof(leaves[2], proof, root)
"""
from .merkle_tree import (
    EMPTY_TREE_ROOT,
    ZERO_HASH,
    MerkleProof,
    MerkleStep,
    build_merkle_levels,
    build_merkle_proof,
    build_merkle_root,
    compute_tree_depth,
    merkle_parent,
    next_power_of_two,
    pad_leaves,
    verify_merkle_proof,
)

__all__ = [
    "EMPTY_TREE_ROOT",
    "ZERO_HASH",
    "MerkleProof",
    "MerkleStep",
    "build_merkle_levels",
    "build_merkle_proof",
    "build_merkle_root",
    "compute_tree_depth",
    "merkle_parent",
    "next_power_of_two",
    "pad_leaves",
    "verify_merkle_proof",
]
