"""
Module 02 - Merkle Tree Implementation
Padded Merkle tree construction, inclusion proof generation, and verification.

This module provides:
- Padded tree construction (leaves padded to a power of two)
- Inclusion proofs as ordered (sibling, is_left) steps
- Proof verification against a claimed root

Commitment Rules (Hard Contracts):
1. Leaf hashing is done upstream (tileproof.crypto.hash_tile / hash_indexed_leaf)
2. Parent hashing: parent = sha256(0x01 || left || right)
3. Padding: leaf list padded to the next power of two with ZERO_HASH
4. Odd trailing node at any level is paired with itself
5. Empty leaves: root is sha256(b"")
6. Single leaf: root = leaf

Determinism Notes:
- This module never sorts leaves - it trusts input order
- Tiles are ordered row-major by the commitment engine
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from tileproof.crypto.hashing import from_hex, hash_node, sha256


# Empty tree sentinel: sha256 of empty bytes
EMPTY_TREE_ROOT: bytes = sha256(b"")

# Filler for padding leaves up to a power of two
ZERO_HASH: bytes = bytes(32)


@dataclass(frozen=True)
class MerkleStep:
    """
    One step of an inclusion proof.

    Attributes:
        sibling: Sibling hash at this level
        is_left: True when the sibling sits on the left of the running hash
    """
    sibling: bytes
    is_left: bool


@dataclass(frozen=True)
class MerkleProof:
    """
    Inclusion proof for a single leaf, ordered from leaf to root.

    Attributes:
        leaf_index: 0-based index of the leaf in the (unpadded) leaf list
        steps: Sibling hashes with orientation, bottom-up
    """
    leaf_index: int
    steps: tuple[MerkleStep, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.leaf_index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.leaf_index}")

    def to_path(self) -> list[dict[str, Any]]:
        """Serialize the steps as [{"sibling": hex, "is_left": bool}, ...]."""
        return [{"sibling": step.sibling.hex(), "is_left": step.is_left} for step in self.steps]

    @classmethod
    def from_path(cls, leaf_index: int, path: Sequence[Any]) -> "MerkleProof":
        """
        Rebuild a proof from serialized steps (dicts or objects with
        `sibling` and `is_left`).

        Raises:
            ValueError: If a sibling is not valid hex
        """
        steps = []
        for step in path:
            if isinstance(step, dict):
                sibling, is_left = step["sibling"], step["is_left"]
            else:
                sibling, is_left = step.sibling, step.is_left
            steps.append(MerkleStep(sibling=from_hex(sibling), is_left=bool(is_left)))
        return cls(leaf_index=leaf_index, steps=tuple(steps))


def merkle_parent(left: bytes, right: bytes) -> bytes:
    """Compute the parent hash of two child nodes."""
    return hash_node(left, right)


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def pad_leaves(leaves: Sequence[bytes]) -> list[bytes]:
    """Pad a leaf list to the next power of two with ZERO_HASH."""
    padded = list(leaves)
    padded.extend([ZERO_HASH] * (next_power_of_two(len(padded)) - len(padded)))
    return padded


def build_merkle_levels(leaves: Sequence[bytes]) -> list[list[bytes]]:
    """
    Build every level of the padded tree, leaves first, root last.

    Example: 3 leaves [a, b, c] -> [[a, b, c, Z], [ab, cZ], [root]]

    Args:
        leaves: Leaf hashes in committed order

    Returns:
        List of levels; the last level holds the single root
    """
    if len(leaves) == 0:
        return [[EMPTY_TREE_ROOT]]

    levels: list[list[bytes]] = [pad_leaves(leaves)]

    while len(levels[-1]) > 1:
        current = levels[-1]
        next_level: list[bytes] = []
        for i in range(0, len(current), 2):
            left = current[i]
            # Odd trailing node pairs with itself
            right = current[i + 1] if i + 1 < len(current) else left
            next_level.append(merkle_parent(left, right))
        levels.append(next_level)

    return levels


def build_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """
    Build the Merkle root of a sequence of leaf hashes.

    Example:
        >>> leaves = [sha256(b"a"), sha256(b"b"), sha256(b"c")]
        >>> len(build_merkle_root(leaves))
        32
    """
    return build_merkle_levels(leaves)[-1][0]


def build_merkle_proof(levels: Sequence[Sequence[bytes]], index: int) -> MerkleProof:
    """
    Generate an inclusion proof for the leaf at `index`.

    Walks from the leaf level to the root, recording the sibling at each
    level and whether it sits on the left.

    Args:
        levels: Output of build_merkle_levels
        index: 0-based leaf index

    Returns:
        MerkleProof with bottom-up steps

    Raises:
        IndexError: If index is outside the leaf level
    """
    if not levels or index < 0 or index >= len(levels[0]):
        size = len(levels[0]) if levels else 0
        raise IndexError(f"Leaf index {index} out of range for {size} leaves")

    steps: list[MerkleStep] = []
    current_index = index

    for level in levels[:-1]:
        sibling_index = current_index ^ 1
        sibling = level[sibling_index] if sibling_index < len(level) else level[current_index]
        steps.append(MerkleStep(sibling=sibling, is_left=current_index % 2 == 1))
        current_index //= 2

    return MerkleProof(leaf_index=index, steps=tuple(steps))


def verify_merkle_proof(leaf: bytes, proof: MerkleProof, root: bytes) -> bool:
    """
    Verify an inclusion proof.

    Recombines the leaf with each sibling in order and compares the result
    with `root`.

    Returns:
        True if the path terminates at `root`
    """
    current_hash = leaf
    for step in proof.steps:
        if step.is_left:
            current_hash = merkle_parent(step.sibling, current_hash)
        else:
            current_hash = merkle_parent(current_hash, step.sibling)
    return current_hash == root


def compute_tree_depth(num_leaves: int) -> int:
    """
    Depth of the padded tree: ceil(log2(num_leaves)), 0 for 0 or 1 leaves.

    Equals the number of steps in every inclusion proof.
    """
    if num_leaves <= 1:
        return 0
    return (num_leaves - 1).bit_length()


__all__ = [
    "EMPTY_TREE_ROOT",
    "ZERO_HASH",
    "MerkleStep",
    "MerkleProof",
    "merkle_parent",
    "next_power_of_two",
    "pad_leaves",
    "build_merkle_levels",
    "build_merkle_root",
    "build_merkle_proof",
    "verify_merkle_proof",
    "compute_tree_depth",
]
