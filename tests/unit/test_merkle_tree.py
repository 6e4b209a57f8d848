"""
Module 02 - Merkle Tree Unit Tests
Tests for tileproof/merkle/merkle_tree.py

Required behaviour:
1. Root determinism - same leaves -> same root across runs
2. Padding correctness - leaves padded to a power of two with ZERO_HASH
3. Proof verification - generate proof for each index, verify passes
4. Tamper detection - tampered sibling/leaf/root fails verification
5. Empty leaves - root is sha256(b"")
6. Single leaf - root equals leaf
"""
import pytest

from tileproof.crypto.hashing import sha256
from tileproof.merkle.merkle_tree import (
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


def _leaves(n: int) -> list[bytes]:
    return [sha256(f"leaf{i}".encode()) for i in range(n)]


class TestEmptyTree:
    """Tests for empty tree behavior."""

    def test_empty_leaves_returns_sha256_empty(self):
        assert build_merkle_root([]) == sha256(b"") == EMPTY_TREE_ROOT

    def test_empty_levels_single_root(self):
        assert build_merkle_levels([]) == [[EMPTY_TREE_ROOT]]


class TestSingleLeaf:
    """Tests for single leaf tree behavior."""

    def test_single_leaf_root_equals_leaf(self):
        leaf = sha256(b"single leaf")
        assert build_merkle_root([leaf]) == leaf

    def test_single_leaf_proof_has_no_steps(self):
        leaf = sha256(b"only one")
        proof = build_merkle_proof(build_merkle_levels([leaf]), 0)

        assert proof.steps == ()
        assert verify_merkle_proof(leaf, proof, leaf)


class TestRootDeterminism:
    """Tests for deterministic root computation."""

    def test_same_leaves_same_root(self):
        roots = {build_merkle_root(_leaves(5)) for _ in range(10)}
        assert len(roots) == 1

    def test_leaf_order_matters(self):
        leaves = _leaves(3)
        assert build_merkle_root(leaves) != build_merkle_root(list(reversed(leaves)))


class TestPaddingCorrectness:
    """Tests for power-of-two padding."""

    @pytest.mark.parametrize("n,expected", [(0, 1), (1, 1), (2, 2), (3, 4), (5, 8), (64, 64), (65, 128)])
    def test_next_power_of_two(self, n, expected):
        assert next_power_of_two(n) == expected

    def test_pad_leaves_with_zero_hash(self):
        padded = pad_leaves(_leaves(3))
        assert len(padded) == 4
        assert padded[3] == ZERO_HASH

    def test_three_leaves_root(self):
        a, b, c = _leaves(3)
        expected = merkle_parent(merkle_parent(a, b), merkle_parent(c, ZERO_HASH))
        assert build_merkle_root([a, b, c]) == expected

    def test_levels_shape(self):
        levels = build_merkle_levels(_leaves(5))
        assert [len(level) for level in levels] == [8, 4, 2, 1]


class TestProofVerification:
    """Every leaf's proof terminates at the root."""

    @pytest.mark.parametrize("n", [2, 3, 7, 8, 64])
    def test_every_index_verifies(self, n):
        leaves = _leaves(n)
        levels = build_merkle_levels(leaves)
        root = levels[-1][0]
        for i, leaf in enumerate(leaves):
            proof = build_merkle_proof(levels, i)
            assert len(proof.steps) == compute_tree_depth(n)
            assert verify_merkle_proof(leaf, proof, root)

    def test_orientation_spells_out_index(self):
        levels = build_merkle_levels(_leaves(8))
        proof = build_merkle_proof(levels, 5)
        assert [step.is_left for step in proof.steps] == [True, False, True]

    def test_out_of_range_raises(self):
        with pytest.raises(IndexError):
            build_merkle_proof(build_merkle_levels(_leaves(4)), 4)

    def test_path_round_trip(self):
        levels = build_merkle_levels(_leaves(6))
        proof = build_merkle_proof(levels, 3)
        assert MerkleProof.from_path(3, proof.to_path()) == proof


class TestTamperDetection:
    """Tampered sibling, leaf or root fails verification."""

    @pytest.fixture
    def tree(self):
        leaves = _leaves(8)
        levels = build_merkle_levels(leaves)
        return leaves, levels, levels[-1][0]

    def test_tampered_leaf_fails(self, tree):
        leaves, levels, root = tree
        proof = build_merkle_proof(levels, 2)
        assert not verify_merkle_proof(sha256(b"forged"), proof, root)

    def test_tampered_sibling_fails(self, tree):
        leaves, levels, root = tree
        proof = build_merkle_proof(levels, 2)
        forged_steps = (MerkleStep(sibling=sha256(b"x"), is_left=proof.steps[0].is_left),) + proof.steps[1:]
        assert not verify_merkle_proof(leaves[2], MerkleProof(2, forged_steps), root)

    def test_flipped_orientation_fails(self, tree):
        leaves, levels, root = tree
        proof = build_merkle_proof(levels, 2)
        first = proof.steps[0]
        flipped = (MerkleStep(sibling=first.sibling, is_left=not first.is_left),) + proof.steps[1:]
        assert not verify_merkle_proof(leaves[2], MerkleProof(2, flipped), root)

    def test_wrong_root_fails(self, tree):
        leaves, levels, _ = tree
        proof = build_merkle_proof(levels, 0)
        assert not verify_merkle_proof(leaves[0], proof, sha256(b"other root"))


class TestTreeDepth:
    @pytest.mark.parametrize("n,depth", [(0, 0), (1, 0), (2, 1), (3, 2), (64, 6), (65, 7)])
    def test_depth(self, n, depth):
        assert compute_tree_depth(n) == depth
