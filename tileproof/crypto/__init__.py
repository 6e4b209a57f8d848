"""
Cryptographic utilities: SHA-256 hashing, domain-separated leaf/node
hashing, canonical hashing and hex codecs.
"""
from .hashing import (
    LEAF_PREFIX,
    NODE_PREFIX,
    binding_commitment,
    from_hex,
    hash_canonical,
    hash_canonical_hex,
    hash_indexed_leaf,
    hash_node,
    hash_tile,
    is_hash_shaped,
    is_sha256_hex,
    sha256,
    sha256_hex,
    to_hex,
)

__all__ = [
    "LEAF_PREFIX",
    "NODE_PREFIX",
    "binding_commitment",
    "from_hex",
    "hash_canonical",
    "hash_canonical_hex",
    "hash_indexed_leaf",
    "hash_node",
    "hash_tile",
    "is_hash_shaped",
    "is_sha256_hex",
    "sha256",
    "sha256_hex",
    "to_hex",
]
