"""
Module 02 - Hashing Utilities
SHA-256 hashing, canonical hashing and hex codecs for tile commitments.

This module provides:
- SHA-256 hashing for raw bytes
- Domain-separated leaf hashing for tiles and indexed payloads
- Canonical hashing for objects (via dumps_canonical)
- Hex encoding/decoding (bare lowercase hex; an optional 0x is accepted)

Security/Determinism Notes:
- Leaves are prefixed with 0x00 and internal nodes with 0x01
- Tile position is bound into every leaf to block reordering
- All operations are deterministic
"""
from __future__ import annotations

import hashlib
import re
import struct
from typing import Any

from tileproof.schemas.canonical import dumps_canonical

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")
_HASH_HEX = re.compile(r"^(0x)?[0-9a-fA-F]{32,128}$")
_HASH_DECIMAL = re.compile(r"^[0-9]{10,}$")


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """SHA-256 of raw bytes as lowercase hex."""
    return hashlib.sha256(data).hexdigest()


def hash_canonical(obj: Any) -> bytes:
    """
    Hash an object using canonical JSON serialization.

    Rule: sha256(dumps_canonical(obj).encode("utf-8"))

    Raises:
        CanonicalizationException: If the object cannot be canonically serialized
    """
    return sha256(dumps_canonical(obj).encode("utf-8"))


def hash_canonical_hex(obj: Any) -> str:
    return hash_canonical(obj).hex()


def binding_commitment(payload: dict[str, Any]) -> str:
    """
    Binding commitment over a proof's public fields.

    A hash of the canonical JSON payload; detects tampering with the proof
    record itself.
    """
    return hash_canonical_hex(payload)


def hash_tile(tile_x: int, tile_y: int, pixels: bytes) -> bytes:
    """
    Leaf hash of one tile.

    leaf = sha256(0x00 || u32be(tile_x) || u32be(tile_y) || pixels)
    """
    return sha256(LEAF_PREFIX + struct.pack(">II", tile_x, tile_y) + pixels)


def hash_indexed_leaf(index: int, payload: bytes) -> bytes:
    """
    Leaf hash of an indexed payload (e.g. a frame root inside a video tree).

    leaf = sha256(0x00 || u32be(index) || payload)
    """
    return sha256(LEAF_PREFIX + struct.pack(">I", index) + payload)


def hash_node(left: bytes, right: bytes) -> bytes:
    """Internal node hash: sha256(0x01 || left || right)."""
    return sha256(NODE_PREFIX + left + right)


def to_hex(data: bytes) -> str:
    """
    Convert bytes to a lowercase hex string (no prefix).

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        'deadbeef'
    """
    return data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert a hex string (optional 0x prefix) to bytes.

    Raises:
        ValueError: If the string has odd length or contains invalid hex
    """
    hex_content = hex_string[2:] if hex_string.startswith("0x") else hex_string

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length, got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def is_sha256_hex(value: Any) -> bool:
    """True for a 64-char lowercase hex digest."""
    return isinstance(value, str) and bool(_SHA256_HEX.match(value))


def is_hash_shaped(value: Any) -> bool:
    """
    Loose hash-shape test used by the fraud pre-filter.

    Accepts hex of 32 to 128 characters (optional 0x prefix) or a decimal
    string of at least 10 digits (field-element style commitments).
    """
    if not isinstance(value, str):
        return False
    return bool(_HASH_HEX.match(value) or _HASH_DECIMAL.match(value))
