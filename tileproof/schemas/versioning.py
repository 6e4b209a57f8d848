"""
Module 01 - Schemas & Canonicalization
File: versioning.py

Purpose: Schema and export-format version constants.
Imports nothing from other schema files.
"""

# Stamped on every proof record
SCHEMA_VERSION: str = "v1"

# Portable proof-chain export formats (JSON / compact / QR)
EXPORT_FORMAT_VERSION: str = "1.0.0"

# Version byte of the compact (deflate) export
COMPACT_FORMAT_VERSION: int = 1

SUPPORTED_EXPORT_VERSIONS: frozenset[str] = frozenset({EXPORT_FORMAT_VERSION})


def is_compatible_export_version(version: str) -> bool:
    """Check if an export format version can be imported."""
    return version in SUPPORTED_EXPORT_VERSIONS
