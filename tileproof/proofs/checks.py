"""
Module 04 - Proof Checks
Shared CheckResult builders used by every verifier.
"""

from __future__ import annotations

from typing import Any

from tileproof.crypto.hashing import is_sha256_hex
from tileproof.schemas.verification import CheckResult


def make_check(
    check_id: str, ok: bool, message: str, details: dict[str, Any] | None = None,
) -> CheckResult:
    """Create a CheckResult with appropriate severity."""
    return CheckResult(
        check_id=check_id, ok=ok,
        severity="info" if ok else "error",
        message=message, details=details or {},
    )


def check_hash_format(check_id: str, value: Any, field_name: str) -> CheckResult:
    """Validate that a hash string is 64-char lowercase hex."""
    ok = is_sha256_hex(value)
    return make_check(
        check_id, ok,
        f"{field_name} format valid" if ok else f"{field_name} is not a SHA-256 hex digest",
        {"field": field_name},
    )


def check_commitment_match(
    check_id: str, expected: str, computed: str, label: str,
) -> CheckResult:
    """Check if expected and computed hashes match."""
    match = expected == computed
    return make_check(
        check_id, match,
        f"{label} matches" if match else f"{label} mismatch",
        {"expected": expected, "computed": computed},
    )
