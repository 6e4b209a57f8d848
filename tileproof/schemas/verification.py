"""
Module 01 - Schemas & Canonicalization
File: verification.py

Purpose: Standard result format for verification steps.
Every verifier (transformation, selective reveal, redaction, video) reports
through these models instead of raising.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .errors import TileproofError


# Severity levels for checks
CheckSeverity = Literal["info", "warn", "error"]


class CheckResult(BaseModel):
    """
    Result of a single verification check.

    Checks are atomic verification steps that can pass or fail.
    """

    model_config = ConfigDict(extra="forbid")

    check_id: str = Field(..., description="Name of this check", min_length=1)
    ok: bool = Field(..., description="Whether the check passed")
    severity: CheckSeverity = Field(..., description="Severity level of this check")
    message: str = Field(..., description="Human-readable result")
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        """Check if this is an error-level failure."""
        return not self.ok and self.severity == "error"

    @property
    def is_warning(self) -> bool:
        return self.severity == "warn"

    @classmethod
    def passed(
        cls,
        check_id: str,
        message: str = "Check passed",
        details: dict[str, Any] | None = None,
    ) -> "CheckResult":
        """Create a passed check result."""
        return cls(
            check_id=check_id,
            ok=True,
            severity="info",
            message=message,
            details=details or {},
        )

    @classmethod
    def warning(
        cls,
        check_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "CheckResult":
        """Create a warning check result. Warnings don't fail verification."""
        return cls(
            check_id=check_id,
            ok=True,
            severity="warn",
            message=message,
            details=details or {},
        )

    @classmethod
    def failed(
        cls,
        check_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "CheckResult":
        """Create a failed check result."""
        return cls(
            check_id=check_id,
            ok=False,
            severity="error",
            message=message,
            details=details or {},
        )


class VerificationResult(BaseModel):
    """
    Complete result of a verification process.

    `valid` is the conjunction of every check; `errors` collects the
    messages of failed checks.
    """

    model_config = ConfigDict(extra="forbid")

    valid: bool = Field(..., description="Overall verification success")
    checks: list[CheckResult] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    proof_kind: str | None = Field(
        default=None,
        description="proof_type of the verified record",
    )
    proof_tag: str | None = Field(
        default=None,
        description="Transformation tag, when the proof has one",
    )
    verification_time_ms: float = Field(default=0.0, ge=0)
    error: TileproofError | None = Field(
        default=None,
        description="Structured error when verification hit an exception",
    )

    @property
    def check_map(self) -> dict[str, bool]:
        """Map of check name to pass/fail."""
        return {check.check_id: check.ok for check in self.checks}

    @property
    def has_errors(self) -> bool:
        return any(check.is_error for check in self.checks)

    @property
    def passed_count(self) -> int:
        return sum(1 for check in self.checks if check.ok)

    @property
    def error_count(self) -> int:
        return sum(1 for check in self.checks if check.is_error)

    def get_failed_checks(self) -> list[CheckResult]:
        return [check for check in self.checks if not check.ok]

    def add_check(self, check: CheckResult) -> None:
        """Add a check result, downgrading `valid` on failure."""
        self.checks.append(check)
        if not check.ok:
            self.valid = False
            self.errors.append(check.message)

    @classmethod
    def from_checks(
        cls,
        checks: list[CheckResult],
        proof_kind: str | None = None,
        proof_tag: str | None = None,
        verification_time_ms: float = 0.0,
        error: TileproofError | None = None,
    ) -> "VerificationResult":
        """Build a result whose validity is derived from the checks."""
        return cls(
            valid=all(check.ok for check in checks) and error is None,
            checks=list(checks),
            errors=[check.message for check in checks if not check.ok],
            proof_kind=proof_kind,
            proof_tag=proof_tag,
            verification_time_ms=verification_time_ms,
            error=error,
        )

    def merge(self, other: "VerificationResult") -> "VerificationResult":
        """Merge another verification result into this one."""
        return VerificationResult(
            valid=self.valid and other.valid,
            checks=self.checks + other.checks,
            errors=self.errors + other.errors,
            proof_kind=self.proof_kind or other.proof_kind,
            proof_tag=self.proof_tag or other.proof_tag,
            verification_time_ms=self.verification_time_ms + other.verification_time_ms,
            error=self.error or other.error,
        )
