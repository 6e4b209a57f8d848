"""
Module 01 - Schemas & Canonicalization
File: errors.py

Purpose: Standard error taxonomy for commitment, proof, chain and video
operations. Defines a Pydantic model for structured error communication
(batch results, verification reports) and Python exceptions raised at the
builder boundary.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes."""

    # Schema & Validation Errors
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"

    # Image Errors
    IMAGE_DECODE_ERROR = "IMAGE_DECODE_ERROR"
    DIMENSION_ERROR = "DIMENSION_ERROR"

    # Merkle & Commitment Errors
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
    MERKLE_PROOF_INVALID = "MERKLE_PROOF_INVALID"
    COMMITMENT_MISMATCH = "COMMITMENT_MISMATCH"

    # Proof Errors
    UNSUPPORTED_TRANSFORMATION = "UNSUPPORTED_TRANSFORMATION"
    STRUCTURAL_PROOF_ERROR = "STRUCTURAL_PROOF_ERROR"

    # Batch Errors
    BATCH_ITEM_FAILED = "BATCH_ITEM_FAILED"
    VERIFICATION_FAILED = "VERIFICATION_FAILED"
    FRAUD_DETECTED = "FRAUD_DETECTED"

    # Chain & Export Errors
    CHAIN_LINKAGE_ERROR = "CHAIN_LINKAGE_ERROR"
    CHAIN_IMPORT_ERROR = "CHAIN_IMPORT_ERROR"
    QR_REASSEMBLY_ERROR = "QR_REASSEMBLY_ERROR"

    # Video Errors
    KEYFRAME_MISMATCH = "KEYFRAME_MISMATCH"


# =============================================================================
# Pydantic Error Model (Structured Communication)
# =============================================================================

class TileproofError(BaseModel):
    """
    Error model for structured error communication.

    Used wherever a failure is reported as data instead of raised, e.g. a
    failed batch item or a rejected verification.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.IMAGE_DECODE_ERROR],
    )
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "TileproofException":
        """Convert this error model to a raisable exception."""
        return TileproofException(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class TileproofException(Exception):
    """
    Base exception for all tileproof errors.

    Carries structured error information and converts to TileproofError.
    """

    default_code = "TILEPROOF_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> TileproofError:
        """Convert this exception to a TileproofError model."""
        return TileproofError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CanonicalizationException(TileproofException):
    """Exception raised when canonical serialization fails."""

    default_code = ErrorCodes.CANONICALIZATION_ERROR


class ImageDecodeError(TileproofException):
    """Raised when image bytes cannot be decoded."""

    default_code = ErrorCodes.IMAGE_DECODE_ERROR


class DimensionError(TileproofException):
    """Raised on zero, excessive or out-of-bounds dimensions."""

    default_code = ErrorCodes.DIMENSION_ERROR


class IndexOutOfRangeError(TileproofException):
    """Raised when a tile or frame index is outside the committed range."""

    default_code = ErrorCodes.INDEX_OUT_OF_RANGE

    def __init__(
        self,
        message: str,
        index: int | None = None,
        size: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if index is not None:
            full_details["index"] = index
        if size is not None:
            full_details["size"] = size
        super().__init__(message=message, details=full_details)


class UnsupportedTransformationError(TileproofException):
    """Raised (and usually degraded to a generic proof) for unknown types."""

    default_code = ErrorCodes.UNSUPPORTED_TRANSFORMATION

    def __init__(self, transformation_type: str) -> None:
        super().__init__(
            message=f"Unsupported transformation type: {transformation_type!r}",
            details={"transformation_type": transformation_type},
        )
        self.transformation_type = transformation_type


class StructuralProofError(TileproofException):
    """Raised when a proof record is missing required fields."""

    default_code = ErrorCodes.STRUCTURAL_PROOF_ERROR


class CommitmentMismatchError(TileproofException):
    """Raised when a recomputed root differs from the claimed one."""

    default_code = ErrorCodes.COMMITMENT_MISMATCH

    def __init__(self, expected: str, actual: str, what: str = "commitment") -> None:
        super().__init__(
            message=f"{what} root mismatch: expected {expected}, got {actual}",
            details={"expected": expected, "actual": actual, "what": what},
        )


class BatchItemError(TileproofException):
    """Wraps a failure of a single batch item."""

    default_code = ErrorCodes.BATCH_ITEM_FAILED

    def __init__(self, index: int, cause: Exception) -> None:
        code = getattr(cause, "code", None) or self.default_code
        super().__init__(
            message=str(cause) or cause.__class__.__name__,
            code=code,
            details={"index": index, "exception": cause.__class__.__name__},
        )
        self.index = index
        self.cause = cause


class ChainLinkageError(TileproofException):
    """Raised when a proof does not start from the running commitment."""

    default_code = ErrorCodes.CHAIN_LINKAGE_ERROR

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            message=(
                "Proof does not link to the chain: expected original root "
                f"{expected}, got {actual}"
            ),
            details={"expected": expected, "actual": actual},
        )


class ChainImportError(TileproofException):
    """Raised when an exported chain cannot be parsed."""

    default_code = ErrorCodes.CHAIN_IMPORT_ERROR


class QRReassemblyError(TileproofException):
    """Raised when multi-part QR payloads cannot be reassembled."""

    default_code = ErrorCodes.QR_REASSEMBLY_ERROR


class KeyframeMismatchError(TileproofException):
    """Raised when original and transformed keyframe counts differ."""

    default_code = ErrorCodes.KEYFRAME_MISMATCH

    def __init__(self, original_count: int, transformed_count: int) -> None:
        super().__init__(
            message=(
                f"Keyframe count mismatch: {original_count} original vs "
                f"{transformed_count} transformed"
            ),
            details={
                "original_count": original_count,
                "transformed_count": transformed_count,
            },
        )
