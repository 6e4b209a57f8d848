"""
Module 01 - Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
"""

# Version constants
from .versioning import (
    COMPACT_FORMAT_VERSION,
    EXPORT_FORMAT_VERSION,
    SCHEMA_VERSION,
    SUPPORTED_EXPORT_VERSIONS,
    is_compatible_export_version,
)

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonical_equals,
    canonicalize_value,
    dumps_canonical,
    ensure_utc,
    format_datetime_canonical,
    loads_canonical,
    parse_datetime,
    utc_now,
)

# Error models and exceptions
from .errors import (
    BatchItemError,
    CanonicalizationException,
    ChainImportError,
    ChainLinkageError,
    CommitmentMismatchError,
    DimensionError,
    ErrorCodes,
    ImageDecodeError,
    IndexOutOfRangeError,
    KeyframeMismatchError,
    QRReassemblyError,
    StructuralProofError,
    TileproofError,
    TileproofException,
    UnsupportedTransformationError,
)

# Verification results
from .verification import CheckResult, CheckSeverity, VerificationResult

# Commitment geometry
from .commitment import (
    CommitmentSummary,
    MerklePathStep,
    OriginalCommitmentRef,
    Region,
    TileInclusionProof,
    TileRange,
    TransformedCommitmentRef,
)

# Transformation proofs
from .transformation import (
    DIMENSION_PRESERVING_TAGS,
    SUPPORTED_TAGS,
    AdjustmentProof,
    BlurProof,
    CropProof,
    GenericProof,
    GrayscaleProof,
    ProofGuarantees,
    ProofMetrics,
    ResizeProof,
    TransformationProof,
    TransformationProofAdapter,
    TransformationSpec,
    TransformationTag,
    parse_transformation_proof,
    tag_fields,
)

# Privacy proofs
from .privacy import (
    RedactionOptions,
    RedactionProof,
    RedactionRegion,
    RedactionSummary,
    SelectiveRevealProof,
    SpotCheck,
)

# Fraud and batch
from .fraud import FraudBatchReport, FraudCheckResult
from .batch import BatchItemResult, BatchOperation, BatchReport

# Chain and export
from .chain import (
    EXPORT_FORMAT_NAME,
    ChainExport,
    ChainStep,
    CompactExport,
    ImportedChain,
    ProofChainRecord,
    QRExport,
    SharingBundle,
    URLExport,
    WidgetExport,
)

# Video
from .video import (
    FrameCommitment,
    FrameInclusionProof,
    FrameProofSummary,
    StreamFrameUpdate,
    StreamSummary,
    VideoCommitment,
    VideoRedactionProof,
    VideoSegmentRevealProof,
    VideoTransformationProof,
)

__all__ = [
    # Versioning
    "COMPACT_FORMAT_VERSION",
    "EXPORT_FORMAT_VERSION",
    "SCHEMA_VERSION",
    "SUPPORTED_EXPORT_VERSIONS",
    "is_compatible_export_version",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "canonical_equals",
    "canonicalize_value",
    "dumps_canonical",
    "ensure_utc",
    "format_datetime_canonical",
    "loads_canonical",
    "parse_datetime",
    "utc_now",
    # Errors
    "BatchItemError",
    "CanonicalizationException",
    "ChainImportError",
    "ChainLinkageError",
    "CommitmentMismatchError",
    "DimensionError",
    "ErrorCodes",
    "ImageDecodeError",
    "IndexOutOfRangeError",
    "KeyframeMismatchError",
    "QRReassemblyError",
    "StructuralProofError",
    "TileproofError",
    "TileproofException",
    "UnsupportedTransformationError",
    # Verification
    "CheckResult",
    "CheckSeverity",
    "VerificationResult",
    # Commitment
    "CommitmentSummary",
    "MerklePathStep",
    "OriginalCommitmentRef",
    "Region",
    "TileInclusionProof",
    "TileRange",
    "TransformedCommitmentRef",
    # Transformation
    "DIMENSION_PRESERVING_TAGS",
    "SUPPORTED_TAGS",
    "AdjustmentProof",
    "BlurProof",
    "CropProof",
    "GenericProof",
    "GrayscaleProof",
    "ProofGuarantees",
    "ProofMetrics",
    "ResizeProof",
    "TransformationProof",
    "TransformationProofAdapter",
    "TransformationSpec",
    "TransformationTag",
    "parse_transformation_proof",
    "tag_fields",
    # Privacy
    "RedactionOptions",
    "RedactionProof",
    "RedactionRegion",
    "RedactionSummary",
    "SelectiveRevealProof",
    "SpotCheck",
    # Fraud & batch
    "FraudBatchReport",
    "FraudCheckResult",
    "BatchItemResult",
    "BatchOperation",
    "BatchReport",
    # Chain
    "EXPORT_FORMAT_NAME",
    "ChainExport",
    "ChainStep",
    "CompactExport",
    "ImportedChain",
    "ProofChainRecord",
    "QRExport",
    "SharingBundle",
    "URLExport",
    "WidgetExport",
    # Video
    "FrameCommitment",
    "FrameInclusionProof",
    "FrameProofSummary",
    "StreamFrameUpdate",
    "StreamSummary",
    "VideoCommitment",
    "VideoRedactionProof",
    "VideoSegmentRevealProof",
    "VideoTransformationProof",
]
