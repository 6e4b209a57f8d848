"""Proof chains and their portable export formats."""
from .exporter import (
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_QR_MAX_BYTES,
    DEFAULT_VERIFICATION_BASE_URL,
    ProofChainExporter,
    compute_signature,
)
from .importer import TAMPER_WARNING, ProofChainImporter
from .manager import ProofChainManager
from .qr import (
    QR_PART_PREFIX,
    QR_SINGLE_PREFIX,
    reassemble_parts,
    render_qr_png,
    split_payload,
)

__all__ = [
    "DEFAULT_COMPRESSION_LEVEL",
    "DEFAULT_QR_MAX_BYTES",
    "DEFAULT_VERIFICATION_BASE_URL",
    "QR_PART_PREFIX",
    "QR_SINGLE_PREFIX",
    "TAMPER_WARNING",
    "ProofChainExporter",
    "ProofChainImporter",
    "ProofChainManager",
    "compute_signature",
    "reassemble_parts",
    "render_qr_png",
    "split_payload",
]
