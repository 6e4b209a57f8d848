"""
Module 08 - Proof Chain Import

Parses exports back into ImportedChain records. A signature mismatch is not
fatal: the chain is returned with verified=False and a tamper warning.
Unparseable input raises ChainImportError; bad multi-part QR input raises
QRReassemblyError.
"""

from __future__ import annotations

import binascii
import json
import logging
import zlib
from typing import Any, Sequence

from pydantic import ValidationError

from tileproof.schemas.chain import EXPORT_FORMAT_NAME, ChainExport, CompactExport, ImportedChain
from tileproof.schemas.errors import ChainImportError, QRReassemblyError
from tileproof.schemas.versioning import COMPACT_FORMAT_VERSION, is_compatible_export_version

from .exporter import compute_signature, inflate_b64
from .qr import QR_PART_PREFIX, QR_SINGLE_PREFIX, reassemble_parts

logger = logging.getLogger(__name__)

TAMPER_WARNING = "Signature mismatch - proof chain may have been tampered with"

_COMPACT_KEYS = ("v", "id", "or", "fr", "tc", "sig")


class ProofChainImporter:
    """Imports proof chains from JSON, compact and QR exports."""

    def import_from_json(self, data: str | bytes | dict[str, Any] | ChainExport) -> ImportedChain:
        """
        Import a full JSON export.

        Raises:
            ChainImportError: If the document is not a supported chain export
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ChainImportError(f"Export is not valid JSON: {e}") from e

        if isinstance(data, dict):
            if data.get("format") != EXPORT_FORMAT_NAME:
                raise ChainImportError(
                    "Invalid proof chain format", details={"format": data.get("format")},
                )
            if not is_compatible_export_version(str(data.get("version"))):
                raise ChainImportError(
                    f"Unsupported export version {data.get('version')}",
                    details={"version": data.get("version")},
                )
            try:
                export = ChainExport.model_validate(data)
            except ValidationError as e:
                raise ChainImportError(
                    f"Malformed proof chain export ({e.error_count()} errors)",
                    details={"errors": [err["msg"] for err in e.errors()[:5]]},
                ) from e
        elif isinstance(data, ChainExport):
            export = data
        else:
            raise ChainImportError(f"Cannot import chain from {type(data).__name__}")

        warnings: list[str] = []
        expected = compute_signature(
            export.original_commitment.root, export.final_commitment, export.step_count,
        )
        verified = export.signature == expected
        if not verified:
            warnings.append(TAMPER_WARNING)
        if export.step_count != len(export.steps):
            verified = False
            warnings.append(
                f"step_count {export.step_count} does not match {len(export.steps)} exported steps"
            )
        elif export.steps and export.steps[-1].output_commitment != export.final_commitment:
            verified = False
            warnings.append("Final commitment does not match the last step's output")

        self._log_warnings(export.chain_id, warnings)
        return ImportedChain(
            source="json",
            chain_id=export.chain_id,
            original_commitment=export.original_commitment,
            original_root=export.original_commitment.root,
            final_root=export.final_commitment,
            step_count=export.step_count,
            steps=list(export.steps),
            signature=export.signature,
            verified=verified,
            warnings=warnings,
        )

    def import_from_compact(self, data: str | CompactExport) -> ImportedChain:
        """
        Import a compact export (its `data` string or the record).

        Raises:
            ChainImportError: If the payload cannot be decoded
        """
        encoded = data.data if isinstance(data, CompactExport) else data
        try:
            payload = json.loads(inflate_b64(encoded))
        except (binascii.Error, zlib.error, UnicodeError, ValueError) as e:
            raise ChainImportError(f"Cannot decode compact export: {e}") from e

        if not isinstance(payload, dict) or any(key not in payload for key in _COMPACT_KEYS):
            raise ChainImportError("Compact export is missing required fields")
        if payload["v"] != COMPACT_FORMAT_VERSION:
            raise ChainImportError(
                f"Unsupported compact version {payload['v']}", details={"version": payload["v"]},
            )

        expected = compute_signature(payload["or"], payload["fr"], payload["tc"])
        verified = payload["sig"] == expected
        warnings = [] if verified else [TAMPER_WARNING]
        self._log_warnings(payload["id"], warnings)

        return ImportedChain(
            source="compact",
            chain_id=str(payload["id"]),
            original_root=payload["or"],
            final_root=payload["fr"],
            step_count=payload["tc"],
            signature=payload["sig"],
            verified=verified,
            warnings=warnings,
        )

    def import_from_qr(self, payload: str | Sequence[str]) -> ImportedChain:
        """
        Import a single QR payload or a complete set of multi-part payloads.

        Raises:
            QRReassemblyError: For a lone part or an incomplete/foreign set
            ChainImportError: For an unrecognized or undecodable payload
        """
        if isinstance(payload, str):
            if payload.startswith(QR_SINGLE_PREFIX):
                imported = self.import_from_compact(payload[len(QR_SINGLE_PREFIX):])
                return imported.model_copy(update={"source": "qr"})
            if payload.startswith(QR_PART_PREFIX):
                payload = [payload]
            else:
                raise ChainImportError("Invalid QR payload format")

        data = reassemble_parts(list(payload))
        try:
            document = inflate_b64(data)
        except (binascii.Error, zlib.error, UnicodeError, ValueError) as e:
            raise QRReassemblyError(f"Reassembled QR payload cannot be decoded: {e}") from e
        imported = self.import_from_json(document)
        return imported.model_copy(update={"source": "qr"})

    @staticmethod
    def _log_warnings(chain_id: str, warnings: list[str]) -> None:
        for warning in warnings:
            logger.warning("Imported chain %s: %s", str(chain_id)[:8], warning)
