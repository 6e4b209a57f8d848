"""
Module 08 - Proof Chain Export

Portable export formats for a proof chain: full JSON, compact (deflate +
urlsafe base64), single or multi-part QR payloads, verification URL and an
embeddable HTML widget. Every format carries

    signature = sha256(canonical_json({original_root, final_root, step_count}))

The original leaf list is never exported.
"""

from __future__ import annotations

import base64
import html
import logging
import zlib
from typing import Any
from urllib.parse import quote

from tileproof.crypto.hashing import hash_canonical_hex
from tileproof.schemas.canonical import dumps_canonical, format_datetime_canonical
from tileproof.schemas.chain import (
    ChainExport,
    CompactExport,
    ProofChainRecord,
    QRExport,
    SharingBundle,
    URLExport,
    WidgetExport,
)
from tileproof.schemas.versioning import COMPACT_FORMAT_VERSION

from .qr import single_payload, split_payload

logger = logging.getLogger(__name__)

DEFAULT_VERIFICATION_BASE_URL = "https://verify.tileproof.dev"
DEFAULT_QR_MAX_BYTES = 2000
DEFAULT_COMPRESSION_LEVEL = 9


def compute_signature(original_root: str, final_root: str, step_count: int) -> str:
    """Integrity signature shared by exporter and importer."""
    return hash_canonical_hex({
        "original_root": original_root,
        "final_root": final_root,
        "step_count": step_count,
    })


def deflate_b64(text: str, level: int = DEFAULT_COMPRESSION_LEVEL) -> tuple[str, int, int]:
    """Deflate UTF-8 text and encode as urlsafe base64. Returns (data, raw, compressed) sizes."""
    raw = text.encode("utf-8")
    compressed = zlib.compress(raw, level)
    return base64.urlsafe_b64encode(compressed).decode("ascii"), len(raw), len(compressed)


def inflate_b64(data: str) -> str:
    """Inverse of deflate_b64. Raises binascii.Error, zlib.error or UnicodeDecodeError."""
    return zlib.decompress(base64.urlsafe_b64decode(data.encode("ascii"))).decode("utf-8")


class ProofChainExporter:
    """Serializes proof chains for offline and portable verification."""

    def __init__(
        self,
        verification_base_url: str = DEFAULT_VERIFICATION_BASE_URL,
        qr_max_bytes: int = DEFAULT_QR_MAX_BYTES,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> None:
        self.verification_base_url = verification_base_url.rstrip("/")
        self.qr_max_bytes = qr_max_bytes
        self.compression_level = compression_level

    def sign_export(self, chain: ProofChainRecord) -> str:
        return compute_signature(
            chain.original_commitment.root, chain.final_commitment, chain.step_count,
        )

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def export_to_json(
        self,
        chain: ProofChainRecord,
        include_full_proofs: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> ChainExport:
        """Full export document. Per-step proofs only with include_full_proofs."""
        steps = chain.steps if include_full_proofs else [
            step.model_copy(update={"proof": None}) for step in chain.steps
        ]
        return ChainExport(
            chain_id=chain.chain_id,
            created_at=chain.created_at,
            original_commitment=chain.original_commitment,
            final_commitment=chain.final_commitment,
            step_count=chain.step_count,
            steps=steps,
            all_valid=chain.all_valid,
            signature=self.sign_export(chain),
            metadata=metadata or {},
        )

    def export_to_json_string(self, chain: ProofChainRecord, include_full_proofs: bool = False) -> str:
        return dumps_canonical(self.export_to_json(chain, include_full_proofs))

    # ------------------------------------------------------------------
    # Compact / QR / URL / widget
    # ------------------------------------------------------------------

    def export_to_compact(self, chain: ProofChainRecord) -> CompactExport:
        """Versioned minimal fields, deflated. Roots are kept in full."""
        original = chain.original_commitment
        last = chain.steps[-1] if chain.steps else None
        essential = {
            "v": COMPACT_FORMAT_VERSION,
            "id": chain.chain_id,
            "or": original.root,
            "fr": chain.final_commitment,
            "ow": original.width,
            "oh": original.height,
            "ts": original.tile_size,
            "fw": last.output_width if last else original.width,
            "fh": last.output_height if last else original.height,
            "tc": chain.step_count,
            "tg": [step.tag for step in chain.steps],
            "ca": format_datetime_canonical(chain.created_at),
            "sig": self.sign_export(chain),
        }
        data, raw_size, compressed_size = deflate_b64(
            dumps_canonical(essential), self.compression_level,
        )
        return CompactExport(
            version=COMPACT_FORMAT_VERSION,
            data=data,
            raw_size=raw_size,
            compressed_size=compressed_size,
        )

    def export_to_qr(self, chain: ProofChainRecord, max_bytes: int | None = None) -> QRExport:
        """Single QR payload, or multi-part if it exceeds `max_bytes`."""
        max_bytes = max_bytes or self.qr_max_bytes
        payload = single_payload(self.export_to_compact(chain).data)
        if len(payload) > max_bytes:
            logger.info("QR payload %d bytes exceeds %d; splitting", len(payload), max_bytes)
            return self.export_to_multi_qr(chain, max_bytes)
        return QRExport(multi_part=False, parts=[payload], total=1)

    def export_to_multi_qr(self, chain: ProofChainRecord, max_bytes: int | None = None) -> QRExport:
        """Deflated full JSON export split into numbered parts."""
        max_bytes = max_bytes or self.qr_max_bytes
        data, _, _ = deflate_b64(self.export_to_json_string(chain), self.compression_level)
        parts, digest = split_payload(data, max_bytes)
        return QRExport(multi_part=True, parts=parts, total=len(parts), digest=digest)

    def export_to_url(self, chain: ProofChainRecord, base_url: str | None = None) -> URLExport:
        base = (base_url or self.verification_base_url).rstrip("/")
        data = self.export_to_compact(chain).data
        return URLExport(
            url=f"{base}/v/{quote(data, safe='')}",
            chain_id=chain.chain_id,
            signature=self.sign_export(chain),
        )

    def export_to_widget(self, chain: ProofChainRecord) -> WidgetExport:
        """Self-contained HTML snippet linking to the verification URL."""
        url = self.export_to_url(chain).url
        original = chain.original_commitment
        short_id = html.escape(chain.chain_id[:8])
        markup = (
            f'<div class="tileproof-widget" id="tileproof-{short_id}">'
            f'<div class="tileproof-title">Privacy-preserved proof</div>'
            f"<dl>"
            f"<dt>Chain</dt><dd>{short_id}</dd>"
            f"<dt>Transformations</dt><dd>{chain.step_count}</dd>"
            f"<dt>Original</dt><dd>{original.width}x{original.height}</dd>"
            f"<dt>Root</dt><dd><code>{html.escape(chain.final_commitment[:16])}</code></dd>"
            f"</dl>"
            f'<a href="{html.escape(url, quote=True)}" target="_blank" rel="noopener">Verify proof</a>'
            f"</div>"
        )
        return WidgetExport(html=markup, chain_id=chain.chain_id, verification_url=url)

    def export_for_sharing(self, chain: ProofChainRecord) -> SharingBundle:
        return SharingBundle(
            chain_id=chain.chain_id,
            signature=self.sign_export(chain),
            json_export=self.export_to_json(chain),
            compact=self.export_to_compact(chain),
            qr=self.export_to_qr(chain),
            url=self.export_to_url(chain),
            widget=self.export_to_widget(chain),
        )
