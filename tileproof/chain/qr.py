"""
Module 08 - QR Payloads

Single payload:   tileproof://verify/{data}
Multi-part:       tileproof://verify-part/{digest}/{part}/{total}/{chunk}

`digest` is the first 16 hex chars of sha256 over the joined chunks, so
reassembly can reject parts of another payload and detect corruption.
Parts are numbered from 1.
"""

from __future__ import annotations

import io
from typing import Sequence

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from tileproof.crypto.hashing import sha256_hex
from tileproof.schemas.errors import QRReassemblyError

QR_SINGLE_PREFIX = "tileproof://verify/"
QR_PART_PREFIX = "tileproof://verify-part/"

DIGEST_LENGTH = 16


def payload_digest(data: str) -> str:
    return sha256_hex(data.encode("ascii"))[:DIGEST_LENGTH]


def single_payload(data: str) -> str:
    return f"{QR_SINGLE_PREFIX}{data}"


def part_header_length(total: int) -> int:
    """Longest header for a payload split into `total` parts."""
    return len(QR_PART_PREFIX) + DIGEST_LENGTH + 3 + 2 * len(str(total))


def split_payload(data: str, max_bytes: int) -> tuple[list[str], str]:
    """
    Split `data` into self-describing part payloads of at most `max_bytes`.

    The header grows with the number of digits in the part count, so the
    chunk size is recomputed until the part count stops growing.

    Returns:
        (part payloads, digest)

    Raises:
        ValueError: If max_bytes leaves no room for data
    """
    total = 1
    while True:
        chunk_size = max_bytes - part_header_length(total)
        if chunk_size <= 0:
            raise ValueError(
                f"max_bytes {max_bytes} leaves no room for data in {total} parts"
            )
        needed = max(1, -(-len(data) // chunk_size))
        if needed <= total:
            break
        total = needed

    digest = payload_digest(data)
    chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)] or [""]
    total = len(chunks)
    parts = [
        f"{QR_PART_PREFIX}{digest}/{number}/{total}/{chunk}"
        for number, chunk in enumerate(chunks, start=1)
    ]
    return parts, digest


def _parse_part(payload: str) -> tuple[str, int, int, str]:
    if not isinstance(payload, str) or not payload.startswith(QR_PART_PREFIX):
        raise QRReassemblyError("Not a multi-part QR payload", details={"payload": str(payload)[:40]})
    fields = payload[len(QR_PART_PREFIX):].split("/", 3)
    if len(fields) != 4:
        raise QRReassemblyError("Malformed multi-part QR header", details={"payload": payload[:40]})
    digest, number, total, chunk = fields
    try:
        return digest, int(number), int(total), chunk
    except ValueError as e:
        raise QRReassemblyError(f"Malformed part numbering: {e}") from e


def reassemble_parts(parts: Sequence[str]) -> str:
    """
    Join multi-part payloads back into the original data.

    Parts may arrive in any order.

    Raises:
        QRReassemblyError: On missing, duplicate, out-of-range or foreign
            parts, or if the joined data does not match the digest
    """
    if not parts:
        raise QRReassemblyError("No QR parts supplied")

    parsed = [_parse_part(part) for part in parts]
    digest, _, total, _ = parsed[0]

    chunks: dict[int, str] = {}
    for part_digest, number, part_total, chunk in parsed:
        if part_digest != digest or part_total != total:
            raise QRReassemblyError(
                "QR parts belong to different payloads",
                details={"expected_digest": digest, "digest": part_digest},
            )
        if not 1 <= number <= total:
            raise QRReassemblyError(
                f"Part {number} out of range 1..{total}", details={"part": number, "total": total},
            )
        if number in chunks:
            raise QRReassemblyError(f"Duplicate part {number}", details={"part": number})
        chunks[number] = chunk

    missing = [number for number in range(1, total + 1) if number not in chunks]
    if missing:
        raise QRReassemblyError(
            f"Missing QR parts: {missing}", details={"missing": missing, "total": total},
        )

    data = "".join(chunks[number] for number in range(1, total + 1))
    if payload_digest(data) != digest:
        raise QRReassemblyError("Reassembled payload does not match its digest")
    return data


def render_qr_png(payload: str) -> bytes:
    """Render a payload as a QR code PNG."""
    image = qrcode.make(payload, error_correction=ERROR_CORRECT_M)
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()
