"""Selective reveal and regional redaction proofs."""
from .redaction import RegionalRedactionService, redaction_binding_payload
from .selective_reveal import SelectiveRevealService, reveal_binding_payload

__all__ = [
    "RegionalRedactionService",
    "SelectiveRevealService",
    "redaction_binding_payload",
    "reveal_binding_payload",
]
