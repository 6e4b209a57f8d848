"""Fast fraud pre-filter."""
from .detector import ALLOWED_PROOF_TYPES, FastFraudDetector

__all__ = ["ALLOWED_PROOF_TYPES", "FastFraudDetector"]
