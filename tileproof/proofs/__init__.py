"""Transformation proof generation and verification."""
from .generator import (
    TransformationProofGenerator,
    sample_tile_indices,
    transformation_binding_payload,
)
from .verifier import TransformationProofVerifier

__all__ = [
    "TransformationProofGenerator",
    "TransformationProofVerifier",
    "sample_tile_indices",
    "transformation_binding_payload",
]
