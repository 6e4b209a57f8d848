"""
tileproof

Tiled Merkle commitments over images and video keyframes, with
privacy-preserving transformation, selective-reveal and redaction proofs.
"""

__version__ = "0.1.0"
