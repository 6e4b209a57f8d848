"""
Test fixtures package for tileproof tests.

- images.py: in-memory image factories (numpy + Pillow)

Usage:
    from fixtures.images import make_gradient_png

    def test_something():
        png = make_gradient_png(256, 256)
"""

from .images import (
    make_gradient_png,
    make_keyframes,
    make_png,
    make_solid_png,
)

__all__ = [
    "make_gradient_png",
    "make_keyframes",
    "make_png",
    "make_solid_png",
]
