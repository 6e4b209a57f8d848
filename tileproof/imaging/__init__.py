"""Image decoding, encoding and pixel operations."""
from .operations import apply_transformation, crop_region, redact_regions
from .raster import (
    DEFAULT_MAX_DIMENSION,
    decode_rgb,
    encode_png,
    iter_tiles,
    open_image,
    validate_raster,
)

__all__ = [
    "DEFAULT_MAX_DIMENSION",
    "apply_transformation",
    "crop_region",
    "decode_rgb",
    "encode_png",
    "iter_tiles",
    "open_image",
    "redact_regions",
    "validate_raster",
]
