"""
Module 03 - Imaging
File: raster.py

Purpose: Decode image bytes into a fixed 3-channel raster and encode rasters
back to lossless PNG. Alpha is discarded; callers that need compositing must
flatten alpha before handing bytes over.
"""

import io
import logging
from typing import Iterator

import numpy as np
from PIL import Image, UnidentifiedImageError

from tileproof.schemas.errors import DimensionError, ImageDecodeError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DIMENSION = 100_000


def _check_dimensions(width: int, height: int, max_dimension: int) -> None:
    if width <= 0 or height <= 0:
        raise DimensionError(
            f"Image has invalid dimensions {width}x{height}",
            details={"width": width, "height": height},
        )
    if width > max_dimension or height > max_dimension:
        raise DimensionError(
            f"Image dimensions {width}x{height} exceed limit {max_dimension}",
            details={"width": width, "height": height, "max_dimension": max_dimension},
        )


def open_image(image_bytes: bytes, max_dimension: int = DEFAULT_MAX_DIMENSION) -> Image.Image:
    """
    Open and fully decode image bytes as an RGB Pillow image.

    Raises:
        ImageDecodeError: If the bytes are empty or not a decodable image
        DimensionError: If the dimensions are zero or exceed max_dimension
    """
    if not isinstance(image_bytes, (bytes, bytearray, memoryview)) or len(image_bytes) == 0:
        raise ImageDecodeError("Image bytes are empty or not bytes-like")

    try:
        image = Image.open(io.BytesIO(bytes(image_bytes)))
        _check_dimensions(image.width, image.height, max_dimension)
        image.load()
        return image.convert("RGB")
    except DimensionError:
        raise
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.debug("Image decode failed: %s", e)
        raise ImageDecodeError(
            f"Cannot decode image: {e}",
            details={"size": len(image_bytes), "exception": e.__class__.__name__},
        ) from e


def decode_rgb(image_bytes: bytes, max_dimension: int = DEFAULT_MAX_DIMENSION) -> np.ndarray:
    """Decode image bytes into an HxWx3 uint8 array."""
    return np.asarray(open_image(image_bytes, max_dimension), dtype=np.uint8)


def validate_raster(raster: np.ndarray, max_dimension: int = DEFAULT_MAX_DIMENSION) -> np.ndarray:
    """
    Validate an already decoded raster and return it as contiguous uint8.

    Raises:
        DimensionError: If the array is not HxWx3 or has bad dimensions
    """
    if raster.ndim != 3 or raster.shape[2] != 3:
        raise DimensionError(
            f"Raster must be HxWx3, got shape {raster.shape}",
            details={"shape": list(raster.shape)},
        )
    height, width = raster.shape[:2]
    _check_dimensions(width, height, max_dimension)
    return np.ascontiguousarray(raster, dtype=np.uint8)


def encode_png(image: "Image.Image | np.ndarray") -> bytes:
    """Encode a Pillow image or HxWx3 raster as PNG bytes."""
    if isinstance(image, np.ndarray):
        image = Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def iter_tiles(raster: np.ndarray, tile_size: int) -> Iterator[tuple[int, int, bytes]]:
    """
    Yield (tile_x, tile_y, pixel_bytes) in row-major order.

    Edge tiles are truncated at the image bounds.
    """
    height, width = raster.shape[:2]
    for top in range(0, height, tile_size):
        for left in range(0, width, tile_size):
            tile = raster[top:top + tile_size, left:left + tile_size]
            yield left // tile_size, top // tile_size, tile.tobytes()
