"""
Module 03 - Imaging
File: operations.py

Purpose: Pixel operations applied before proving: region crops, the
supported transformations and region redaction. All outputs are PNG so
that commitments over them are reproducible.
"""

import logging
from typing import Sequence

from PIL import Image, ImageColor, ImageEnhance, ImageFilter, ImageOps

from tileproof.schemas.commitment import Region
from tileproof.schemas.errors import DimensionError, UnsupportedTransformationError
from tileproof.schemas.privacy import RedactionOptions, RedactionRegion
from tileproof.schemas.transformation import TransformationSpec

from .raster import DEFAULT_MAX_DIMENSION, encode_png, open_image

logger = logging.getLogger(__name__)


def _crop(image: Image.Image, region: Region) -> Image.Image:
    if not region.fits_within(image.width, image.height):
        raise DimensionError(
            f"Region {region.as_key()} exceeds image bounds {image.width}x{image.height}",
            details={"region": region.as_key(), "width": image.width, "height": image.height},
        )
    return image.crop((region.x, region.y, region.right, region.bottom))


def crop_region(image_bytes: bytes, region: Region) -> bytes:
    """Crop `region` out of an image and return it as PNG."""
    return encode_png(_crop(open_image(image_bytes), region))


def _resize(image: Image.Image, params: dict) -> Image.Image:
    width = params.get("width")
    height = params.get("height")
    if width is None and height is None:
        raise DimensionError("Resize requires width and/or height")
    # A single given side keeps the aspect ratio
    if width is None:
        width = max(1, round(image.width * int(height) / image.height))
    if height is None:
        height = max(1, round(image.height * int(width) / image.width))
    width, height = int(width), int(height)
    if width <= 0 or height <= 0:
        raise DimensionError(f"Resize target {width}x{height} is not positive")
    return image.resize((width, height), Image.Resampling.LANCZOS)


def apply_transformation(
    image_bytes: bytes,
    spec: TransformationSpec,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
) -> bytes:
    """
    Apply a supported transformation and return the result as PNG.

    Raises:
        UnsupportedTransformationError: For tags with no pixel operation
        DimensionError: For out-of-bounds crops or non-positive resize targets
    """
    image = open_image(image_bytes, max_dimension)
    params = spec.params
    tag = spec.tag

    if tag == "crop":
        result = _crop(image, Region.from_params(params))
    elif tag == "resize":
        result = _resize(image, params)
    elif tag == "grayscale":
        result = ImageOps.grayscale(image).convert("RGB")
    elif tag == "blur":
        sigma = float(params.get("sigma", 1.0))
        result = image.filter(ImageFilter.GaussianBlur(radius=sigma))
    elif tag == "brightness":
        factor = float(params.get("brightness", params.get("factor", 1.0)))
        result = ImageEnhance.Brightness(image).enhance(factor)
    elif tag == "contrast":
        factor = float(params.get("contrast", params.get("factor", 1.0)))
        result = ImageEnhance.Contrast(image).enhance(factor)
    else:
        raise UnsupportedTransformationError(spec.type)

    logger.debug("Applied %s: %dx%d -> %dx%d", tag, image.width, image.height, result.width, result.height)
    return encode_png(result)


def redact_regions(
    image_bytes: bytes,
    regions: Sequence[RedactionRegion],
    options: RedactionOptions | None = None,
) -> bytes:
    """
    Obscure each region in order, by Gaussian blur or solid fill.

    Regions are expected to be clipped to the image already.
    """
    options = options or RedactionOptions()
    image = open_image(image_bytes)
    fill = ImageColor.getrgb(options.fill_color)

    for region in regions:
        box = (region.x, region.y, region.right, region.bottom)
        if region.mode == "fill":
            image.paste(fill, box)
        else:
            patch = image.crop(box).filter(ImageFilter.GaussianBlur(radius=options.blur_sigma))
            image.paste(patch, box)

    return encode_png(image)
