"""
Decoding and encoding of image buffers.

Every filter decodes its input buffer on entry and encodes a new buffer on
exit; this module keeps both directions in one place so format detection and
failure reporting are identical across filters.
"""

import io

from PIL import Image

from pixelpipe.logging_config import get_logger
from pixelpipe.utils.exceptions import DecodeError, TransformError

logger = get_logger(__name__)

# Raster formats accepted as stage input
SUPPORTED_FORMATS = {"PNG", "JPEG", "GIF", "WEBP", "BMP"}

OUTPUT_FORMAT = "PNG"


def sniff_format(data: bytes) -> str | None:
    """Infer image format from magic bytes. Returns format name (e.g. PNG, JPEG) or None."""
    if len(data) < 12:
        return None
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "PNG"
    if data[:3] == b"\xff\xd8\xff":
        return "JPEG"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "GIF"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "WEBP"
    if data[:2] == b"BM":
        return "BMP"
    return None


def decode(data: bytes, stage: str = "", max_pixels: int | None = None) -> Image.Image:
    """
    Decode an image buffer into an RGBA Pillow image.

    Args:
        data: Encoded image bytes
        stage: Name of the filter decoding the buffer, reported on failure
        max_pixels: Optional upper bound on width * height

    Returns:
        A fully loaded PIL Image in RGBA mode

    Raises:
        DecodeError: If the buffer is empty, not a supported raster format,
            truncated, or larger than max_pixels
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError(
            f"Expected an image byte buffer, got {type(data).__name__}", stage=stage
        )
    data = bytes(data)
    if not data:
        raise DecodeError("Image buffer is empty", stage=stage)

    fmt = sniff_format(data)
    if fmt is None or fmt not in SUPPORTED_FORMATS:
        raise DecodeError("Buffer is not a recognised raster image", stage=stage)

    try:
        image = Image.open(io.BytesIO(data), formats=[fmt])
        width, height = image.size
        if max_pixels is not None and width * height > max_pixels:
            raise DecodeError(
                f"Image too large: {width}x{height} exceeds {max_pixels} pixels",
                stage=stage,
            )
        image.load()
        rgba = image.convert("RGBA")
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError(
            f"Failed to decode {fmt} image: {str(e)}", stage=stage, original_error=e
        ) from e

    logger.debug("Decoded %s %dx%d stage=%s", fmt, width, height, stage or "-")
    return rgba


def encode(image: Image.Image, fmt: str = OUTPUT_FORMAT, quality: int | None = None) -> bytes:
    """
    Encode a PIL Image to bytes.

    JPEG output drops the alpha channel; all filter outputs use PNG and JPEG
    is only used as an intermediate by deepfry.

    Args:
        image: PIL Image to encode
        fmt: Image format for encoding (PNG or JPEG)
        quality: JPEG quality (ignored for PNG)

    Returns:
        Encoded image bytes

    Raises:
        TransformError: If encoding fails
    """
    try:
        buffer = io.BytesIO()
        if fmt == "JPEG":
            rgb = image.convert("RGB") if image.mode != "RGB" else image
            rgb.save(buffer, format="JPEG", quality=quality if quality is not None else 75)
        else:
            image.save(buffer, format=fmt)
        return buffer.getvalue()
    except Exception as e:
        raise TransformError(f"Failed to encode image: {str(e)}", original_error=e) from e
