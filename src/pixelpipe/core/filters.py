"""
Pixel and geometry filters.

Each filter takes an encoded image buffer plus its own parameters and returns
a new PNG-encoded buffer. Filters decode on entry and encode on exit and share
no state with each other; the compositing filters read template copies from
the asset cache.
"""

from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageEnhance, ImageOps

from pixelpipe.core.assets import (
    TEMPLATE_TROLLEY,
    TEMPLATE_WASTED,
    AssetCache,
    get_asset_cache,
)
from pixelpipe.core.codec import decode, encode
from pixelpipe.core.config import Config, get_config
from pixelpipe.utils.exceptions import TransformError

# Trolley: the input is squeezed into the cart slot of the template
TROLLEY_SLOT_HEIGHT = 48
TROLLEY_OFFSET = (4, 24)

# Wasted: the banner is shifted left by input width / WASTED_SHIFT_DIVISOR
WASTED_SHIFT_DIVISOR = 2.5

RESAMPLE = Image.Resampling.BILINEAR


@dataclass(frozen=True)
class FilterContext:
    """Per-stage context handed to a filter by the pipeline executor."""

    stage: str
    config: Config
    assets: AssetCache | None = None

    def template(self, template_id: str) -> Image.Image:
        """Return a private copy of a template, waiting for the cache if needed."""
        assets = self.assets or get_asset_cache(self.config)
        if not assets.is_ready():
            assets.ensure_loaded(self.config.asset_load_timeout)
        return assets.get(template_id)


def _context(context: FilterContext | None, name: str) -> FilterContext:
    if context is not None:
        return context
    return FilterContext(stage=name, config=get_config())


def _decode(buffer: bytes, ctx: FilterContext) -> Image.Image:
    return decode(buffer, stage=ctx.stage, max_pixels=ctx.config.max_input_pixels)


def _resize(image: Image.Image, width: int, height: int) -> Image.Image:
    return image.resize((max(1, width), max(1, height)), RESAMPLE)


def _to_grayscale(image: Image.Image) -> Image.Image:
    """Replace R, G and B with the ITU-R 601 luma of each pixel, keeping alpha."""
    luma = image.convert("RGB").convert("L")
    return Image.merge("RGBA", (luma, luma, luma, image.getchannel("A")))


def _composite(base: Image.Image, overlay: Image.Image, offset: tuple[int, int]) -> Image.Image:
    """
    Alpha-composite overlay onto base with its top-left corner at offset.

    Offsets may be negative; the overlay is clipped to the base.

    Raises:
        TransformError: If the overlay would not intersect the base at all
    """
    x, y = offset
    bw, bh = base.size
    ow, oh = overlay.size
    if x >= bw or y >= bh or x + ow <= 0 or y + oh <= 0:
        raise TransformError(
            f"Composite at ({x}, {y}) with size {ow}x{oh} falls outside the {bw}x{bh} canvas"
        )
    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    layer.paste(overlay, (x, y))
    return Image.alpha_composite(base, layer)


def _require_positive(name: str, value: float) -> None:
    if value <= 0:
        raise TransformError(f"{name} must be positive, got {value}")


def invert(buffer: bytes, *, context: FilterContext | None = None) -> bytes:
    """Replace each of R, G, B with 255 - channel; alpha is unchanged."""
    ctx = _context(context, "invert")
    image = _decode(buffer, ctx)
    inverted = ImageOps.invert(image.convert("RGB"))
    inverted.putalpha(image.getchannel("A"))
    return encode(inverted)


def grayscale(buffer: bytes, *, context: FilterContext | None = None) -> bytes:
    """Replace each pixel's R, G, B with its weighted luminance; alpha is unchanged."""
    ctx = _context(context, "grayscale")
    return encode(_to_grayscale(_decode(buffer, ctx)))


def stretch(buffer: bytes, factor: float = 3, *, context: FilterContext | None = None) -> bytes:
    """
    Keep the width and divide the height by factor.

    Despite the name the height shrinks for factor > 1.
    """
    ctx = _context(context, "stretch")
    _require_positive("factor", factor)
    image = _decode(buffer, ctx)
    width, height = image.size
    return encode(_resize(image, width, round(height / factor)))


def squish(buffer: bytes, factor: float = 3, *, context: FilterContext | None = None) -> bytes:
    """Keep the height and divide the width by factor."""
    ctx = _context(context, "squish")
    _require_positive("factor", factor)
    image = _decode(buffer, ctx)
    width, height = image.size
    return encode(_resize(image, round(width / factor), height))


def fisheye(buffer: bytes, radius: float = 2, *, context: FilterContext | None = None) -> bytes:
    """
    Radial lens distortion around the image center.

    For each output pixel at normalized distance r from the center the source
    pixel is sampled at distance 2 * r ** radius along the same angle, with
    coordinates clamped to the image edge.
    """
    ctx = _context(context, "fisheye")
    _require_positive("radius", radius)
    image = _decode(buffer, ctx)
    pixels = np.asarray(image)
    height, width = pixels.shape[:2]

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    dx = xs / width - 0.5
    dy = ys / height - 0.5
    r = np.sqrt(dx * dx + dy * dy)
    with np.errstate(divide="ignore", invalid="ignore"):
        scale = np.where(r > 0, 2.0 * np.power(r, radius) / r, 0.0)

    src_x = np.clip(np.rint((dx * scale + 0.5) * width), 0, width - 1).astype(np.intp)
    src_y = np.clip(np.rint((dy * scale + 0.5) * height), 0, height - 1).astype(np.intp)
    warped = np.ascontiguousarray(pixels[src_y, src_x])
    return encode(Image.fromarray(warped))


def deepfry(buffer: bytes, *, context: FilterContext | None = None) -> bytes:
    """Boost contrast, crush through a minimum-quality JPEG pass, return PNG."""
    ctx = _context(context, "deepfry")
    image = _decode(buffer, ctx)
    boosted = ImageEnhance.Contrast(image.convert("RGB")).enhance(ctx.config.deepfry_contrast)
    crushed = encode(boosted, "JPEG", quality=ctx.config.deepfry_quality)
    fried = decode(crushed, stage=ctx.stage)
    fried.putalpha(image.getchannel("A"))
    return encode(fried)


def trolley(
    buffer: bytes, stretch_amount: float = 2, *, context: FilterContext | None = None
) -> bytes:
    """
    Paste the input into the cart of the trolley template.

    The input is resized to TROLLEY_SLOT_HEIGHT pixels high and
    stretch_amount times that wide; the output has the template's size.
    """
    ctx = _context(context, "trolley")
    _require_positive("stretch_amount", stretch_amount)
    background = ctx.template(TEMPLATE_TROLLEY)
    image = _decode(buffer, ctx)
    slot = _resize(image, round(TROLLEY_SLOT_HEIGHT * stretch_amount), TROLLEY_SLOT_HEIGHT)
    return encode(_composite(background, slot, TROLLEY_OFFSET))


def wasted(buffer: bytes, *, context: FilterContext | None = None) -> bytes:
    """
    Overlay the wasted banner on a grayscaled copy of the input.

    The banner is scaled to the input's height keeping its aspect ratio and
    placed at x = -(input width / 2.5), y = 0.
    The output deliberately keeps the input's dimensions, not the template's.
    """
    ctx = _context(context, "wasted")
    banner = ctx.template(TEMPLATE_WASTED)
    image = _decode(buffer, ctx)
    width, height = image.size
    bw, bh = banner.size
    banner = _resize(banner, round(bw * height / bh), height)
    offset = (-round(width / WASTED_SHIFT_DIVISOR), 0)
    return encode(_composite(_to_grayscale(image), banner, offset))
