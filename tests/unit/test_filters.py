"""Unit tests for the individual filters."""

import io
from collections.abc import Callable

import pytest
from PIL import Image

from pixelpipe.core import filters
from pixelpipe.core.assets import TEMPLATE_TROLLEY, AssetCache
from pixelpipe.core.codec import sniff_format
from pixelpipe.core.config import Config
from pixelpipe.core.filters import FilterContext
from pixelpipe.utils.exceptions import DecodeError, TransformError


def _open(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


@pytest.fixture
def ctx(config: Config, asset_cache: AssetCache) -> Callable[[str], FilterContext]:
    def _ctx(stage: str) -> FilterContext:
        return FilterContext(stage=stage, config=config, assets=asset_cache)

    return _ctx


@pytest.mark.unit
class TestInvert:
    def test_inverts_rgb_keeps_alpha(self, make_png: Callable[..., bytes]):
        out = _open(filters.invert(make_png(color=(200, 40, 10, 90))))
        assert out.getpixel((0, 0)) == (55, 215, 245, 90)

    def test_involution_is_byte_exact(self, make_png: Callable[..., bytes]):
        data = make_png(size=(16, 12), pattern=True)
        assert filters.invert(filters.invert(data)) == data

    def test_output_is_png(self, make_png: Callable[..., bytes]):
        assert sniff_format(filters.invert(make_png())) == "PNG"

    def test_decode_error_names_filter(self):
        with pytest.raises(DecodeError) as exc_info:
            filters.invert(b"plain text, no pixels here")
        assert exc_info.value.stage == "invert"


@pytest.mark.unit
class TestGrayscale:
    def test_channels_equal(self, make_png: Callable[..., bytes]):
        out = _open(filters.grayscale(make_png(size=(12, 9), pattern=True)))
        for r, g, b, _a in out.getdata():
            assert r == g == b

    def test_alpha_unchanged(self, make_png: Callable[..., bytes]):
        out = _open(filters.grayscale(make_png(color=(10, 200, 30, 77))))
        assert out.getpixel((3, 3))[3] == 77

    def test_weighted_luminance(self, make_png: Callable[..., bytes]):
        out = _open(filters.grayscale(make_png(color=(0, 255, 0, 255))))
        # ITU-R 601: 0.587 * 255
        assert out.getpixel((0, 0))[0] == 150


@pytest.mark.unit
class TestStretchSquish:
    def test_stretch_divides_height(self, make_png: Callable[..., bytes]):
        out = _open(filters.stretch(make_png(size=(30, 30))))
        assert out.size == (30, 10)

    def test_stretch_factor(self, make_png: Callable[..., bytes]):
        out = _open(filters.stretch(make_png(size=(30, 20)), factor=4))
        assert out.size == (30, 5)

    def test_squish_divides_width(self, make_png: Callable[..., bytes]):
        out = _open(filters.squish(make_png(size=(30, 30))))
        assert out.size == (10, 30)

    def test_never_below_one_pixel(self, make_png: Callable[..., bytes]):
        out = _open(filters.squish(make_png(size=(2, 2)), factor=100))
        assert out.size == (1, 2)

    def test_non_positive_factor(self, make_png: Callable[..., bytes]):
        with pytest.raises(TransformError):
            filters.stretch(make_png(), factor=0)


@pytest.mark.unit
class TestFisheye:
    def test_keeps_size_and_center(self, make_png: Callable[..., bytes]):
        data = make_png(size=(20, 16), pattern=True)
        source = _open(data)
        out = _open(filters.fisheye(data))
        assert out.size == (20, 16)
        assert out.getpixel((10, 8)) == source.getpixel((10, 8))

    def test_uniform_image_unchanged(self, make_png: Callable[..., bytes]):
        data = make_png(size=(10, 10), color=(5, 6, 7, 255))
        out = _open(filters.fisheye(data, radius=1.5))
        assert set(out.getdata()) == {(5, 6, 7, 255)}

    def test_distorts_pattern(self, make_png: Callable[..., bytes]):
        data = make_png(size=(24, 24), pattern=True)
        assert _open(filters.fisheye(data)).tobytes() != _open(data).tobytes()


@pytest.mark.unit
class TestDeepfry:
    def test_keeps_size_and_alpha(self, make_png: Callable[..., bytes]):
        data = make_png(size=(17, 11), color=(120, 130, 140, 200))
        out = _open(filters.deepfry(data))
        assert out.size == (17, 11)
        assert out.mode == "RGBA"
        assert out.getpixel((5, 5))[3] == 200
        assert sniff_format(filters.deepfry(data)) == "PNG"

    def test_changes_pixels(self, make_png: Callable[..., bytes]):
        data = make_png(size=(32, 32), pattern=True)
        assert _open(filters.deepfry(data)).tobytes() != _open(data).tobytes()


@pytest.mark.unit
class TestTrolley:
    def test_output_has_template_size(self, make_png: Callable[..., bytes], ctx):
        out = _open(filters.trolley(make_png(size=(300, 50)), context=ctx("trolley")))
        assert out.size == (120, 80)

    def test_input_pasted_at_slot(self, make_png: Callable[..., bytes], ctx):
        out = _open(filters.trolley(make_png(color=(255, 0, 0, 255)), context=ctx("trolley")))
        assert out.getpixel((14, 34)) == (255, 0, 0, 255)
        # Outside the 96x48 slot at (4, 24) the template shows through
        assert out.getpixel((2, 2)) == (0, 200, 0, 255)
        assert out.getpixel((110, 30)) == (0, 200, 0, 255)

    def test_stretch_amount_changes_slot_width(self, make_png: Callable[..., bytes], ctx):
        out = _open(
            filters.trolley(
                make_png(color=(255, 0, 0, 255)), stretch_amount=1, context=ctx("trolley")
            )
        )
        assert out.getpixel((40, 40)) == (255, 0, 0, 255)
        assert out.getpixel((60, 40)) == (0, 200, 0, 255)

    def test_master_not_mutated(self, make_png: Callable[..., bytes], ctx, asset_cache):
        filters.trolley(make_png(color=(255, 0, 0, 255)), context=ctx("trolley"))
        assert asset_cache.get(TEMPLATE_TROLLEY).getpixel((14, 34)) == (0, 200, 0, 255)


@pytest.mark.unit
class TestWasted:
    def test_output_keeps_input_size(self, make_png: Callable[..., bytes], ctx):
        out = _open(filters.wasted(make_png(size=(100, 50)), context=ctx("wasted")))
        assert out.size == (100, 50)

    def test_grayscale_under_transparent_part(self, make_png: Callable[..., bytes], ctx):
        out = _open(
            filters.wasted(make_png(size=(100, 50), color=(200, 40, 10, 255)), context=ctx("wasted"))
        )
        r, g, b, _a = out.getpixel((5, 25))
        assert r == g == b

    def test_banner_over_right_part(self, make_png: Callable[..., bytes], ctx):
        # Banner is scaled to 150x50 and shifted left by 100 / 2.5 = 40 pixels
        out = _open(filters.wasted(make_png(size=(100, 50)), context=ctx("wasted")))
        assert out.getpixel((90, 25)) == (0, 0, 255, 255)

    def test_too_wide_input_fails(self, make_png: Callable[..., bytes], ctx):
        with pytest.raises(TransformError) as exc_info:
            filters.wasted(make_png(size=(700, 50)), context=ctx("wasted"))
        assert "outside" in str(exc_info.value)


@pytest.mark.unit
class TestDefaultContext:
    def test_filters_run_without_context(self, make_png: Callable[..., bytes]):
        out = _open(filters.trolley(make_png()))
        assert out.size == (200, 120)
