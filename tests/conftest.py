"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.

Shared fixtures build images in memory and point the asset cache at
templates written to tmp_path.
"""

import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from pixelpipe.core import assets as assets_module
from pixelpipe.core import config as config_module
from pixelpipe.core.assets import AssetCache
from pixelpipe.core.config import Config

# Test templates: trolley is big enough for the 96x48 slot at (4, 24);
# wasted is transparent on its left half and opaque blue on its right half.
TROLLEY_SIZE = (120, 80)
TROLLEY_COLOR = (0, 200, 0, 255)
WASTED_SIZE = (60, 20)
WASTED_COLOR = (0, 0, 255, 255)

MANIFEST = """\
templates:
  - id: trolley
    file: trolley.png
  - id: wasted
    file: wasted.png
"""


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (concurrent stress runs). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture(autouse=True)
def _reset_globals(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test a fresh global config and asset cache."""
    monkeypatch.setattr(config_module, "_global_config", None)
    monkeypatch.setattr(assets_module, "_global_caches", {})


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    """Factory for PNG bytes: make_png(size=(w, h), color=(r, g, b, a)) or pattern=True."""

    def _make(
        size: tuple[int, int] = (32, 24),
        color: tuple[int, int, int, int] = (200, 40, 10, 255),
        pattern: bool = False,
    ) -> bytes:
        image = Image.new("RGBA", size, color)
        if pattern:
            width, height = size
            for y in range(height):
                for x in range(width):
                    image.putpixel(
                        (x, y), ((x * 37) % 256, (y * 53) % 256, (x * y) % 256, 128 + (x % 128))
                    )
        return encode_png(image)

    return _make


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    """A directory with a manifest and two small templates."""
    directory = tmp_path / "assets"
    directory.mkdir()
    (directory / "assets.yaml").write_text(MANIFEST, encoding="utf-8")
    Image.new("RGBA", TROLLEY_SIZE, TROLLEY_COLOR).save(directory / "trolley.png")
    wasted = Image.new("RGBA", WASTED_SIZE, (0, 0, 0, 0))
    wasted.paste(WASTED_COLOR, (WASTED_SIZE[0] // 2, 0, WASTED_SIZE[0], WASTED_SIZE[1]))
    wasted.save(directory / "wasted.png")
    return directory


@pytest.fixture
def config(assets_dir: Path) -> Config:
    """Config using the test templates and a generous stage budget."""
    return Config(assets_dir=assets_dir, stage_timeout=30.0)


@pytest.fixture
def asset_cache(assets_dir: Path) -> AssetCache:
    """An AssetCache over the test templates, already loaded."""
    cache = AssetCache(assets_dir)
    cache.ensure_loaded(timeout=10)
    return cache
