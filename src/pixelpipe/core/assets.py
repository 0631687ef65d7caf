"""
Template asset cache for the compositing filters.

Templates listed in the bundled assets.yaml are decoded once per process on a
background thread. Pipeline runs wait on a readiness gate before the first
stage that needs a template, so a request arriving during start-up blocks
briefly instead of observing a half-loaded cache. Masters are never handed
out; every get() returns a private copy.
"""

import importlib.resources
import threading
import time
from pathlib import Path

import yaml
from PIL import Image
from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError

from pixelpipe.core.codec import decode
from pixelpipe.core.config import Config, get_config
from pixelpipe.logging_config import get_logger
from pixelpipe.utils.exceptions import (
    AssetMissingError,
    AssetNotReadyError,
    ConfigurationError,
    DecodeError,
)

logger = get_logger(__name__)

MANIFEST_NAME = "assets.yaml"

TEMPLATE_TROLLEY = "trolley"
TEMPLATE_WASTED = "wasted"


class TemplateEntry(BaseModel):
    """Schema for a single template in assets.yaml."""

    id: str = Field(..., min_length=1, description="Template id used by filters")
    file: str = Field(..., min_length=1, description="File name relative to the manifest")
    description: str | None = None


class AssetManifest(BaseModel):
    """Schema for the assets.yaml manifest."""

    model_config = {"extra": "allow"}

    templates: list[TemplateEntry] = Field(..., min_length=1)


def _read_resource(assets_dir: Path | None, name: str) -> bytes:
    """Read a file from assets_dir, or from the package's bundled assets when None."""
    if assets_dir is None:
        bundled = importlib.resources.files("pixelpipe").joinpath("assets")
        return bundled.joinpath(name).read_bytes()
    return (assets_dir / name).read_bytes()


def load_manifest(assets_dir: Path | None = None) -> AssetManifest:
    """
    Load and validate the asset manifest.

    Args:
        assets_dir: Directory containing assets.yaml; None for the bundled one

    Returns:
        Validated AssetManifest

    Raises:
        ConfigurationError: If the manifest is missing, malformed, or fails validation.
    """
    location = assets_dir or "bundled package assets"
    try:
        raw = _read_resource(assets_dir, MANIFEST_NAME).decode("utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"{MANIFEST_NAME} not found in {location}.") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {MANIFEST_NAME} in {location}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"{MANIFEST_NAME} in {location} is not valid UTF-8: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse {MANIFEST_NAME}: {e}. Check YAML syntax and formatting."
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"{MANIFEST_NAME} is empty or not a mapping. Expected a 'templates' list."
        )

    try:
        manifest = AssetManifest(**data)
    except SchemaError as e:
        errors = "\n".join(
            [f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        )
        raise ConfigurationError(f"Invalid {MANIFEST_NAME} structure:\n{errors}") from e

    ids = [t.id for t in manifest.templates]
    if len(ids) != len(set(ids)):
        raise ConfigurationError(f"Duplicate template ids in {MANIFEST_NAME}: {ids}")
    return manifest


class AssetCache:
    """Process-lifetime cache of decoded template images."""

    def __init__(self, assets_dir: Path | None = None) -> None:
        self._assets_dir = assets_dir
        self._masters: dict[str, Image.Image] = {}
        self._failures: dict[str, str] = {}
        self._load_error: ConfigurationError | None = None
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def assets_dir(self) -> Path | None:
        """Directory the templates are read from; None for the bundled ones."""
        return self._assets_dir

    def load(self) -> None:
        """Start loading templates in the background. Idempotent and non-blocking."""
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._load_all, name="pixelpipe-assets", daemon=True
            )
            self._thread.start()

    def _load_all(self) -> None:
        start_time = time.time()
        masters: dict[str, Image.Image] = {}
        failures: dict[str, str] = {}
        try:
            manifest = load_manifest(self._assets_dir)
            for entry in manifest.templates:
                try:
                    masters[entry.id] = decode(_read_resource(self._assets_dir, entry.file))
                except (OSError, DecodeError) as e:
                    failures[entry.id] = str(e)
                    logger.warning("Template %s could not be loaded: %s", entry.id, e)
        except ConfigurationError as e:
            self._load_error = e
            logger.error("Asset manifest could not be loaded: %s", e)
        except Exception as e:
            self._load_error = ConfigurationError(f"Template assets could not be loaded: {e}")
            self._load_error.__cause__ = e
            logger.exception("Unexpected error while loading template assets")
        finally:
            self._masters = masters
            self._failures = failures
            self._ready.set()
        logger.debug(
            "Loaded %d template(s) in %.3fs failed=%d",
            len(masters),
            time.time() - start_time,
            len(failures),
        )

    def is_ready(self) -> bool:
        """Return True once loading has finished (successfully or not)."""
        return self._ready.is_set()

    def wait_ready(self, timeout: float | None = None) -> bool:
        """Block until loading has finished or timeout elapses. Returns readiness."""
        return self._ready.wait(timeout)

    def ensure_loaded(self, timeout: float | None = None) -> None:
        """
        Start loading if needed and wait for the readiness gate.

        Raises:
            AssetNotReadyError: If loading did not finish within timeout, or the
                manifest itself could not be loaded
        """
        self.load()
        if not self.wait_ready(timeout):
            raise AssetNotReadyError(f"Template assets were not loaded within {timeout}s")
        if self._load_error is not None:
            raise AssetNotReadyError(
                f"Template assets failed to initialize: {self._load_error}"
            ) from self._load_error

    def template_ids(self) -> list[str]:
        """Return the ids of successfully loaded templates."""
        return sorted(self._masters)

    def failures(self) -> dict[str, str]:
        """Return template id -> failure reason for templates that did not load."""
        return dict(self._failures)

    def get(self, template_id: str) -> Image.Image:
        """
        Return a private copy of a template.

        Raises:
            AssetNotReadyError: If called before loading finished or loading failed
            AssetMissingError: If the template is unknown or could not be decoded
        """
        if not self._ready.is_set():
            raise AssetNotReadyError(
                f"Template {template_id!r} requested before assets finished loading"
            )
        if self._load_error is not None:
            raise AssetNotReadyError(f"Template assets failed to initialize: {self._load_error}")
        if template_id in self._failures:
            raise AssetMissingError(
                f"Template {template_id!r} could not be loaded: {self._failures[template_id]}",
                template_id=template_id,
            )
        master = self._masters.get(template_id)
        if master is None:
            raise AssetMissingError(f"Unknown template: {template_id!r}", template_id=template_id)
        return master.copy()


# Process caches keyed by resolved assets directory; None is the bundled set
_global_caches: dict[Path | None, AssetCache] = {}
_global_lock = threading.Lock()


def _cache_key(assets_dir: Path | None) -> Path | None:
    return Path(assets_dir).resolve() if assets_dir is not None else None


def get_asset_cache(config: Config | None = None) -> AssetCache:
    """
    Get the process cache for the configured assets directory.

    Each distinct assets_dir gets its own cache, created and started on the
    first call that names it.

    Args:
        config: Optional config for assets_dir; if None, uses get_config()

    Returns:
        The AssetCache for config.assets_dir
    """
    cfg = config or get_config()
    key = _cache_key(cfg.assets_dir)
    with _global_lock:
        cache = _global_caches.get(key)
        if cache is None:
            cache = AssetCache(cfg.assets_dir)
            cache.load()
            _global_caches[key] = cache
        return cache


def set_asset_cache(cache: AssetCache | None) -> None:
    """
    Install cache as the process cache for its assets directory.

    None drops every process cache so they are recreated on next use.
    """
    with _global_lock:
        if cache is None:
            _global_caches.clear()
        else:
            _global_caches[_cache_key(cache.assets_dir)] = cache
