"""
pixelpipe - ordered image filter pipelines

Applies a named, ordered sequence of pixel-level filters to an encoded image
buffer and returns the derived buffer plus a per-stage trace.

Library usage:
- run_pipeline(["invert", "stretch"], data, {"stretch": {"factor": 2}}) returns a
  PipelineResult with .buffer (PNG bytes), .trace and .skipped.
- Configuration can be passed per call (config=my_config) or via the shared
  config: use get_config() / set_config() and omit the config argument.
- Template assets are process-scoped. Call preload_assets() at start-up to load
  them before the first request; runs that need them wait until they are ready.
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  PIXELPIPE_VERBOSITY env (0/1/2) is read when CLI runs or when logging is configured.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pixelpipe")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from pixelpipe.core.assets import AssetCache, get_asset_cache, set_asset_cache
from pixelpipe.core.config import Config, get_config, set_config
from pixelpipe.core.pipeline import (
    Pipeline,
    PipelineResult,
    StageRecord,
    parse_param_overrides,
    parse_pipeline,
    run_pipeline,
)
from pixelpipe.core.registry import FilterName, get_registry
from pixelpipe.logging_config import configure_logging, set_verbosity
from pixelpipe.utils.exceptions import (
    AssetMissingError,
    AssetNotReadyError,
    CancellationError,
    ConfigurationError,
    DecodeError,
    PixelpipeError,
    StageTimeoutError,
    TransformError,
    UnknownFilterError,
    ValidationError,
)


def preload_assets(config: Config | None = None, wait: bool = False) -> AssetCache:
    """
    Start loading template assets for the process.

    Args:
        config: Optional config for assets_dir and asset_load_timeout
        wait: Block until loading has finished

    Returns:
        The global AssetCache

    Raises:
        AssetNotReadyError: If wait is True and loading did not succeed in time
    """
    cfg = config or get_config()
    cache = get_asset_cache(cfg)
    if wait:
        cache.ensure_loaded(cfg.asset_load_timeout)
    return cache


__all__ = [
    "AssetCache",
    "AssetMissingError",
    "AssetNotReadyError",
    "CancellationError",
    "Config",
    "ConfigurationError",
    "DecodeError",
    "FilterName",
    "Pipeline",
    "PipelineResult",
    "PixelpipeError",
    "StageRecord",
    "StageTimeoutError",
    "TransformError",
    "UnknownFilterError",
    "ValidationError",
    "configure_logging",
    "get_asset_cache",
    "get_config",
    "get_registry",
    "parse_param_overrides",
    "parse_pipeline",
    "preload_assets",
    "run_pipeline",
    "set_asset_cache",
    "set_config",
    "set_verbosity",
]
