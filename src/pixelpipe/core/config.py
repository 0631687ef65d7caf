"""
Configuration management for pixelpipe.

This module handles stage budgets, the unknown-filter policy, asset locations
and the fixed tuning constants of the filters.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from pixelpipe.logging_config import get_logger
from pixelpipe.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
# Fisheye on an input at the decode limit must fit in the stage budget
DEFAULT_STAGE_TIMEOUT = 10.0
DEFAULT_ASSET_LOAD_TIMEOUT = 10.0
DEFAULT_MAX_INPUT_PIXELS = 25_000_000
DEFAULT_STAGE_WORKERS = 8

UNKNOWN_FILTER_SKIP = "skip"
UNKNOWN_FILTER_ERROR = "error"
UNKNOWN_FILTER_POLICIES = (UNKNOWN_FILTER_SKIP, UNKNOWN_FILTER_ERROR)


@dataclass
class Config:
    """Configuration for pixelpipe runs."""

    # Template assets; None means the templates bundled with the package
    assets_dir: Path | None = None

    # Timeout configuration (seconds); None or 0 disables the stage budget
    stage_timeout: float | None = DEFAULT_STAGE_TIMEOUT
    asset_load_timeout: float = DEFAULT_ASSET_LOAD_TIMEOUT

    # Size of the shared thread pool that runs budgeted stages
    stage_workers: int = DEFAULT_STAGE_WORKERS

    # "skip" passes unknown names through, "error" rejects the pipeline up front
    unknown_filter_policy: str = UNKNOWN_FILTER_SKIP

    # Filter tuning
    deepfry_contrast: float = 2.5
    deepfry_quality: int = 1  # JPEG quality for the artifacting pass

    # Decode guard against decompression bombs
    max_input_pixels: int = DEFAULT_MAX_INPUT_PIXELS

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            PIXELPIPE_ASSETS_DIR: Optional directory holding assets.yaml and templates
            PIXELPIPE_STAGE_TIMEOUT: Optional per-stage budget in seconds (0 disables)
            PIXELPIPE_ASSET_LOAD_TIMEOUT: Optional wait for template loading in seconds
            PIXELPIPE_STAGE_WORKERS: Optional size of the stage thread pool
            PIXELPIPE_UNKNOWN_FILTER_POLICY: Optional "skip" (default) or "error"
            PIXELPIPE_MAX_INPUT_PIXELS: Optional decode limit in pixels

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """

        def _float_env(name: str, default: float) -> float:
            val = os.getenv(name)
            if val is None or val.strip() == "":
                return default
            try:
                return float(val)
            except ValueError as e:
                raise ConfigurationError(f"{name} must be a number, got {val!r}.") from e

        def _int_env(name: str, default: int) -> int:
            val = os.getenv(name)
            if val is None or val.strip() == "":
                return default
            try:
                return int(val)
            except ValueError as e:
                raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from e

        assets_dir = os.getenv("PIXELPIPE_ASSETS_DIR", "").strip()
        stage_timeout: float | None = _float_env("PIXELPIPE_STAGE_TIMEOUT", DEFAULT_STAGE_TIMEOUT)
        if stage_timeout == 0:
            stage_timeout = None

        return cls(
            assets_dir=Path(assets_dir) if assets_dir else None,
            stage_timeout=stage_timeout,
            asset_load_timeout=_float_env(
                "PIXELPIPE_ASSET_LOAD_TIMEOUT", DEFAULT_ASSET_LOAD_TIMEOUT
            ),
            unknown_filter_policy=os.getenv(
                "PIXELPIPE_UNKNOWN_FILTER_POLICY", UNKNOWN_FILTER_SKIP
            )
            .strip()
            .lower(),
            stage_workers=_int_env("PIXELPIPE_STAGE_WORKERS", DEFAULT_STAGE_WORKERS),
            max_input_pixels=_int_env("PIXELPIPE_MAX_INPUT_PIXELS", DEFAULT_MAX_INPUT_PIXELS),
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")

        if self.stage_timeout is not None and self.stage_timeout < 0:
            raise ConfigurationError(
                f"stage_timeout must not be negative, got {self.stage_timeout}."
            )
        if self.asset_load_timeout <= 0:
            raise ConfigurationError(
                f"asset_load_timeout must be positive, got {self.asset_load_timeout}."
            )
        if self.stage_workers <= 0:
            raise ConfigurationError(
                f"stage_workers must be positive, got {self.stage_workers}."
            )
        if self.unknown_filter_policy not in UNKNOWN_FILTER_POLICIES:
            raise ConfigurationError(
                f"Unknown unknown_filter_policy: {self.unknown_filter_policy!r}. "
                f"Must be one of: {', '.join(UNKNOWN_FILTER_POLICIES)}."
            )
        if not 1 <= self.deepfry_quality <= 95:
            raise ConfigurationError(
                f"deepfry_quality must be between 1 and 95, got {self.deepfry_quality}."
            )
        if self.deepfry_contrast <= 0:
            raise ConfigurationError(
                f"deepfry_contrast must be positive, got {self.deepfry_contrast}."
            )
        if self.max_input_pixels <= 0:
            raise ConfigurationError(
                f"max_input_pixels must be positive, got {self.max_input_pixels}."
            )

    @property
    def strict(self) -> bool:
        """True when unknown filter names reject the pipeline."""
        return self.unknown_filter_policy == UNKNOWN_FILTER_ERROR


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        The global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: The Config instance to use globally
    """
    global _global_config
    _global_config = config
