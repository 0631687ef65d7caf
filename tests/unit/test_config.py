"""Unit tests for config."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from pixelpipe.core.config import (
    DEFAULT_STAGE_TIMEOUT,
    UNKNOWN_FILTER_POLICIES,
    Config,
    get_config,
    set_config,
)
from pixelpipe.utils.exceptions import ConfigurationError

_ENV_KEYS = (
    "PIXELPIPE_ASSETS_DIR",
    "PIXELPIPE_STAGE_TIMEOUT",
    "PIXELPIPE_ASSET_LOAD_TIMEOUT",
    "PIXELPIPE_UNKNOWN_FILTER_POLICY",
    "PIXELPIPE_MAX_INPUT_PIXELS",
    "PIXELPIPE_STAGE_WORKERS",
)


def _clean_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if k not in _ENV_KEYS}


@pytest.mark.unit
class TestConfig:
    def test_defaults_validate(self):
        c = Config()
        c.validate()
        assert c.stage_timeout == DEFAULT_STAGE_TIMEOUT
        assert c.unknown_filter_policy == "skip"
        assert c.strict is False

    def test_strict_policy(self):
        c = Config(unknown_filter_policy="error")
        c.validate()
        assert c.strict is True

    def test_validate_rejects_unknown_policy(self):
        c = Config(unknown_filter_policy="ignore")
        with pytest.raises(ConfigurationError) as exc_info:
            c.validate()
        assert "unknown_filter_policy" in str(exc_info.value)

    def test_validate_rejects_negative_stage_timeout(self):
        with pytest.raises(ConfigurationError):
            Config(stage_timeout=-1).validate()

    def test_disabled_stage_timeout_is_valid(self):
        Config(stage_timeout=None).validate()

    def test_validate_rejects_empty_stage_pool(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Config(stage_workers=0).validate()
        assert "stage_workers" in str(exc_info.value)

    def test_validate_rejects_bad_quality(self):
        with pytest.raises(ConfigurationError):
            Config(deepfry_quality=0).validate()
        with pytest.raises(ConfigurationError):
            Config(deepfry_quality=100).validate()

    def test_validate_rejects_non_positive_values(self):
        with pytest.raises(ConfigurationError):
            Config(deepfry_contrast=0).validate()
        with pytest.raises(ConfigurationError):
            Config(max_input_pixels=0).validate()
        with pytest.raises(ConfigurationError):
            Config(asset_load_timeout=0).validate()

    def test_known_policies_constant(self):
        assert UNKNOWN_FILTER_POLICIES == ("skip", "error")


@pytest.mark.unit
class TestConfigFromEnv:
    def test_from_env_uses_env_vars(self, tmp_path: Path):
        env = _clean_env()
        env.update(
            {
                "PIXELPIPE_ASSETS_DIR": str(tmp_path),
                "PIXELPIPE_STAGE_TIMEOUT": "2.5",
                "PIXELPIPE_ASSET_LOAD_TIMEOUT": "3",
                "PIXELPIPE_UNKNOWN_FILTER_POLICY": "ERROR",
                "PIXELPIPE_MAX_INPUT_PIXELS": "1000",
            }
        )
        with patch.dict(os.environ, env, clear=True):
            c = Config.from_env()
        assert c.assets_dir == tmp_path
        assert c.stage_timeout == 2.5
        assert c.asset_load_timeout == 3.0
        assert c.unknown_filter_policy == "error"
        assert c.max_input_pixels == 1000

    def test_from_env_defaults_when_env_empty(self):
        with patch.dict(os.environ, _clean_env(), clear=True):
            c = Config.from_env()
        assert c.assets_dir is None
        assert c.stage_timeout == DEFAULT_STAGE_TIMEOUT
        assert c.unknown_filter_policy == "skip"

    def test_stage_workers_from_env(self):
        env = _clean_env()
        env["PIXELPIPE_STAGE_WORKERS"] = "3"
        with patch.dict(os.environ, env, clear=True):
            c = Config.from_env()
        assert c.stage_workers == 3

    def test_zero_stage_timeout_disables_budget(self):
        env = _clean_env()
        env["PIXELPIPE_STAGE_TIMEOUT"] = "0"
        with patch.dict(os.environ, env, clear=True):
            c = Config.from_env()
        assert c.stage_timeout is None

    def test_invalid_number_raises(self):
        env = _clean_env()
        env["PIXELPIPE_STAGE_TIMEOUT"] = "soon"
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError) as exc_info:
                Config.from_env()
        assert "PIXELPIPE_STAGE_TIMEOUT" in str(exc_info.value)


@pytest.mark.unit
class TestGlobalConfig:
    def test_get_config_returns_same_instance(self):
        assert get_config() is get_config()

    def test_set_config_replaces_instance(self):
        custom = Config(stage_timeout=5.0)
        set_config(custom)
        assert get_config() is custom
