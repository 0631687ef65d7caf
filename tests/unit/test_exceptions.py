"""Unit tests for pixelpipe exceptions."""

import pytest

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


@pytest.mark.unit
class TestPixelpipeError:
    def test_base_is_exception(self):
        assert issubclass(PixelpipeError, Exception)

    def test_subclasses_are_pixelpipe_error(self):
        for cls in (
            ValidationError,
            UnknownFilterError,
            ConfigurationError,
            AssetNotReadyError,
            AssetMissingError,
            TransformError,
            DecodeError,
            StageTimeoutError,
            CancellationError,
        ):
            assert issubclass(cls, PixelpipeError)


@pytest.mark.unit
class TestValidationError:
    def test_message_and_field(self):
        e = ValidationError("bad value", field="stretch.factor")
        assert str(e) == "bad value"
        assert e.field == "stretch.factor"

    def test_field_optional(self):
        e = ValidationError("invalid")
        assert e.field == ""

    def test_unknown_filter_is_validation_error(self):
        e = UnknownFilterError("Unknown filter: 'blur'", field="blur")
        assert isinstance(e, ValidationError)
        assert e.field == "blur"


@pytest.mark.unit
class TestTransformError:
    def test_stage_and_original_error(self):
        inner = ValueError("bad geometry")
        e = TransformError("failed", stage="wasted", original_error=inner)
        assert e.stage == "wasted"
        assert e.original_error is inner

    def test_defaults(self):
        e = TransformError("failed")
        assert e.stage == ""
        assert e.original_error is None

    def test_decode_error_is_transform_error(self):
        e = DecodeError("not an image", stage="invert")
        assert isinstance(e, TransformError)
        assert e.stage == "invert"


@pytest.mark.unit
class TestStageTimeoutError:
    def test_is_builtin_timeout_error(self):
        e = StageTimeoutError("too slow", stage="fisheye", timeout=1.0)
        assert isinstance(e, TimeoutError)
        assert e.stage == "fisheye"
        assert e.timeout == 1.0


@pytest.mark.unit
class TestAssetMissingError:
    def test_template_id(self):
        e = AssetMissingError("gone", template_id="trolley")
        assert e.template_id == "trolley"
