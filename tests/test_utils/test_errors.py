"""Tests for the exception hierarchy."""

import pytest

from spectrogen.utils.errors import (
    AnnotationError,
    ConfigurationError,
    DecodeError,
    DegenerateRangeError,
    InsufficientDataError,
    InvalidInputError,
    SpectrogramError,
)


class TestSpectrogramError:

    def test_message_only(self):
        assert str(SpectrogramError("failed")) == "failed"

    def test_details_in_str(self):
        error = SpectrogramError("failed", details={"frame": 3})
        assert str(error) == "failed (Details: {'frame': 3})"

    @pytest.mark.parametrize("error", [
        DecodeError("x", file_path="a.wav"),
        InvalidInputError("x", value=3),
        InsufficientDataError("x", sample_count=0),
        ConfigurationError("x", config_key="analysis.fft_size"),
        DegenerateRangeError(-60.0, -60.0),
        AnnotationError("x", annotation_id="1"),
    ])
    def test_hierarchy(self, error):
        assert isinstance(error, SpectrogramError)


class TestSubclasses:

    def test_decode_error(self):
        error = DecodeError("bad header", file_path="clip.wav")
        assert error.file_path == "clip.wav"
        assert error.details == {"file_path": "clip.wav"}

    def test_insufficient_data(self):
        error = InsufficientDataError("empty", sample_count=0, fft_size=2048, hop_size=512)
        assert error.details == {"sample_count": 0, "fft_size": 2048, "hop_size": 512}

    def test_degenerate_range(self):
        error = DegenerateRangeError(0.0, -120.0)
        assert (error.min_db, error.max_db) == (0.0, -120.0)
        assert "min_db=0.0" in str(error)

    def test_configuration_error_key(self):
        assert ConfigurationError("x", config_key="display.width").config_key == "display.width"
