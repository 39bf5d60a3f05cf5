"""Tests for configuration-to-settings builders and validation."""

import logging

import pytest

from spectrogen.core.models import DisplaySettings, PanelLabelPosition, WindowType
from spectrogen.core.settings import (
    build_analysis_config,
    build_annotation_defaults,
    build_display_settings,
    build_noise_settings,
    check_display_range,
    validate_config,
)
from spectrogen.utils.config import get_default_config
from spectrogen.utils.errors import ConfigurationError, DegenerateRangeError


@pytest.fixture
def config():
    return get_default_config()


class TestBuilders:

    def test_defaults(self, config):
        analysis = build_analysis_config(config)
        noise = build_noise_settings(config)
        display = build_display_settings(config)
        defaults = build_annotation_defaults(config)

        assert analysis.fft_size == 2048
        assert analysis.window_function is WindowType.HANN
        assert noise.noise_threshold == -60.0
        assert noise.contrast_boost == 2.0
        assert display.colormap == "grayscale"
        assert display.panel_label_position is PanelLabelPosition.TOP_LEFT
        assert defaults.color == "#ef4444"

    def test_empty_config(self):
        assert build_analysis_config({}).fft_size == 2048
        assert build_noise_settings({}).noise_reduction is True
        assert build_display_settings({}).width == 1000

    def test_unknown_display_key_ignored(self, config, caplog):
        config["display"]["line_width"] = 3
        with caplog.at_level(logging.WARNING, logger="spectrogen.core.settings"):
            display = build_display_settings(config)
        assert display.width == 1000
        assert "line_width" in caplog.text


class TestValidateConfig:

    def test_defaults_are_valid(self, config):
        validate_config(config, strict=True)

    def test_non_standard_fft_size(self, config):
        config["analysis"]["fft_size"] = 8192
        validate_config(config)
        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(config, strict=True)
        assert exc_info.value.config_key == "analysis.fft_size"

    def test_contrast_boost_range(self, config):
        config["noise"]["contrast_boost"] = 3.5
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_unknown_colormap(self, config):
        config["display"]["colormap"] = "jet"
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_boolean_type(self, config):
        config["noise"]["noise_reduction"] = "yes"
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_degenerate_range_strict(self, config):
        config["display"]["min_db"] = -40.0
        config["display"]["max_db"] = -40.0
        validate_config(config)
        with pytest.raises(DegenerateRangeError):
            validate_config(config, strict=True)


class TestCheckDisplayRange:

    def test_inverted_range_warns(self, caplog):
        display = DisplaySettings(min_db=0.0, max_db=-120.0)
        with caplog.at_level(logging.WARNING, logger="spectrogen.core.settings"):
            check_display_range(display)
        assert "inverted" in caplog.text

    def test_valid_range_silent(self, caplog):
        with caplog.at_level(logging.WARNING, logger="spectrogen.core.settings"):
            check_display_range(DisplaySettings())
        assert caplog.text == ""
