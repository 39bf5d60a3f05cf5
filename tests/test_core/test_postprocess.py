"""Tests for noise gating and signal enhancement."""

import numpy as np
import pytest

from spectrogen.core.models import NoiseSettings, SpectrogramMatrix
from spectrogen.core.postprocess import SpectrogramPostProcessor
from spectrogen.utils.errors import ConfigurationError


@pytest.fixture
def processor():
    return SpectrogramPostProcessor()


@pytest.fixture
def matrix():
    return SpectrogramMatrix(
        values=np.array([[-90.0, -60.0, -30.0], [-5.0, -61.0, -200.0]]),
        sample_rate=8000,
        fft_size=8,
        hop_size=2,
    )


class TestNoiseGate:

    def test_disabled_returns_same_object(self, processor, matrix):
        settings = NoiseSettings(noise_reduction=False)
        assert processor.process(matrix, settings) is matrix

    def test_gated_cells_equal_floor(self, processor, matrix):
        settings = NoiseSettings(signal_enhancement=False, floor_db=-120.0)
        result = processor.process(matrix, settings)
        gated = matrix.values < -60.0
        assert np.all(result.values[gated] == -120.0)
        np.testing.assert_array_equal(result.values[~gated], matrix.values[~gated])

    def test_threshold_is_exclusive(self, processor, matrix):
        settings = NoiseSettings(signal_enhancement=False)
        result = processor.process(matrix, settings)
        assert result.values[0, 1] == -60.0

    def test_custom_floor(self, processor, matrix):
        settings = NoiseSettings(signal_enhancement=False, floor_db=-150.0)
        result = processor.process(matrix, settings)
        assert result.values[1, 2] == -150.0

    def test_input_unchanged(self, processor, matrix):
        before = matrix.values.copy()
        processor.process(matrix, NoiseSettings())
        np.testing.assert_array_equal(matrix.values, before)

    def test_geometry_preserved(self, processor, matrix):
        result = processor.process(matrix, NoiseSettings())
        assert result is not matrix
        assert result.values.shape == matrix.values.shape
        assert (result.sample_rate, result.fft_size, result.hop_size) == (8000, 8, 2)


class TestEnhancement:

    def test_boost_adds_ten_db_per_unit(self, processor, matrix):
        result = processor.process(matrix, NoiseSettings(contrast_boost=2.0))
        assert result.values[0, 2] == pytest.approx(-20.0)
        assert result.values[0, 1] == pytest.approx(-50.0)

    def test_boost_capped_at_ceiling(self, processor, matrix):
        result = processor.process(matrix, NoiseSettings(contrast_boost=3.0))
        assert result.values[1, 0] == 0.0

    def test_unit_boost_is_identity_on_kept_cells(self, processor, matrix):
        result = processor.process(matrix, NoiseSettings(contrast_boost=1.0))
        assert result.values[0, 2] == -30.0

    def test_gated_cells_not_boosted(self, processor, matrix):
        result = processor.process(matrix, NoiseSettings(contrast_boost=3.0))
        assert result.values[0, 0] == -120.0

    def test_boost_below_one_rejected(self):
        with pytest.raises(ConfigurationError):
            NoiseSettings(contrast_boost=0.5)
