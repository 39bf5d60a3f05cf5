"""Tests for SpectrogramEngine regeneration and publishing."""

import threading
from unittest.mock import MagicMock

import numpy as np
import pytest

from spectrogen.core.analyzer import FrameAnalyzer
from spectrogen.core.engine import (
    PipelineResult,
    SpectrogramEngine,
    create_spectrogram_engine,
)
from spectrogen.core.models import (
    AnalysisConfig,
    DisplaySettings,
    NoiseSettings,
    WaveformBuffer,
)
from spectrogen.utils.config import get_default_config
from spectrogen.utils.errors import DecodeError, InsufficientDataError, InvalidInputError


@pytest.fixture
def engine():
    engine = SpectrogramEngine(analysis=AnalysisConfig(fft_size=512))
    yield engine
    engine.shutdown()


@pytest.fixture
def small_display():
    return DisplaySettings(width=300, height=200, panel_label="B")


class TestRegenerate:

    def test_set_waveform_computes(self, engine, sine_waveform):
        result = engine.set_waveform(sine_waveform)
        assert isinstance(result, PipelineResult)
        assert engine.current is result.processed
        assert result.raw.num_bins == 256
        assert result.analysis.fft_size == 512

    def test_raw_kept_separately(self, engine, sine_waveform):
        result = engine.set_waveform(sine_waveform)
        assert result.processed is not result.raw
        assert result.raw.values.min() < -60.0
        assert result.processed.values.min() == -120.0

    def test_noise_off_shares_matrix(self, sine_waveform):
        engine = SpectrogramEngine(
            analysis=AnalysisConfig(fft_size=512),
            noise=NoiseSettings(noise_reduction=False),
        )
        try:
            result = engine.set_waveform(sine_waveform)
            assert result.processed is result.raw
        finally:
            engine.shutdown()

    def test_without_waveform(self, engine):
        with pytest.raises(InsufficientDataError):
            engine.regenerate()
        assert engine.current is None

    def test_generation_increments(self, engine, sine_waveform):
        first = engine.set_waveform(sine_waveform)
        second = engine.regenerate()
        assert second.generation == first.generation + 1

    def test_on_update_called(self, sine_waveform):
        updates = []
        engine = SpectrogramEngine(
            analysis=AnalysisConfig(fft_size=512), on_update=updates.append
        )
        try:
            result = engine.set_waveform(sine_waveform)
            assert updates == [result]
        finally:
            engine.shutdown()


class TestFailureKeepsPrevious:

    def test_analyzer_failure(self, engine, sine_waveform):
        engine.set_waveform(sine_waveform)
        previous = engine.current

        engine.analyzer = MagicMock()
        engine.analyzer.analyze.side_effect = InvalidInputError("boom")
        with pytest.raises(InvalidInputError):
            engine.regenerate()
        assert engine.current is previous

    def test_decode_failure(self, engine, sine_waveform, tmp_path):
        engine.set_waveform(sine_waveform)
        previous = engine.current

        path = tmp_path / "broken.wav"
        path.write_bytes(b"not audio at all")
        with pytest.raises(DecodeError):
            engine.load(path)
        assert engine.waveform is sine_waveform
        assert engine.current is previous

    def test_rejected_waveform_not_kept(self, engine, sine_waveform):
        engine.set_waveform(sine_waveform)
        previous = engine.result

        with pytest.raises(InsufficientDataError):
            engine.set_waveform(WaveformBuffer(samples=[], sample_rate=44100))
        assert engine.waveform is sine_waveform
        assert engine.result is previous

        # later settings changes still run against the displayed waveform
        result = engine.update_settings(noise=NoiseSettings(noise_threshold=-50.0))
        assert result.waveform is sine_waveform
        assert result.noise.noise_threshold == -50.0


class TestUpdateSettings:

    def test_without_waveform_stores_settings(self, engine):
        assert engine.update_settings(analysis=AnalysisConfig(fft_size=1024)) is None
        assert engine.analysis.fft_size == 1024

    def test_fft_change_regenerates(self, engine, sine_waveform):
        engine.set_waveform(sine_waveform)
        result = engine.update_settings(analysis=AnalysisConfig(fft_size=1024))
        assert result.raw.num_bins == 512
        assert engine.current.num_bins == 512

    def test_noise_change_regenerates(self, engine, sine_waveform):
        engine.set_waveform(sine_waveform)
        result = engine.update_settings(noise=NoiseSettings(floor_db=-150.0))
        assert result.processed.values.min() == -150.0

    def test_background_update(self, engine, sine_waveform):
        engine.set_waveform(sine_waveform)
        future = engine.update_settings(
            analysis=AnalysisConfig(fft_size=2048), background=True
        )
        result = future.result(timeout=30)
        assert result is engine.result
        assert engine.current.num_bins == 1024


class TestCoalescing:

    def test_superseded_requests_are_dropped(self, engine, sine_waveform):
        real = FrameAnalyzer()
        entered = threading.Event()
        release = threading.Event()
        release.set()

        def slow_analyze(waveform, config):
            entered.set()
            release.wait(30)
            return real.analyze(waveform, config)

        engine.analyzer = MagicMock()
        engine.analyzer.analyze.side_effect = slow_analyze
        engine.set_waveform(sine_waveform)

        entered.clear()
        release.clear()
        first = engine.request_regeneration()
        assert entered.wait(30)
        second = engine.request_regeneration()
        third = engine.request_regeneration()
        release.set()

        assert first.result(timeout=30) is None
        assert second.result(timeout=30) is None
        latest = third.result(timeout=30)
        assert latest is not None
        assert engine.result is latest
        # set_waveform, first and third; second never started
        assert engine.analyzer.analyze.call_count == 3


class TestRenderAndExport:

    def test_render_before_compute(self, engine, small_display):
        with pytest.raises(InsufficientDataError):
            engine.render(small_display)

    def test_render_size(self, engine, sine_waveform, small_display):
        engine.set_waveform(sine_waveform)
        image = engine.render(small_display)
        assert image.size == (300, 200)
        assert image.mode == "RGBA"

    def test_render_uses_displayed_duration(self, engine, sine_waveform, small_display):
        engine.set_waveform(sine_waveform)
        engine.rasterizer = MagicMock()
        engine.render(small_display)
        args = engine.rasterizer.render.call_args[0]
        assert args[0] is engine.current
        assert args[4] == pytest.approx(1.0)

    def test_export_named_by_panel_label(self, engine, sine_waveform, small_display, tmp_path):
        engine.set_waveform(sine_waveform)
        path = engine.export(small_display, tmp_path)
        assert path == tmp_path / "spectrogram_B.png"
        assert path.exists()


class TestCreateSpectrogramEngine:

    def test_from_default_config(self):
        engine = create_spectrogram_engine(get_default_config())
        try:
            assert engine.analysis.fft_size == 2048
            assert engine.noise.noise_threshold == -60.0
            assert engine.analyzer.batch_frames == 256
        finally:
            engine.shutdown()

    def test_from_empty_config(self):
        engine = create_spectrogram_engine()
        try:
            assert engine.analysis == AnalysisConfig()
            assert engine.noise == NoiseSettings()
        finally:
            engine.shutdown()

    def test_loads_wav(self, wav_file):
        engine = create_spectrogram_engine({"analysis": {"fft_size": 1024}})
        try:
            result = engine.load(wav_file)
            assert result.raw.sample_rate == 22050
            peak_bin = int(np.argmax(result.raw.values[5]))
            assert abs(peak_bin - 440.0 * 1024 / 22050) <= 1.0
        finally:
            engine.shutdown()
