"""
Spectrogram engine: owns the loaded waveform, the active settings and the
current spectrogram, and reruns the pipeline when any of them change.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from PIL import Image

from spectrogen.core.analyzer import FrameAnalyzer
from spectrogen.core.loader import AudioLoader, create_audio_loader
from spectrogen.core.models import (
    AnalysisConfig,
    Annotation,
    DisplaySettings,
    NoiseSettings,
    SpectrogramMatrix,
    WaveformBuffer,
)
from spectrogen.core.postprocess import SpectrogramPostProcessor
from spectrogen.core.settings import build_analysis_config, build_noise_settings
from spectrogen.utils.errors import InsufficientDataError
from spectrogen.utils.logging import create_logger_with_context
from spectrogen.visualization.rasterizer import Rasterizer, export_png


@dataclass(frozen=True)
class PipelineResult:
    """Output of one regeneration: raw and post-processed spectrograms."""

    waveform: WaveformBuffer
    raw: SpectrogramMatrix
    processed: SpectrogramMatrix
    analysis: AnalysisConfig
    noise: NoiseSettings
    generation: int
    processing_time: float


class SpectrogramEngine:
    """
    Runs waveform -> FrameAnalyzer -> SpectrogramPostProcessor and keeps
    the latest result.

    Design:
    - Dependency Injection: analyzer, post-processor, loader and rasterizer
      are constructor arguments
    - Atomic swap: the waveform and the current result are replaced
      together under a lock, and only when a computation succeeds
    - Coalescing: ``request_regeneration`` runs on a single worker and
      drops requests superseded by a newer one
    """

    def __init__(
        self,
        analyzer: Optional[FrameAnalyzer] = None,
        postprocessor: Optional[SpectrogramPostProcessor] = None,
        loader: Optional[AudioLoader] = None,
        rasterizer: Optional[Rasterizer] = None,
        analysis: Optional[AnalysisConfig] = None,
        noise: Optional[NoiseSettings] = None,
        on_update: Optional[Callable[[PipelineResult], None]] = None,
    ):
        """
        Args:
            analyzer: STFT stage (creates FrameAnalyzer if None)
            postprocessor: Noise gate stage (creates one if None)
            loader: Audio decoder (creates AudioLoader if None)
            rasterizer: Figure renderer (creates Rasterizer if None)
            analysis: Initial FFT settings
            noise: Initial post-processing settings
            on_update: Called with each result that becomes current
        """
        self.analyzer = analyzer or FrameAnalyzer()
        self.postprocessor = postprocessor or SpectrogramPostProcessor()
        self.loader = loader or AudioLoader()
        self.rasterizer = rasterizer or Rasterizer()
        self._analysis = analysis or AnalysisConfig()
        self._noise = noise or NoiseSettings()
        self._on_update = on_update

        self._waveform: Optional[WaveformBuffer] = None
        self._result: Optional[PipelineResult] = None
        self._lock = threading.RLock()
        self._generation = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="spectrogram")
        self.logger = logging.getLogger("engine")

    # -- state ------------------------------------------------------------

    @property
    def waveform(self) -> Optional[WaveformBuffer]:
        with self._lock:
            return self._waveform

    @property
    def analysis(self) -> AnalysisConfig:
        return self._analysis

    @property
    def noise(self) -> NoiseSettings:
        return self._noise

    @property
    def result(self) -> Optional[PipelineResult]:
        with self._lock:
            return self._result

    @property
    def current(self) -> Optional[SpectrogramMatrix]:
        """The displayed (post-processed) spectrogram, if any."""
        result = self.result
        return result.processed if result else None

    # -- triggers ---------------------------------------------------------

    def load(self, file_path: Path) -> PipelineResult:
        """
        Decode ``file_path`` and compute its spectrogram.

        A decode failure leaves the previous waveform and spectrogram in place.
        """
        waveform = self.loader.load(Path(file_path))
        return self.set_waveform(waveform)

    def set_waveform(self, waveform: WaveformBuffer) -> PipelineResult:
        """
        Compute the spectrogram of ``waveform`` and make both current.

        On failure the previous waveform stays loaded alongside the
        previous result.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
        result = self._compute(generation, waveform)
        self._publish(result, force=True)
        return result

    def update_settings(
        self,
        analysis: Optional[AnalysisConfig] = None,
        noise: Optional[NoiseSettings] = None,
        background: bool = False,
    ) -> Any:
        """
        Replace FFT and/or noise settings and regenerate.

        Returns the PipelineResult, or a Future when ``background`` is set.
        Without a waveform the settings are stored and None is returned.
        """
        with self._lock:
            if analysis is not None:
                self._analysis = analysis
            if noise is not None:
                self._noise = noise
            has_waveform = self._waveform is not None

        if not has_waveform:
            return None
        if background:
            return self.request_regeneration()
        return self.regenerate()

    def regenerate(self) -> PipelineResult:
        """
        Recompute synchronously and make the result current.

        Raises:
            InsufficientDataError: No waveform loaded
            SpectrogramError: Any pipeline failure (current result unchanged)
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
        result = self._compute(generation)
        self._publish(result, force=True)
        return result

    def request_regeneration(self) -> "Future[Optional[PipelineResult]]":
        """
        Queue a recomputation on the background worker.

        The future resolves to the new result, or to None when a newer
        request superseded this one before it finished.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
        return self._executor.submit(self._run_queued, generation)

    def _run_queued(self, generation: int) -> Optional[PipelineResult]:
        if self._is_stale(generation):
            self.logger.debug(f"Skipping superseded regeneration #{generation}")
            return None
        result = self._compute(generation)
        if not self._publish(result, force=False):
            self.logger.debug(f"Discarding superseded regeneration #{generation}")
            return None
        return result

    def _is_stale(self, generation: int) -> bool:
        with self._lock:
            return generation != self._generation

    def _compute(
        self, generation: int, waveform: Optional[WaveformBuffer] = None
    ) -> PipelineResult:
        with self._lock:
            if waveform is None:
                waveform = self._waveform
            analysis = self._analysis
            noise = self._noise

        if waveform is None:
            raise InsufficientDataError("No waveform loaded")

        log = create_logger_with_context(
            "engine", {"source": waveform.file_name, "generation": generation}
        )
        start_time = time.time()
        log.info(
            f"Regenerating spectrogram (fft_size={analysis.fft_size}, "
            f"window={analysis.window_function.value})"
        )

        try:
            raw = self.analyzer.analyze(waveform, analysis)
            processed = self.postprocessor.process(raw, noise)
        except Exception:
            log.exception("Spectrogram regeneration failed; keeping previous result")
            raise

        processing_time = time.time() - start_time
        log.info(
            f"Spectrogram ready: {processed.num_frames} frames x "
            f"{processed.num_bins} bins in {processing_time:.3f}s"
        )
        return PipelineResult(
            waveform=waveform,
            raw=raw,
            processed=processed,
            analysis=analysis,
            noise=noise,
            generation=generation,
            processing_time=processing_time,
        )

    def _publish(self, result: PipelineResult, force: bool) -> bool:
        with self._lock:
            if not force and result.generation != self._generation:
                return False
            if self._result is not None and self._result.generation > result.generation:
                return False
            self._result = result
            self._waveform = result.waveform
        if self._on_update:
            self._on_update(result)
        return True

    # -- output -----------------------------------------------------------

    def render(
        self,
        display: DisplaySettings,
        annotations: Iterable[Annotation] = (),
        selected_id: Optional[str] = None,
    ) -> Image.Image:
        """
        Render the current spectrogram as a figure.

        Raises:
            InsufficientDataError: Nothing has been computed yet
        """
        result = self.result
        if result is None:
            raise InsufficientDataError("No spectrogram has been computed")
        matrix = result.processed
        return self.rasterizer.render(
            matrix, display, annotations, selected_id, matrix.duration
        )

    def export(
        self,
        display: DisplaySettings,
        directory: Path,
        annotations: Iterable[Annotation] = (),
    ) -> Path:
        """Render and save a PNG named after the panel label."""
        image = self.render(display, annotations)
        return export_png(image, Path(directory), display.panel_label)

    def shutdown(self) -> None:
        """Shutdown the background worker."""
        self._executor.shutdown(wait=True)


def create_spectrogram_engine(
    config: Optional[Dict[str, Any]] = None,
    on_update: Optional[Callable[[PipelineResult], None]] = None,
) -> SpectrogramEngine:
    """
    Factory function to create a SpectrogramEngine from configuration.
    """
    if config is None:
        config = {}

    analysis_section = config.get("analysis", {})
    return SpectrogramEngine(
        analyzer=FrameAnalyzer(
            batch_frames=analysis_section.get("batch_frames", 256)
        ),
        loader=create_audio_loader(config.get("audio", {})),
        analysis=build_analysis_config(config),
        noise=build_noise_settings(config),
        on_update=on_update,
    )
