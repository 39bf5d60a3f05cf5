"""
Spectrogen - publication-style spectrogram figures from the command line.

Example usage:
    spectrogen recording.wav
    spectrogen --colormap viridis --fft-size 4096 --panel-label B recording.wav
    spectrogen --config config/config.yaml --output-dir figures/ recording.flac
    spectrogen --annotations notes.json recording.wav
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from spectrogen import __version__
from spectrogen.core.engine import create_spectrogram_engine
from spectrogen.core.models import Annotation
from spectrogen.core.settings import build_display_settings, validate_config
from spectrogen.utils.config import ConfigManager, load_config
from spectrogen.utils.errors import AnnotationError, SpectrogramError
from spectrogen.utils.logging import configure_from_config


def apply_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Layer command-line options over the loaded configuration."""
    manager = ConfigManager(config)
    overrides = {
        "analysis.fft_size": args.fft_size,
        "analysis.window_function": args.window,
        "display.colormap": args.colormap,
        "display.min_db": args.min_db,
        "display.max_db": args.max_db,
        "display.panel_label": args.panel_label,
        "noise.noise_threshold": args.noise_threshold,
        "noise.contrast_boost": args.contrast_boost,
    }
    for key, value in overrides.items():
        if value is not None:
            manager.set(key, value)

    if args.no_noise_reduction:
        manager.set("noise.noise_reduction", False)
    if args.no_enhancement:
        manager.set("noise.signal_enhancement", False)
    if args.plain:
        manager.set("display.academic_style", False)
    return manager.to_dict()


def load_annotations(path: Path) -> List[Annotation]:
    """Read a JSON list of annotation objects."""
    with open(path, 'r') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise AnnotationError(f"Annotation file must contain a JSON list: {path}")
    return [Annotation.from_dict(item) for item in data]


def render_file(
    audio_file: Path,
    config: Dict[str, Any],
    output_dir: Path,
    annotations_file: Optional[Path] = None,
    strict: bool = False,
    verbose: bool = False,
) -> int:
    """
    Render one audio file to a PNG figure.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not audio_file.exists():
        print(f"Error: Audio file not found: {audio_file}")
        return 1

    engine = None
    try:
        validate_config(config, strict=strict)
        display = build_display_settings(config)
        annotations = load_annotations(annotations_file) if annotations_file else []

        engine = create_spectrogram_engine(config)
        print(f"Analyzing: {audio_file}")
        result = engine.load(audio_file)
        path = engine.export(display, output_dir, annotations)

        print(
            f"{result.processed.num_frames} frames x {result.processed.num_bins} bins "
            f"({result.analysis.fft_size}-point {result.analysis.window_function.value}) "
            f"in {result.processing_time:.3f}s"
        )
        print(f"Figure saved to: {path}")
        return 0

    except (SpectrogramError, OSError, ValueError) as e:
        print(f"Error: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return 1

    finally:
        if engine is not None:
            engine.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spectrogen",
        description="Render publication-style spectrogram figures from audio files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  spectrogen recording.wav
  spectrogen --colormap magma --min-db -100 --max-db -10 recording.wav
  spectrogen --no-noise-reduction --plain recording.wav
"""
    )
    parser.add_argument("audio_file", type=Path, help="Audio file to render")
    parser.add_argument(
        "--config", type=Path, default=None, help="Path to configuration file"
    )
    parser.add_argument(
        "--output-dir", "-o", type=Path, default=Path("."),
        help="Directory for the PNG figure (default: current directory)"
    )
    parser.add_argument(
        "--annotations", type=Path, default=None,
        help="JSON file with a list of annotations to overlay"
    )
    parser.add_argument("--fft-size", type=int, default=None, help="FFT size (power of two)")
    parser.add_argument(
        "--window", choices=["hann", "hamming", "rectangular"], default=None,
        help="Analysis window"
    )
    parser.add_argument(
        "--colormap", choices=["grayscale", "viridis", "plasma", "inferno", "magma"],
        default=None, help="Colormap"
    )
    parser.add_argument("--min-db", type=float, default=None, help="Display range floor (dB)")
    parser.add_argument("--max-db", type=float, default=None, help="Display range ceiling (dB)")
    parser.add_argument(
        "--noise-threshold", type=float, default=None, help="Noise gate threshold (dB)"
    )
    parser.add_argument(
        "--contrast-boost", type=float, default=None, help="Signal enhancement factor (1.0-3.0)"
    )
    parser.add_argument(
        "--no-noise-reduction", action="store_true", help="Disable the noise gate"
    )
    parser.add_argument(
        "--no-enhancement", action="store_true", help="Disable signal enhancement"
    )
    parser.add_argument("--panel-label", type=str, default=None, help="Panel label text")
    parser.add_argument(
        "--plain", action="store_true", help="Omit axis labels, titles and wide margins"
    )
    parser.add_argument(
        "--strict", action="store_true",
        help="Reject non-standard FFT sizes and empty or inverted dB ranges"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--version", action="version", version=f"spectrogen {__version__}"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for spectrogen."""
    args = build_parser().parse_args(argv)

    config_path = str(args.config) if args.config else None
    try:
        config = load_config(config_path)
    except SpectrogramError as e:
        print(f"Error: {e}")
        sys.exit(1)

    configure_from_config(config.get("logging", {}), verbose=args.verbose)

    exit_code = render_file(
        audio_file=args.audio_file,
        config=apply_overrides(config, args),
        output_dir=args.output_dir,
        annotations_file=args.annotations,
        strict=args.strict,
        verbose=args.verbose,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
