"""Tests for the spectrogen command line."""

import json
import logging

import pytest

from spectrogen.cli import apply_overrides, build_parser, load_annotations, main, render_file
from spectrogen.utils.config import get_default_config
from spectrogen.utils.errors import AnnotationError


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestApplyOverrides:

    def test_options_override_config(self):
        args = build_parser().parse_args([
            "clip.wav", "--fft-size", "1024", "--colormap", "viridis",
            "--no-noise-reduction", "--plain", "--panel-label", "D",
        ])
        config = apply_overrides(get_default_config(), args)
        assert config["analysis"]["fft_size"] == 1024
        assert config["display"]["colormap"] == "viridis"
        assert config["display"]["panel_label"] == "D"
        assert config["display"]["academic_style"] is False
        assert config["noise"]["noise_reduction"] is False
        assert config["noise"]["signal_enhancement"] is True

    def test_unset_options_keep_config(self):
        args = build_parser().parse_args(["clip.wav"])
        assert apply_overrides(get_default_config(), args) == get_default_config()


class TestLoadAnnotations:

    def test_reads_list(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps([
            {"id": "1", "type": "text", "x": 120, "y": 80, "text": "Onset"},
            {"id": "2", "type": "arrow", "x": 200, "y": 100, "end_x": 260, "end_y": 140},
        ]))
        annotations = load_annotations(path)
        assert [a.id for a in annotations] == ["1", "2"]

    def test_rejects_object(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"id": "1"}))
        with pytest.raises(AnnotationError):
            load_annotations(path)

    def test_rejects_incomplete_entry(self, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps([{"id": "1", "type": "text"}]))
        with pytest.raises(AnnotationError, match="Missing annotation fields"):
            load_annotations(path)


class TestRenderFile:

    def test_writes_png(self, wav_file, tmp_path):
        config = get_default_config()
        config["analysis"]["fft_size"] = 512
        assert render_file(wav_file, config, tmp_path / "out") == 0
        assert (tmp_path / "out" / "spectrogram_A.png").exists()

    def test_missing_audio(self, tmp_path):
        assert render_file(tmp_path / "missing.wav", get_default_config(), tmp_path) == 1

    def test_strict_rejects_fft_size(self, wav_file, tmp_path):
        config = get_default_config()
        config["analysis"]["fft_size"] = 256
        assert render_file(wav_file, config, tmp_path, strict=True) == 1
        assert not (tmp_path / "spectrogram_A.png").exists()

    def test_incomplete_annotation_is_an_error(self, wav_file, tmp_path, capsys):
        notes = tmp_path / "notes.json"
        notes.write_text(json.dumps([{"id": "1", "type": "text"}]))
        config = get_default_config()
        config["analysis"]["fft_size"] = 512
        assert render_file(wav_file, config, tmp_path / "out", annotations_file=notes) == 1
        assert "Missing annotation fields" in capsys.readouterr().out
        assert not (tmp_path / "out" / "spectrogram_A.png").exists()


class TestMain:

    def test_success_exit_code(self, wav_file, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc_info:
            main([str(wav_file), "-o", str(tmp_path / "figs"), "--panel-label", "E"])
        assert exc_info.value.code == 0
        assert (tmp_path / "figs" / "spectrogram_E.png").exists()

    def test_bad_config_path(self, wav_file, tmp_path, restore_root_logger):
        with pytest.raises(SystemExit) as exc_info:
            main([str(wav_file), "--config", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1
