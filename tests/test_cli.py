"""
Pytest coverage for the framefix command line.
"""

# Standard Library
import os
import sys

# PIP3 modules
import yaml

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# tests helpers
from frame_utils import FakeTool

# local repo modules
import framefix_cli
from framefixlib.core import config

#============================================

def _use_fake_tool(monkeypatch, tool) -> None:
	monkeypatch.setattr(framefix_cli.FfmpegTool, "from_settings",
		classmethod(lambda cls, settings: tool))

#============================================

def test_missing_input_prints_usage(capsys) -> None:
	assert framefix_cli.main([]) == 1
	assert "usage:" in capsys.readouterr().err

#============================================

def test_success_prints_output_path(tmp_path, monkeypatch, capsys) -> None:
	monkeypatch.chdir(tmp_path)
	(tmp_path / "clip.mp4").write_bytes(b"\x00")
	tool = FakeTool(frame_count=8, duplicate_of_next=(2,))
	_use_fake_tool(monkeypatch, tool)
	assert framefix_cli.main(["clip.mp4", "-q"]) == 0
	out_lines = capsys.readouterr().out.strip().splitlines()
	assert out_lines[-1] == os.path.join(str(tmp_path), "clip_processed.mp4")
	assert tool.resolve_calls == 1
	assert len(tool.encoded_frames) == 7

#============================================

def test_failure_prints_error(tmp_path, monkeypatch, capsys) -> None:
	monkeypatch.chdir(tmp_path)
	_use_fake_tool(monkeypatch, FakeTool())
	assert framefix_cli.main(["missing.mp4", "-q"]) == 1
	captured = capsys.readouterr()
	assert "error: input video not found" in captured.err
	assert not os.path.exists(tmp_path / "missing_processed.mp4")

#============================================

def test_unresolvable_ffmpeg_is_fatal(tmp_path, capsys) -> None:
	(tmp_path / "clip.mp4").write_bytes(b"\x00")
	code = framefix_cli.main([str(tmp_path / "clip.mp4"), "-q",
		"--ffmpeg", str(tmp_path / "no-ffmpeg")])
	assert code == 1
	assert "error:" in capsys.readouterr().err

#============================================

def test_flags_override_config(tmp_path, monkeypatch, capsys) -> None:
	monkeypatch.chdir(tmp_path)
	(tmp_path / "clip.mp4").write_bytes(b"\x00")
	tool = FakeTool(frame_count=6)
	_use_fake_tool(monkeypatch, tool)
	config_path = str(tmp_path / "framefix.yaml")
	code = framefix_cli.main(["clip.mp4", "-q", "-c", config_path, "--fps", "25",
		"-b", "3", "--report"])
	assert code == 0
	assert os.path.isfile(config_path)
	output = capsys.readouterr().out
	report_text = output.rsplit("\n", 2)[0]
	report = yaml.safe_load(report_text)
	assert report["state"] == "done"
	assert report["settings"]["filter"]["batch_size"] == 3
	assert tool.encode_calls[0][2] == 25.0

#============================================

def test_invalid_flag_value_rejected(tmp_path, capsys) -> None:
	(tmp_path / "clip.mp4").write_bytes(b"\x00")
	assert framefix_cli.main([str(tmp_path / "clip.mp4"), "-b", "0"]) == 1
	assert "batch_size" in capsys.readouterr().err

#============================================

def test_write_default_config(tmp_path, capsys) -> None:
	input_file = str(tmp_path / "clip.mp4")
	assert framefix_cli.main([input_file, "--write-default-config"]) == 0
	config_path = config.default_config_path(input_file)
	assert config.load_config(config_path) == config.default_config()
	assert framefix_cli.main([input_file, "--write-default-config"]) == 1
