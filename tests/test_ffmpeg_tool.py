"""
Pytest coverage for the ffmpeg adapter (command building, tool lookup).
"""

# Standard Library
import os
import shutil
import stat
import subprocess
import sys
import threading
import time

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from framefixlib.core import utils
from framefixlib.core.errors import DecodeError, EncodeError, JobCancelled
from framefixlib.core.errors import ToolResolutionError
from framefixlib.media import ffmpeg
from framefixlib.media import ffmpeg_extract
from framefixlib.media import ffmpeg_render

#============================================

def _fake_ffmpeg(tmp_path, body: str) -> str:
	"""
	Write an executable shell script that stands in for ffmpeg.
	"""
	script = tmp_path / "fake-ffmpeg"
	script.write_text("#!/bin/sh\n" + body + "\n")
	script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
	return str(script)

#============================================

def test_resolve_runs_lookup_once(monkeypatch) -> None:
	monkeypatch.delenv(ffmpeg.FFMPEG_ENV_VAR, raising=False)
	calls = []

	def slow_which(name):
		calls.append(name)
		time.sleep(0.05)
		return "/opt/bin/ffmpeg"

	monkeypatch.setattr(shutil, "which", slow_which)
	tool = ffmpeg.FfmpegTool()
	results = []
	threads = [threading.Thread(target=lambda: results.append(tool.resolve()))
		for _ in range(8)]
	for thread in threads:
		thread.start()
	for thread in threads:
		thread.join()
	assert results == ["/opt/bin/ffmpeg"] * 8
	assert calls == ["ffmpeg"]
	assert tool.resolve() == "/opt/bin/ffmpeg"
	assert calls == ["ffmpeg"]

#============================================

def test_resolve_missing_tool_raises(monkeypatch) -> None:
	monkeypatch.delenv(ffmpeg.FFMPEG_ENV_VAR, raising=False)
	monkeypatch.setattr(shutil, "which", lambda name: None)
	with pytest.raises(ToolResolutionError):
		ffmpeg.FfmpegTool().resolve()

#============================================

def test_resolve_bad_configured_path_raises(tmp_path) -> None:
	tool = ffmpeg.FfmpegTool(ffmpeg_path=str(tmp_path / "no-such-ffmpeg"))
	with pytest.raises(ToolResolutionError):
		tool.resolve()

#============================================

def test_resolve_prefers_configured_path(tmp_path, monkeypatch) -> None:
	script = _fake_ffmpeg(tmp_path, "exit 0")
	monkeypatch.setenv(ffmpeg.FFMPEG_ENV_VAR, "/elsewhere/ffmpeg")
	assert ffmpeg.FfmpegTool(ffmpeg_path=script).resolve() == script

#============================================

def test_resolve_uses_environment(tmp_path, monkeypatch) -> None:
	script = _fake_ffmpeg(tmp_path, "exit 0")
	monkeypatch.setenv(ffmpeg.FFMPEG_ENV_VAR, script)
	assert ffmpeg.FfmpegTool().resolve() == script

#============================================

def test_decode_cmd_uses_frame_pattern() -> None:
	cmd = ffmpeg_extract.build_decode_cmd("ffmpeg", "clip.mp4", "/tmp/work")
	assert cmd[0] == "ffmpeg"
	assert cmd[cmd.index("-i") + 1] == "clip.mp4"
	assert cmd[cmd.index("-threads") + 1] == "0"
	assert cmd[-1] == os.path.join("/tmp/work", "frame_%04d.png")

#============================================

def test_encode_cmd_contract() -> None:
	cmd = ffmpeg_render.build_encode_cmd("ffmpeg", "/tmp/work", "out.mp4")
	assert cmd[cmd.index("-framerate") + 1] == "30"
	assert cmd[cmd.index("-i") + 1] == os.path.join("/tmp/work", "frame_%04d.png")
	assert cmd[cmd.index("-c:v") + 1] == "libx264"
	assert cmd[cmd.index("-pix_fmt") + 1] == "yuv420p"
	assert cmd[cmd.index("-preset") + 1] == "fast"
	assert cmd[cmd.index("-threads") + 1] == "0"
	assert cmd[-1] == "out.mp4"

#============================================

def test_encode_cmd_rounds_to_even_size() -> None:
	cmd = ffmpeg_render.build_encode_cmd("ffmpeg", "/tmp/work", "out.mp4")
	assert cmd[cmd.index("-vf") + 1] == "scale=trunc(iw/2)*2:trunc(ih/2)*2"
	assert cmd.index("-i") < cmd.index("-vf") < cmd.index("-c:v")

#============================================

def test_format_rate() -> None:
	assert ffmpeg_render.format_rate(30) == "30"
	assert ffmpeg_render.format_rate(29.97) == "29.970000"

#============================================

def test_encode_passes_settings(monkeypatch, tmp_path) -> None:
	seen = {}

	def fake_run(cmd, cancel_event=None):
		seen["cmd"] = cmd
		with open(cmd[-1], "w") as handle:
			handle.write("video")
		return subprocess.CompletedProcess(cmd, 0, "", "")

	monkeypatch.setattr(utils, "run_process", fake_run)
	tool = ffmpeg.FfmpegTool(ffmpeg_path="/bin/sh", preset="slow", codec="libx265")
	outfile = str(tmp_path / "out.mkv")
	assert tool.encode(str(tmp_path), outfile, frame_rate=24) == outfile
	cmd = seen["cmd"]
	assert cmd[cmd.index("-framerate") + 1] == "24"
	assert cmd[cmd.index("-preset") + 1] == "slow"
	assert cmd[cmd.index("-c:v") + 1] == "libx265"

#============================================

def test_encode_failure_raises(tmp_path) -> None:
	script = _fake_ffmpeg(tmp_path, "echo 'broken pipe' >&2\nexit 1")
	tool = ffmpeg.FfmpegTool(ffmpeg_path=script)
	with pytest.raises(EncodeError) as info:
		tool.encode(str(tmp_path), str(tmp_path / "out.mp4"))
	assert "broken pipe" in str(info.value)

#============================================

def test_decode_failure_releases_workspace(tmp_path, monkeypatch) -> None:
	script = _fake_ffmpeg(tmp_path, "exit 1")
	movfile = tmp_path / "clip.mp4"
	movfile.write_bytes(b"not a video")
	created = []
	real_tempdir = ffmpeg_extract.tempfile.TemporaryDirectory

	def recording_tempdir(*args, **kwargs):
		workspace = real_tempdir(*args, **kwargs)
		created.append(workspace.name)
		return workspace

	monkeypatch.setattr(ffmpeg_extract.tempfile, "TemporaryDirectory", recording_tempdir)
	tool = ffmpeg.FfmpegTool(ffmpeg_path=script)
	with pytest.raises(DecodeError):
		tool.decode(str(movfile))
	assert len(created) == 1
	assert not os.path.exists(created[0])

#============================================

def test_decode_zero_frames_is_error(tmp_path) -> None:
	script = _fake_ffmpeg(tmp_path, "exit 0")
	movfile = tmp_path / "clip.mp4"
	movfile.write_bytes(b"")
	tool = ffmpeg.FfmpegTool(ffmpeg_path=script)
	with pytest.raises(DecodeError):
		tool.decode(str(movfile))

#============================================

def test_run_process_cancel_terminates_child(tmp_path) -> None:
	cancel_event = threading.Event()
	timer = threading.Timer(0.3, cancel_event.set)
	timer.start()
	t0 = time.time()
	with pytest.raises(JobCancelled):
		utils.run_process(["sleep", "30"], cancel_event=cancel_event)
	timer.cancel()
	assert time.time() - t0 < 10

#============================================

def test_parse_ssim_output() -> None:
	text = "[Parsed_ssim_0 @ 0x5581] SSIM Y:0.995 (23.1) U:0.990 V:0.991 All:0.978123 (16.6)\n"
	assert ffmpeg.parse_ssim_output(text) == pytest.approx(0.978123)
	assert ffmpeg.parse_ssim_output("no score here") == 0.0
	assert ffmpeg.parse_ssim_output("") == 0.0
