#!/usr/bin/env python3

import glob
import os
import tempfile
from framefixlib.core import utils
from framefixlib.core.errors import DecodeError
from framefixlib.frames.frame import FRAME_PREFIX, frame_pattern

#============================================

def build_decode_cmd(ffmpeg_path: str, movfile: str, frames_dir: str,
	image_ext: str = 'png', threads: int = 0) -> list:
	cmd = [ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error"]
	cmd += ["-threads", str(threads)]
	cmd += ["-i", movfile]
	cmd += ["-an", "-sn"]
	cmd += [frame_pattern(frames_dir, image_ext)]
	return cmd

#============================================

def count_frame_files(frames_dir: str, image_ext: str = 'png') -> int:
	pattern = os.path.join(frames_dir, f"{FRAME_PREFIX}*.{image_ext}")
	return len(glob.glob(pattern))

#============================================

def extractFrames(ffmpeg_path: str, movfile: str, image_ext: str = 'png',
	threads: int = 0, cancel_event=None) -> tuple:
	"""
	Split a video into numbered still images inside a fresh temp directory.

	Returns (frames_dir, workspace) where workspace.cleanup() removes the
	directory and every frame in it. On failure the workspace is released
	before the error propagates.
	"""
	workspace = tempfile.TemporaryDirectory(prefix="framefix-")
	frames_dir = workspace.name
	try:
		if not os.path.isfile(movfile):
			raise DecodeError(f"input video not found: {movfile}")
		cmd = build_decode_cmd(ffmpeg_path, movfile, frames_dir, image_ext, threads)
		proc = utils.run_process(cmd, cancel_event=cancel_event)
		if proc.returncode != 0:
			raise DecodeError(
				f"ffmpeg failed to extract frames from {movfile}\n{proc.stderr.strip()}"
			)
		frame_count = count_frame_files(frames_dir, image_ext)
		if frame_count == 0:
			raise DecodeError(f"ffmpeg produced no frames for {movfile}")
	except BaseException:
		workspace.cleanup()
		raise
	utils.status(f"extracted {frame_count} frames to {frames_dir}")
	return frames_dir, workspace
