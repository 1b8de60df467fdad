#!/usr/bin/env python3

import os
import time
from framefixlib.core import utils
from framefixlib.core.errors import EncodeError
from framefixlib.frames.frame import frame_pattern

#============================================

# libx264 with yuv420p needs even frame dimensions
EVEN_SIZE_FILTER = "scale=trunc(iw/2)*2:trunc(ih/2)*2"

#============================================

def format_rate(frame_rate: float) -> str:
	if float(frame_rate).is_integer():
		return str(int(frame_rate))
	return f"{float(frame_rate):.6f}"

#============================================

def build_encode_cmd(ffmpeg_path: str, frames_dir: str, outfile: str,
	frame_rate: float = 30, codec: str = 'libx264', pixel_format: str = 'yuv420p',
	preset: str = 'fast', threads: int = 0, image_ext: str = 'png') -> list:
	cmd = [ffmpeg_path, "-y", "-hide_banner", "-loglevel", "error"]
	cmd += ["-framerate", format_rate(frame_rate)]
	cmd += ["-start_number", "1"]
	cmd += ["-i", frame_pattern(frames_dir, image_ext)]
	cmd += ["-vf", EVEN_SIZE_FILTER]
	cmd += ["-c:v", codec, "-preset", preset]
	cmd += ["-threads", str(threads)]
	cmd += ["-pix_fmt", pixel_format]
	cmd += [outfile]
	return cmd

#============================================

def makeMovieFromFrames(ffmpeg_path: str, frames_dir: str, outfile: str,
	frame_rate: float = 30, codec: str = 'libx264', pixel_format: str = 'yuv420p',
	preset: str = 'fast', threads: int = 0, image_ext: str = 'png',
	cancel_event=None) -> str:
	t0 = time.time()
	cmd = build_encode_cmd(ffmpeg_path, frames_dir, outfile, frame_rate, codec,
		pixel_format, preset, threads, image_ext)
	proc = utils.run_process(cmd, cancel_event=cancel_event)
	if proc.returncode != 0:
		raise EncodeError(f"ffmpeg failed to stitch video {outfile}\n{proc.stderr.strip()}")
	if not os.path.isfile(outfile):
		raise EncodeError(f"ffmpeg reported success but wrote no file: {outfile}")
	utils.status(f"Complete in {int(time.time() - t0)} seconds")
	return outfile
