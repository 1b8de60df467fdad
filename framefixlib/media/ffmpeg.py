#!/usr/bin/env python3

"""
Adapter around the external ffmpeg executable.

One FfmpegTool is built at startup and handed to the job. The executable
path is resolved on first use under a lock and reused afterwards.
"""

import os
import re
import shutil
import threading
from framefixlib.core import utils
from framefixlib.core.errors import ToolResolutionError
from framefixlib.media.ffmpeg_extract import extractFrames
from framefixlib.media.ffmpeg_render import makeMovieFromFrames

#============================================

FFMPEG_ENV_VAR = "FRAMEFIX_FFMPEG"

_SSIM_ALL_RE = re.compile(r"All:\s*([0-9.]+)")

#============================================

class FfmpegTool():
	def __init__(self, ffmpeg_path: str = None, decode_threads: int = 0,
		image_ext: str = 'png', codec: str = 'libx264',
		pixel_format: str = 'yuv420p', preset: str = 'fast',
		encode_threads: int = 0):
		self.configured_path = ffmpeg_path
		self.decode_threads = decode_threads
		self.image_ext = image_ext
		self.codec = codec
		self.pixel_format = pixel_format
		self.preset = preset
		self.encode_threads = encode_threads
		self._resolved_path = None
		self._resolve_lock = threading.Lock()

	#============================
	@classmethod
	def from_settings(cls, settings: dict):
		return cls(
			ffmpeg_path=settings['tool']['ffmpeg_path'],
			decode_threads=settings['decode']['threads'],
			image_ext=settings['decode']['image_ext'],
			codec=settings['encode']['codec'],
			pixel_format=settings['encode']['pixel_format'],
			preset=settings['encode']['preset'],
			encode_threads=settings['encode']['threads'],
		)

	#============================
	def resolve(self) -> str:
		if self._resolved_path is not None:
			return self._resolved_path
		with self._resolve_lock:
			if self._resolved_path is None:
				self._resolved_path = self._locate()
		return self._resolved_path

	#============================
	def _locate(self) -> str:
		candidates = []
		if self.configured_path:
			candidates.append(('configured path', self.configured_path))
		env_path = os.environ.get(FFMPEG_ENV_VAR)
		if env_path:
			candidates.append((FFMPEG_ENV_VAR, env_path))
		for source, path in candidates:
			if utils.is_executable(path):
				return os.path.abspath(path)
			found = shutil.which(path)
			if found is not None:
				return found
			raise ToolResolutionError(f"ffmpeg from {source} is not executable: {path}")
		found = shutil.which("ffmpeg")
		if found is None:
			raise ToolResolutionError(
				f"missing dependency: ffmpeg (install it or set {FFMPEG_ENV_VAR})"
			)
		return found

	#============================
	def decode(self, input_file: str, cancel_event=None) -> tuple:
		return extractFrames(self.resolve(), input_file, image_ext=self.image_ext,
			threads=self.decode_threads, cancel_event=cancel_event)

	#============================
	def encode(self, frames_dir: str, output_file: str, frame_rate: float = 30,
		cancel_event=None) -> str:
		return makeMovieFromFrames(self.resolve(), frames_dir, output_file,
			frame_rate=frame_rate, codec=self.codec,
			pixel_format=self.pixel_format, preset=self.preset,
			threads=self.encode_threads, image_ext=self.image_ext,
			cancel_event=cancel_event)

	#============================
	def ssim(self, image_a: str, image_b: str, cancel_event=None) -> float:
		"""
		Score two images with ffmpeg's ssim filter.

		The filter prints a summary line such as "SSIM Y:0.99 ... All:0.978 (16.6)"
		on stderr; output without an All value scores 0.0.
		"""
		cmd = [self.resolve(), "-hide_banner", "-nostats"]
		cmd += ["-i", image_a, "-i", image_b]
		cmd += ["-filter_complex", "ssim", "-f", "null", "-"]
		proc = utils.run_process(cmd, cancel_event=cancel_event)
		return parse_ssim_output(proc.stderr)

#============================================

def parse_ssim_output(text: str) -> float:
	if not text:
		return 0.0
	match = _SSIM_ALL_RE.search(text)
	if match is None:
		return 0.0
	try:
		return float(match.group(1))
	except ValueError:
		return 0.0
