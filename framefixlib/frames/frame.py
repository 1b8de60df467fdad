#!/usr/bin/env python3

import os
import re

#============================================

FRAME_PREFIX = "frame_"
FRAME_DIGITS = 4

_NUMBER_RE = re.compile(r"(\d+)(?!.*\d)")

#============================================

def frame_filename(number: int, image_ext: str = "png") -> str:
	return f"{FRAME_PREFIX}{number:0{FRAME_DIGITS}d}.{image_ext}"

#============================================

def frame_pattern(frames_dir: str, image_ext: str = "png") -> str:
	"""ffmpeg image2 pattern for the numbered frames in frames_dir."""
	return os.path.join(frames_dir, f"{FRAME_PREFIX}%0{FRAME_DIGITS}d.{image_ext}")

#============================================

def frame_number(filepath: str):
	"""
	Return the last run of digits in the file name, or None.

	frame_0012.png -> 12
	"""
	stem = os.path.splitext(os.path.basename(filepath))[0]
	match = _NUMBER_RE.search(stem)
	if match is None:
		return None
	return int(match.group(1))

#============================================

class Frame():
	__slots__ = ('index', 'path', 'width', 'height')

	def __init__(self, index: int, path: str, width: int = None, height: int = None):
		object.__setattr__(self, 'index', index)
		object.__setattr__(self, 'path', path)
		object.__setattr__(self, 'width', width)
		object.__setattr__(self, 'height', height)

	def __setattr__(self, name, value):
		raise AttributeError("Frame is immutable")

	def __eq__(self, other):
		if not isinstance(other, Frame):
			return NotImplemented
		return (self.index, self.path, self.width, self.height) == (
			other.index, other.path, other.width, other.height)

	def __hash__(self):
		return hash((self.index, self.path))

	def __repr__(self):
		return (f"Frame(index={self.index}, path={self.path!r}, "
			f"width={self.width}, height={self.height})")

	#============================
	def size(self):
		if self.width is None or self.height is None:
			return None
		return (self.width, self.height)

#============================================

class FrameDecision():
	def __init__(self, frame_index: int, keep: bool = True, score: float = None):
		self.frame_index = frame_index
		self.keep = keep
		self.score = score

	def __repr__(self):
		return (f"FrameDecision(frame_index={self.frame_index}, "
			f"keep={self.keep}, score={self.score})")
