#!/usr/bin/env python3

#============================================

class ToolResolutionError(RuntimeError):
	"""ffmpeg could not be located; nothing can run without it."""

#============================================

class DecodeError(RuntimeError):
	pass

#============================================

class EncodeError(RuntimeError):
	pass

#============================================

class FrameCompareError(RuntimeError):
	"""A single frame pair could not be compared."""

#============================================

class JobCancelled(RuntimeError):
	pass
