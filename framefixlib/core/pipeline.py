#!/usr/bin/env python3

import os
import threading
import time
from framefixlib.core import utils
from framefixlib.core.config import build_settings
from framefixlib.core.errors import DecodeError
from framefixlib.frames.collector import collect_frames
from framefixlib.frames.dedupe import DuplicateFrameFilter, renumber_frames
from framefixlib.frames.similarity import SimilarityScorer

#============================================

STATE_CREATED = 'created'
STATE_EXTRACTING = 'extracting'
STATE_SCORING = 'scoring'
STATE_FILTERING = 'filtering'
STATE_ENCODING = 'encoding'
STATE_DONE = 'done'
STATE_FAILED = 'failed'

DEFAULT_CONTAINER = 'mp4'

#============================================

def processed_output_path(input_file: str, output_dir: str = None,
	container: str = None) -> str:
	"""
	Build <input stem>_processed.<ext> in output_dir (default: cwd).

	ext is the configured container, else mp4. The encoder is H.264, so the
	input extension is not reused.
	"""
	stem = os.path.splitext(os.path.basename(input_file))[0]
	ext = DEFAULT_CONTAINER
	if container:
		ext = container.lstrip('.')
	if output_dir is None:
		output_dir = os.getcwd()
	return os.path.join(output_dir, f"{stem}_processed.{ext}")

#============================================

def partial_output_path(output_file: str) -> str:
	directory, name = os.path.split(output_file)
	stem, ext = os.path.splitext(name)
	return os.path.join(directory, f".{stem}.partial{ext}")

#============================================

class FrameFixJob():
	def __init__(self, input_file: str, tool, settings: dict = None,
		output_file: str = None):
		if settings is None:
			settings = build_settings(None)
		self.input_file = input_file
		self.tool = tool
		self.settings = settings
		self.output_file = output_file
		if self.output_file is None:
			self.output_file = processed_output_path(input_file,
				settings['output']['directory'], settings['output']['container'])
		self.state = STATE_CREATED
		self.error = None
		self.frames_dir = None
		self.frames = []
		self.decisions = []
		self.removed_count = 0
		self.encoded_count = 0
		self.cancel_event = threading.Event()
		self._workspace = None

	#============================
	def cancel(self) -> None:
		self.cancel_event.set()

	#============================
	def run(self) -> str:
		"""
		Extract, score, prune and re-encode the input video.

		Returns:
			str: Path of the written output video.
		"""
		t0 = time.time()
		partial_file = partial_output_path(self.output_file)
		try:
			self._set_state(STATE_EXTRACTING)
			self.frames_dir, self._workspace = self.tool.decode(self.input_file,
				cancel_event=self.cancel_event)
			self.frames = collect_frames(self.frames_dir)
			if len(self.frames) == 0:
				raise DecodeError(f"no frames extracted from {self.input_file}")
			self._set_state(STATE_SCORING)
			frame_filter = self._build_filter()
			self.decisions = frame_filter.decide(self.frames)
			self._set_state(STATE_FILTERING)
			self.removed_count = frame_filter.apply(self.frames, self.decisions)
			self.encoded_count = renumber_frames(self.frames_dir,
				self.settings['decode']['image_ext'])
			utils.check_cancelled(self.cancel_event)
			self._set_state(STATE_ENCODING)
			self.tool.encode(self.frames_dir, partial_file,
				frame_rate=self.settings['encode']['frame_rate'],
				cancel_event=self.cancel_event)
			os.replace(partial_file, self.output_file)
			self._set_state(STATE_DONE)
		except BaseException as exc:
			self.error = exc
			self._set_state(STATE_FAILED)
			utils.remove_file_quietly(partial_file)
			raise
		finally:
			self._release_workspace()
		utils.status(f"Video created: {self.output_file} "
			f"({self.encoded_count}/{len(self.frames)} frames, "
			f"{int(time.time() - t0)} seconds)")
		return self.output_file

	#============================
	def _build_filter(self) -> DuplicateFrameFilter:
		scorer = SimilarityScorer(method=self.settings['scorer']['method'],
			row_workers=self.settings['scorer']['row_workers'], tool=self.tool)
		filter_settings = self.settings['filter']
		return DuplicateFrameFilter(scorer,
			batch_size=filter_settings['batch_size'],
			threshold=filter_settings['threshold'],
			compare_across_batches=filter_settings['compare_across_batches'],
			max_workers=filter_settings['max_workers'],
			cancel_event=self.cancel_event)

	#============================
	def _set_state(self, state: str) -> None:
		self.state = state
		if state not in (STATE_DONE, STATE_FAILED):
			utils.status(f"{state}: {self.input_file}")

	#============================
	def _release_workspace(self) -> None:
		if self._workspace is not None:
			self._workspace.cleanup()
			self._workspace = None

	#============================
	def summary(self) -> dict:
		dropped = len([decision for decision in self.decisions if not decision.keep])
		error_text = None
		if self.error is not None:
			error_text = str(self.error)
		output_file = None
		if self.state == STATE_DONE:
			output_file = os.path.abspath(self.output_file)
		return {
			'input': os.path.abspath(self.input_file),
			'output': output_file,
			'state': self.state,
			'frames': {
				'total': len(self.frames),
				'dropped': dropped,
				'removed': self.removed_count,
				'encoded': self.encoded_count,
			},
			'settings': self.settings,
			'error': error_text,
		}
