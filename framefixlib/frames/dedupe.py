#!/usr/bin/env python3

# Standard Library
import concurrent.futures
import glob
import os

# PIP3 modules
from tqdm import tqdm

# local repo modules
from framefixlib.core import utils
from framefixlib.frames.collector import sort_key
from framefixlib.frames.frame import FRAME_PREFIX, FrameDecision, frame_filename

#============================================

DEFAULT_BATCH_SIZE = 10
DEFAULT_THRESHOLD = 0.95

#============================================

def make_batches(frames: list, batch_size: int) -> list:
	return [frames[start:start + batch_size] for start in range(0, len(frames), batch_size)]

#============================================

class DuplicateFrameFilter():
	"""
	Marks frames that are near copies of their successor.

	Frames are compared in contiguous batches. Inside a batch each frame is
	scored against the next one and dropped when the score is above the
	threshold. The last frame of a batch is only compared with the first
	frame of the next batch when compare_across_batches is set; otherwise it
	is kept. The last frame of the whole sequence is always kept.
	"""
	def __init__(self, scorer, batch_size: int = DEFAULT_BATCH_SIZE,
		threshold: float = DEFAULT_THRESHOLD, compare_across_batches: bool = False,
		max_workers: int = None, cancel_event=None):
		if batch_size < 1:
			raise RuntimeError("batch_size must be >= 1")
		self.scorer = scorer
		self.batch_size = batch_size
		self.threshold = threshold
		self.compare_across_batches = compare_across_batches
		if max_workers is None:
			max_workers = os.cpu_count() or 1
		self.max_workers = max(1, max_workers)
		self.cancel_event = cancel_event

	#============================
	def _decide_batch(self, batch: list, next_frame=None) -> list:
		decisions = []
		for position, frame in enumerate(batch):
			if position + 1 < len(batch):
				successor = batch[position + 1]
			else:
				successor = next_frame
			if successor is None:
				decisions.append(FrameDecision(frame.index, keep=True))
				continue
			utils.check_cancelled(self.cancel_event)
			score = self.scorer.score_pair(frame, successor, cancel_event=self.cancel_event)
			decisions.append(FrameDecision(frame.index, keep=not (score > self.threshold),
				score=score))
		return decisions

	#============================
	def decide(self, frames: list) -> list:
		"""
		Return one FrameDecision per frame, in frame order.

		Args:
			frames: Ordered Frame list.

		Returns:
			list: FrameDecision objects.
		"""
		if len(frames) == 0:
			return []
		batches = make_batches(frames, self.batch_size)
		results = [None] * len(batches)
		workers = min(self.max_workers, len(batches))
		show_progress = not utils.is_quiet_mode()
		with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
			future_map = {}
			for batch_index, batch in enumerate(batches):
				next_frame = None
				if self.compare_across_batches and batch_index + 1 < len(batches):
					next_frame = batches[batch_index + 1][0]
				future = executor.submit(self._decide_batch, batch, next_frame)
				future_map[future] = batch_index
			completed = concurrent.futures.as_completed(future_map)
			if show_progress:
				completed = tqdm(completed, total=len(future_map), desc="scoring",
					unit="batch")
			try:
				for future in completed:
					results[future_map[future]] = future.result()
			except BaseException:
				for future in future_map:
					future.cancel()
				raise
		decisions = []
		for batch_decisions in results:
			decisions.extend(batch_decisions)
		decisions[-1].keep = True
		return decisions

	#============================
	def apply(self, frames: list, decisions: list) -> int:
		"""
		Delete the files of dropped frames.

		A file that cannot be removed is reported and left in place.

		Returns:
			int: Number of files removed.
		"""
		if len(frames) != len(decisions):
			raise RuntimeError("frame and decision counts do not match")
		removed = 0
		for frame, decision in zip(frames, decisions):
			if decision.keep:
				continue
			try:
				os.remove(frame.path)
				removed += 1
			except OSError as exc:
				utils.warn(f"failed to remove file {frame.path}: {exc}")
		utils.status(f"removed {removed} duplicate frames")
		return removed

#============================================

def renumber_frames(frames_dir: str, image_ext: str = 'png') -> int:
	"""
	Rename the surviving frame files to a gap-free sequence starting at 1.

	ffmpeg's numbered-image reader stops at the first missing number. Files
	are renamed in ascending order, so a target name is either the file's
	own name or one that has already been vacated.

	Returns:
		int: Number of frames in the directory afterwards.
	"""
	pattern = os.path.join(frames_dir, f"{FRAME_PREFIX}*.{image_ext}")
	survivors = sorted(glob.glob(pattern), key=sort_key)
	for number, filepath in enumerate(survivors, start=1):
		target = os.path.join(frames_dir, frame_filename(number, image_ext))
		if filepath != target:
			os.rename(filepath, target)
	return len(survivors)
