#!/usr/bin/env python3

"""
Frame similarity scoring.

The pixel method is a per-pixel structural similarity: every pixel is
treated as its own window, so the mean is the pixel value and the variance
terms are zero. It is not a windowed SSIM. Scores run from near 0.0 for
opposite images to 1.0 for identical ones.
"""

# Standard Library
import concurrent.futures
import math

# PIP3 modules
import numpy
from PIL import Image

# local repo modules
from framefixlib.core import utils
from framefixlib.core.errors import FrameCompareError

#============================================

K1 = 0.01
K2 = 0.03
DYNAMIC_RANGE = 255.0
C1 = (K1 * DYNAMIC_RANGE) ** 2
C2 = (K2 * DYNAMIC_RANGE) ** 2

MIN_SCORE = 0.0

#============================================

def load_luma(image_path: str) -> numpy.ndarray:
	"""
	Load an image as a 2D float64 luminance array.

	Args:
		image_path: Path to any image Pillow can decode.

	Returns:
		numpy.ndarray: Array of shape (height, width).
	"""
	try:
		with Image.open(image_path) as image:
			gray = image.convert("L")
			return numpy.asarray(gray, dtype=numpy.float64)
	except (OSError, ValueError) as exc:
		raise FrameCompareError(f"failed to open image {image_path}: {exc}") from exc

#============================================

def row_sums(luma_a: numpy.ndarray, luma_b: numpy.ndarray) -> numpy.ndarray:
	"""
	Sum the per-pixel similarity along each row.

	Args:
		luma_a: Luminance rows of the first image.
		luma_b: Luminance rows of the second image, same shape.

	Returns:
		numpy.ndarray: One partial sum per row.
	"""
	mu1 = luma_a
	mu2 = luma_b
	sigma1_sq = (luma_a - mu1) ** 2
	sigma2_sq = (luma_b - mu2) ** 2
	sigma12 = (luma_a - mu1) * (luma_b - mu2)
	num = (2.0 * mu1 * mu2 + C1) * (2.0 * sigma12 + C2)
	den = (mu1 ** 2 + mu2 ** 2 + C1) * (sigma1_sq + sigma2_sq + C2)
	return (num / den).sum(axis=1)

#============================================

def _row_chunks(height: int, parts: int) -> list:
	parts = max(1, min(parts, height))
	step = int(math.ceil(height / float(parts)))
	return [(start, min(start + step, height)) for start in range(0, height, step)]

#============================================

def score_arrays(luma_a: numpy.ndarray, luma_b: numpy.ndarray,
	row_workers: int = 1) -> float:
	"""
	Mean per-pixel similarity of two equally sized luminance arrays.

	Row partial sums are combined with math.fsum, which is exact, so the
	score does not depend on how rows are split across workers.

	Args:
		luma_a: First luminance array.
		luma_b: Second luminance array.
		row_workers: Threads to spread the rows over.

	Returns:
		float: Similarity score.
	"""
	if luma_a.shape != luma_b.shape:
		raise FrameCompareError(
			f"images are different dimensions: {luma_a.shape[1]}x{luma_a.shape[0]} "
			f"vs {luma_b.shape[1]}x{luma_b.shape[0]}"
		)
	height = luma_a.shape[0]
	width = luma_a.shape[1] if luma_a.ndim > 1 else 0
	if height == 0 or width == 0:
		raise FrameCompareError("images have no pixels")
	if row_workers <= 1 or height < 2:
		partials = row_sums(luma_a, luma_b).tolist()
	else:
		chunks = _row_chunks(height, row_workers)
		partials = []
		with concurrent.futures.ThreadPoolExecutor(max_workers=len(chunks)) as executor:
			futures = [
				executor.submit(row_sums, luma_a[start:stop], luma_b[start:stop])
				for start, stop in chunks
			]
			for future in concurrent.futures.as_completed(futures):
				partials.extend(future.result().tolist())
	return math.fsum(partials) / float(width * height)

#============================================

def score_images(image_a: str, image_b: str, row_workers: int = 1) -> float:
	luma_a = load_luma(image_a)
	luma_b = load_luma(image_b)
	return score_arrays(luma_a, luma_b, row_workers=row_workers)

#============================================

class SimilarityScorer():
	"""
	Scores adjacent frame pairs.

	method 'pixel' uses the per-pixel formula in this module; method
	'ffmpeg' asks the ffmpeg adapter for its ssim filter score.
	"""
	def __init__(self, method: str = 'pixel', row_workers: int = 1, tool=None):
		if method not in ('pixel', 'ffmpeg'):
			raise RuntimeError(f"unknown scorer method: {method}")
		if method == 'ffmpeg' and tool is None:
			raise RuntimeError("scorer method ffmpeg needs an ffmpeg tool")
		self.method = method
		self.row_workers = row_workers
		self.tool = tool

	#============================
	def score(self, frame_a, frame_b, cancel_event=None) -> float:
		size_a = frame_a.size()
		size_b = frame_b.size()
		if size_a is not None and size_b is not None and size_a != size_b:
			raise FrameCompareError(
				f"images are different dimensions: {frame_a.path} {size_a} "
				f"vs {frame_b.path} {size_b}"
			)
		if self.method == 'ffmpeg':
			return self.tool.ssim(frame_a.path, frame_b.path, cancel_event=cancel_event)
		return score_images(frame_a.path, frame_b.path, row_workers=self.row_workers)

	#============================
	def score_pair(self, frame_a, frame_b, cancel_event=None) -> float:
		"""Score a pair, reporting failures and returning the minimum score."""
		try:
			return self.score(frame_a, frame_b, cancel_event=cancel_event)
		except FrameCompareError as exc:
			utils.warn(f"compare failed for frames {frame_a.index}/{frame_b.index}: {exc}")
			return MIN_SCORE
