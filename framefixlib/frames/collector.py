#!/usr/bin/env python3

import concurrent.futures
import os
from PIL import Image
from framefixlib.frames.frame import Frame, frame_number

#============================================

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff', '.webp')

#============================================

def is_image_file(filepath: str, extensions: tuple = IMAGE_EXTENSIONS) -> bool:
	ext = os.path.splitext(filepath)[1].lower()
	return ext in extensions

#============================================

def _scan_directory(path: str, extensions: tuple, executor) -> list:
	"""List image files under path, fanning out one task per subdirectory."""
	files = []
	futures = []
	try:
		entries = list(os.scandir(path))
	except OSError:
		return files
	for entry in entries:
		if entry.is_dir(follow_symlinks=False):
			futures.append(executor.submit(_scan_tree, entry.path, extensions))
		elif entry.is_file() and is_image_file(entry.name, extensions):
			files.append(entry.path)
	for future in futures:
		files.extend(future.result())
	return files

#============================================

def _scan_tree(path: str, extensions: tuple) -> list:
	# nested levels walk serially so pool threads never wait on each other
	files = []
	for dirpath, dirnames, filenames in os.walk(path):
		for name in filenames:
			full_path = os.path.join(dirpath, name)
			if is_image_file(name, extensions) and os.path.isfile(full_path):
				files.append(full_path)
	return files

#============================================

def sort_key(filepath: str) -> tuple:
	number = frame_number(filepath)
	if number is None:
		return (1, 0, filepath)
	return (0, number, filepath)

#============================================

def read_dimensions(filepath: str):
	"""Read (width, height) from the image header without decoding pixels."""
	try:
		with Image.open(filepath) as image:
			return image.size
	except (OSError, ValueError):
		return (None, None)

#============================================

def collect_frames(root_dir: str, extensions: tuple = IMAGE_EXTENSIONS,
	max_workers: int = None) -> list:
	"""
	Collect the image files under root_dir as an ordered list of Frame.

	Order follows the number embedded in each file name, never the
	directory traversal order. A missing root yields an empty list.

	Args:
		root_dir: Directory to walk recursively.
		extensions: Lowercase file extensions to accept.
		max_workers: Thread pool size for the subdirectory fan-out.

	Returns:
		list: Frame objects with 0-based indices.
	"""
	if not os.path.isdir(root_dir):
		return []
	extensions = tuple(ext.lower() for ext in extensions)
	with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
		files = _scan_directory(root_dir, extensions, executor)
		files.sort(key=sort_key)
		sizes = list(executor.map(read_dimensions, files))
	frames = []
	for index, (filepath, size) in enumerate(zip(files, sizes)):
		frames.append(Frame(index, filepath, size[0], size[1]))
	return frames
