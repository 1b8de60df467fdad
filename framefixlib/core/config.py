#!/usr/bin/env python3

"""
YAML configuration for framefix runs.

A config file carries a version header (framefix: 1) and a settings mapping.
Missing keys fall back to the code defaults; present keys are coerced and
validated, and errors name the config file and key path.
"""

# Standard Library
import os

# PIP3 modules
import yaml

#============================================

CONFIG_HEADER_KEY = "framefix"
CONFIG_HEADER_VALUE = 1

SCORER_METHODS = ("pixel", "ffmpeg")

#============================================

def default_config_path(input_file: str) -> str:
	"""
	Build the default config path based on the input file.

	Args:
		input_file: Input video path.

	Returns:
		str: Config path.
	"""
	return f"{input_file}.framefix.config.yaml"

#============================================

def default_config() -> dict:
	"""
	Build the default config dictionary.

	Returns:
		dict: Default config.
	"""
	return {
		CONFIG_HEADER_KEY: CONFIG_HEADER_VALUE,
		"settings": {
			"tool": {
				"ffmpeg_path": None,
			},
			"decode": {
				"threads": 0,
				"image_ext": "png",
			},
			"scorer": {
				"method": "pixel",
				"row_workers": 1,
			},
			"filter": {
				"batch_size": 10,
				"threshold": 0.95,
				"compare_across_batches": False,
				"max_workers": None,
			},
			"encode": {
				"frame_rate": 30,
				"codec": "libx264",
				"pixel_format": "yuv420p",
				"preset": "fast",
				"threads": 0,
			},
			"output": {
				"directory": None,
				"container": None,
			},
		},
	}

#============================================

SETTING_COMMENTS = (
	("tool", (
		("ffmpeg_path", "explicit ffmpeg executable, null searches FRAMEFIX_FFMPEG then PATH"),
	)),
	("decode", (
		("threads", "ffmpeg decode threads, 0 lets ffmpeg choose"),
		("image_ext", "still image format written to the temp workspace"),
	)),
	("scorer", (
		("method", "pixel (per-pixel score) or ffmpeg (ssim filter)"),
		("row_workers", "threads splitting image rows for the pixel scorer"),
	)),
	("filter", (
		("batch_size", "frames per scoring batch"),
		("threshold", "drop a frame when its score against the next frame is above this"),
		("compare_across_batches", "also score the last frame of a batch against the next batch"),
		("max_workers", "parallel batches, null uses the cpu count"),
	)),
	("encode", (
		("frame_rate", "output frames per second"),
		("codec", "ffmpeg video codec"),
		("pixel_format", "ffmpeg pixel format"),
		("preset", "encoder preset"),
		("threads", "ffmpeg encode threads, 0 lets ffmpeg choose"),
	)),
	("output", (
		("directory", "output directory, null uses the current directory"),
		("container", "output extension, null writes mp4"),
	)),
)

#============================================

def _yaml_scalar(value) -> str:
	text = yaml.safe_dump(value, default_flow_style=True).strip()
	if text.endswith("\n..."):
		text = text[:-len("\n...")]
	return text.strip()

#============================================

def build_config_text(config: dict) -> str:
	"""
	Build YAML text for the config file, with a comment above each key.

	Args:
		config: Config dictionary.

	Returns:
		str: YAML content.
	"""
	defaults = default_config()["settings"]
	settings = config.get("settings") or {}
	lines = []
	lines.append(f"{CONFIG_HEADER_KEY}: {CONFIG_HEADER_VALUE}")
	lines.append("settings:")
	for section_name, keys in SETTING_COMMENTS:
		section = settings.get(section_name) or {}
		lines.append(f"  {section_name}:")
		for key, comment in keys:
			value = section.get(key, defaults[section_name][key])
			lines.append(f"    # {comment}")
			lines.append(f"    {key}: {_yaml_scalar(value)}")
	lines.append("")
	return "\n".join(lines)

#============================================

def write_config_file(config_path: str, config: dict) -> None:
	"""
	Write a config file to disk.

	Args:
		config_path: Output file path.
		config: Config dictionary.
	"""
	text = build_config_text(config)
	os.makedirs(os.path.dirname(config_path) or ".", exist_ok=True)
	with open(config_path, "w", encoding="utf-8") as handle:
		handle.write(text)
	return

#============================================

def load_config(config_path: str) -> dict:
	"""
	Load a config file from disk.

	Args:
		config_path: Config file path.

	Returns:
		dict: Parsed config mapping.
	"""
	with open(config_path, "r", encoding="utf-8") as handle:
		data = yaml.safe_load(handle)
	if not isinstance(data, dict):
		raise RuntimeError(f"config {config_path}: file must be a mapping")
	if data.get(CONFIG_HEADER_KEY) != CONFIG_HEADER_VALUE:
		raise RuntimeError(
			f"config {config_path}: must set {CONFIG_HEADER_KEY}: {CONFIG_HEADER_VALUE}"
		)
	return data

#============================================

def coerce_float(value, config_path: str, key_path: str) -> float:
	if isinstance(value, bool):
		raise RuntimeError(f"config {config_path}: {key_path} must be a number")
	if isinstance(value, (int, float)):
		return float(value)
	if isinstance(value, str):
		try:
			return float(value)
		except ValueError:
			pass
	raise RuntimeError(f"config {config_path}: {key_path} must be a number")

#============================================

def coerce_int(value, config_path: str, key_path: str) -> int:
	if isinstance(value, bool):
		raise RuntimeError(f"config {config_path}: {key_path} must be an integer")
	if isinstance(value, int):
		return value
	if isinstance(value, float):
		return int(value)
	if isinstance(value, str):
		try:
			return int(float(value))
		except ValueError:
			pass
	raise RuntimeError(f"config {config_path}: {key_path} must be an integer")

#============================================

def coerce_bool(value, config_path: str, key_path: str) -> bool:
	if isinstance(value, bool):
		return value
	if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1"):
		return True
	if isinstance(value, str) and value.strip().lower() in ("false", "no", "0"):
		return False
	raise RuntimeError(f"config {config_path}: {key_path} must be true or false")

#============================================

def coerce_str(value, config_path: str, key_path: str) -> str:
	if isinstance(value, str):
		return value
	raise RuntimeError(f"config {config_path}: {key_path} must be a string")

#============================================

def _optional(value, coerce, config_path: str, key_path: str):
	if value is None:
		return None
	return coerce(value, config_path, key_path)

#============================================

def build_settings(config: dict, config_path: str = "<code defaults>") -> dict:
	"""
	Normalize settings with defaults.

	Args:
		config: Raw config mapping.
		config_path: Config file path, used in error messages.

	Returns:
		dict: Normalized settings.
	"""
	defaults = default_config()["settings"]
	overrides = {}
	if isinstance(config, dict):
		overrides = config.get("settings") or {}
	if not isinstance(overrides, dict):
		raise RuntimeError(f"config {config_path}: settings must be a mapping")

	def section(name: str) -> dict:
		value = overrides.get(name) or {}
		if not isinstance(value, dict):
			raise RuntimeError(f"config {config_path}: settings.{name} must be a mapping")
		merged = dict(defaults[name])
		merged.update(value)
		return merged

	tool = section("tool")
	decode = section("decode")
	scorer = section("scorer")
	filt = section("filter")
	encode = section("encode")
	output = section("output")

	settings = {
		"tool": {
			"ffmpeg_path": _optional(tool["ffmpeg_path"], coerce_str,
				config_path, "settings.tool.ffmpeg_path"),
		},
		"decode": {
			"threads": coerce_int(decode["threads"], config_path,
				"settings.decode.threads"),
			"image_ext": coerce_str(decode["image_ext"], config_path,
				"settings.decode.image_ext").lstrip(".").lower(),
		},
		"scorer": {
			"method": coerce_str(scorer["method"], config_path,
				"settings.scorer.method").lower(),
			"row_workers": coerce_int(scorer["row_workers"], config_path,
				"settings.scorer.row_workers"),
		},
		"filter": {
			"batch_size": coerce_int(filt["batch_size"], config_path,
				"settings.filter.batch_size"),
			"threshold": coerce_float(filt["threshold"], config_path,
				"settings.filter.threshold"),
			"compare_across_batches": coerce_bool(filt["compare_across_batches"],
				config_path, "settings.filter.compare_across_batches"),
			"max_workers": _optional(filt["max_workers"], coerce_int,
				config_path, "settings.filter.max_workers"),
		},
		"encode": {
			"frame_rate": coerce_float(encode["frame_rate"], config_path,
				"settings.encode.frame_rate"),
			"codec": coerce_str(encode["codec"], config_path,
				"settings.encode.codec"),
			"pixel_format": coerce_str(encode["pixel_format"], config_path,
				"settings.encode.pixel_format"),
			"preset": coerce_str(encode["preset"], config_path,
				"settings.encode.preset"),
			"threads": coerce_int(encode["threads"], config_path,
				"settings.encode.threads"),
		},
		"output": {
			"directory": _optional(output["directory"], coerce_str,
				config_path, "settings.output.directory"),
			"container": _optional(output["container"], coerce_str,
				config_path, "settings.output.container"),
		},
	}
	validate_settings(settings, config_path)
	return settings

#============================================

def validate_settings(settings: dict, config_path: str = "<code defaults>") -> None:
	if settings["scorer"]["method"] not in SCORER_METHODS:
		raise RuntimeError(
			f"config {config_path}: settings.scorer.method must be one of "
			f"{', '.join(SCORER_METHODS)}"
		)
	if settings["scorer"]["row_workers"] < 1:
		raise RuntimeError(f"config {config_path}: settings.scorer.row_workers must be >= 1")
	if settings["filter"]["batch_size"] < 1:
		raise RuntimeError(f"config {config_path}: settings.filter.batch_size must be >= 1")
	if settings["filter"]["threshold"] < 0:
		raise RuntimeError(f"config {config_path}: settings.filter.threshold must be >= 0")
	max_workers = settings["filter"]["max_workers"]
	if max_workers is not None and max_workers < 1:
		raise RuntimeError(f"config {config_path}: settings.filter.max_workers must be >= 1")
	if settings["encode"]["frame_rate"] <= 0:
		raise RuntimeError(f"config {config_path}: settings.encode.frame_rate must be > 0")
	if settings["decode"]["threads"] < 0 or settings["encode"]["threads"] < 0:
		raise RuntimeError(f"config {config_path}: thread counts must be >= 0")
	if settings["decode"]["image_ext"] == "":
		raise RuntimeError(f"config {config_path}: settings.decode.image_ext must not be empty")
	return
