#!/usr/bin/env python3

import argparse
import os
import sys
import yaml
from framefixlib.core import config
from framefixlib.core import utils
from framefixlib.core.errors import ToolResolutionError
from framefixlib.core.pipeline import FrameFixJob
from framefixlib.media.ffmpeg import FfmpegTool

#============================================

def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		description="Remove stuck and duplicated frames from a video")
	parser.add_argument('input_file', nargs='?',
		help='video file to repair')
	parser.add_argument('-o', '--output', dest='output_file',
		help='output video path (default: <name>_processed.mp4 in the current directory)')
	parser.add_argument('-c', '--config', dest='config_file',
		help='config yaml file (written with defaults if missing)')
	parser.add_argument('--write-default-config', dest='write_default_config',
		action='store_true', help='write the default config for this input and exit')
	parser.add_argument('-b', '--batch-size', dest='batch_size', type=int,
		help='frames per comparison batch')
	parser.add_argument('-t', '--threshold', dest='threshold', type=float,
		help='similarity above which a frame counts as a duplicate')
	parser.add_argument('--fps', dest='frame_rate', type=float,
		help='frame rate of the re-encoded video')
	parser.add_argument('--compare-across-batches', dest='compare_across_batches',
		action='store_true', help='also compare the frames on each side of a batch boundary')
	parser.add_argument('--scorer', dest='scorer', choices=config.SCORER_METHODS,
		help='frame similarity method')
	parser.add_argument('--ffmpeg', dest='ffmpeg_path',
		help='path to the ffmpeg executable')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='no command echo or progress bars')
	parser.add_argument('--report', dest='report', action='store_true',
		help='print a yaml summary of the job')
	parser.set_defaults(write_default_config=False)
	parser.set_defaults(compare_across_batches=False)
	parser.set_defaults(quiet=False)
	parser.set_defaults(report=False)
	return parser

#============================================

def load_settings(args: argparse.Namespace) -> dict:
	raw_config = config.default_config()
	config_path = "<code defaults>"
	if args.config_file is not None:
		config_path = args.config_file
		if not os.path.exists(config_path):
			config.write_config_file(config_path, raw_config)
			utils.status(f"Wrote default config: {config_path}")
		raw_config = config.load_config(config_path)
	settings = config.build_settings(raw_config, config_path)
	if args.batch_size is not None:
		settings['filter']['batch_size'] = args.batch_size
	if args.threshold is not None:
		settings['filter']['threshold'] = args.threshold
	if args.compare_across_batches:
		settings['filter']['compare_across_batches'] = True
	if args.frame_rate is not None:
		settings['encode']['frame_rate'] = args.frame_rate
	if args.scorer is not None:
		settings['scorer']['method'] = args.scorer
	if args.ffmpeg_path is not None:
		settings['tool']['ffmpeg_path'] = args.ffmpeg_path
	config.validate_settings(settings, "<command line>")
	return settings

#============================================

def main(argv: list = None) -> int:
	parser = build_parser()
	args = parser.parse_args(argv)
	if args.input_file is None:
		parser.print_usage(sys.stderr)
		return 1
	utils.set_quiet_mode(args.quiet)
	if args.write_default_config:
		config_path = config.default_config_path(args.input_file)
		if os.path.exists(config_path):
			utils.warn(f"error: default config already exists: {config_path}")
			return 1
		config.write_config_file(config_path, config.default_config())
		print(f"Wrote default config: {config_path}")
		return 0
	try:
		settings = load_settings(args)
	except (RuntimeError, OSError, yaml.YAMLError) as exc:
		utils.warn(f"error: {exc}")
		return 1
	tool = FfmpegTool.from_settings(settings)
	try:
		tool.resolve()
	except ToolResolutionError as exc:
		utils.warn(f"error: {exc}")
		return 1
	job = FrameFixJob(args.input_file, tool, settings=settings,
		output_file=args.output_file)
	try:
		output_file = job.run()
	except KeyboardInterrupt:
		utils.warn("error: interrupted")
		return 1
	except (RuntimeError, OSError) as exc:
		utils.warn(f"error: {exc}")
		if args.report:
			print(yaml.safe_dump(job.summary(), sort_keys=False))
		return 1
	if args.report:
		print(yaml.safe_dump(job.summary(), sort_keys=False))
	print(output_file)
	return 0


if __name__ == '__main__':
	sys.exit(main())
