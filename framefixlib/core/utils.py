#!/usr/bin/env python3

import os
import shlex
import subprocess
import sys
import threading
from framefixlib.core.errors import JobCancelled

#============================================

_QUIET_MODE = False
_POLL_SECONDS = 0.2

#============================================

def set_quiet_mode(enabled: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(enabled)
	return

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def status(text: str) -> None:
	if not _QUIET_MODE:
		print(text)
	return

#============================================

def warn(text: str) -> None:
	sys.stderr.write(f"{text}\n")
	sys.stderr.flush()
	return

#============================================

def check_cancelled(cancel_event: threading.Event = None) -> None:
	if cancel_event is not None and cancel_event.is_set():
		raise JobCancelled("job cancelled")
	return

#============================================

def run_process(cmd: list, cancel_event: threading.Event = None) -> subprocess.CompletedProcess:
	"""
	Run an external command and wait for it to exit.

	The wait is polled so that a set cancel event terminates the child.
	The returned process carries the captured stdout and stderr text; the
	caller decides what a non-zero return code means.

	Args:
		cmd: Command list to execute.
		cancel_event: Optional event that aborts the wait when set.

	Returns:
		subprocess.CompletedProcess: Completed process.
	"""
	check_cancelled(cancel_event)
	showcmd = shlex.join([str(part) for part in cmd])
	status(f"CMD: '{showcmd}'")
	proc = subprocess.Popen([str(part) for part in cmd], stdout=subprocess.PIPE,
		stderr=subprocess.PIPE, text=True, errors='replace')
	while True:
		try:
			stdout, stderr = proc.communicate(timeout=_POLL_SECONDS)
			break
		except subprocess.TimeoutExpired:
			if cancel_event is not None and cancel_event.is_set():
				proc.terminate()
				try:
					proc.communicate(timeout=5)
				except subprocess.TimeoutExpired:
					proc.kill()
					proc.communicate()
				raise JobCancelled(f"cancelled: {showcmd}")
	return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)

#============================================

def is_executable(filepath: str) -> bool:
	return os.path.isfile(filepath) and os.access(filepath, os.X_OK)

#============================================

def remove_file_quietly(filepath: str) -> None:
	"""Remove a leftover file, ignoring a file that is already gone."""
	try:
		os.remove(filepath)
	except FileNotFoundError:
		pass
	return
