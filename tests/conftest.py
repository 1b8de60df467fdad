import os
import sys

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)

from framefixlib.core import utils

#============================================

@pytest.fixture(autouse=True)
def quiet_output():
	"""Keep command echo and progress bars out of test output."""
	utils.set_quiet_mode(True)
	yield
	utils.set_quiet_mode(False)
