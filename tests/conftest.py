"""
Shared pytest fixtures for tile rendering tests.
"""

# Standard Library
import os
import sys

# PIP3 modules
import PIL.Image
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

import tileprint.config


#============================================
@pytest.fixture
def a4_paper() -> tileprint.config.PaperProfile:
	"""
	The catalog A4 profile, with registration marks.
	"""
	return tileprint.config.get_paper_profile("A4")


#============================================
@pytest.fixture
def make_source():
	"""
	Factory for solid-colour source bitmaps.

	Returns:
		Callable taking (width, height, color, mode) and returning a PIL image.
	"""
	def _make(
		width: int,
		height: int,
		color: tuple = (20, 60, 160),
		mode: str = "RGB",
	) -> PIL.Image.Image:
		return PIL.Image.new(mode, (width, height), color)
	return _make
