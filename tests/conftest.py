"""
Pytest configuration for local imports and shared test images.
"""

# Standard Library
import io
import os
import sys

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()

# PIP3 modules
import PIL.Image
import pytest


#============================================
def make_solid_image(
	width: int,
	height: int,
	color: tuple[int, int, int, int],
) -> PIL.Image.Image:
	"""
	Build a single-color RGBA test image.

	Args:
		width: Image width.
		height: Image height.
		color: RGBA fill.

	Returns:
		RGBA image.
	"""
	return PIL.Image.new("RGBA", (width, height), color)


#============================================
def encode_png(image: PIL.Image.Image) -> bytes:
	"""
	Encode an image as PNG bytes.
	"""
	buffer = io.BytesIO()
	image.save(buffer, format="PNG")
	return buffer.getvalue()


@pytest.fixture
def red_png() -> bytes:
	return encode_png(make_solid_image(48, 48, (255, 0, 0, 255)))


@pytest.fixture
def blue_png() -> bytes:
	return encode_png(make_solid_image(48, 48, (0, 0, 255, 255)))
