"""
Source image ingestion and validation.
"""

# Standard Library
import io
import pathlib

# PIP3 modules
import PIL.Image
import PIL.ImageOps

# local repo modules
import tileprint as tp
import tileprint.config


DecodeFailure = tp.config.DecodeFailure


#============================================
def load_source_image(source: str | pathlib.Path | bytes) -> PIL.Image.Image:
	"""
	Decode an image file or byte buffer into a bitmap.

	EXIF orientation is applied so the bitmap matches how viewers show it.

	Args:
		source: File path or encoded image bytes.

	Returns:
		Decoded PIL image.
	"""
	if isinstance(source, bytes):
		handle = io.BytesIO(source)
		label = "<bytes>"
	else:
		path = pathlib.Path(source)
		if not path.is_file():
			raise DecodeFailure(f"Image not found: {path}")
		handle = path
		label = str(path)
	try:
		with PIL.Image.open(handle) as opened:
			opened.load()
			image = PIL.ImageOps.exif_transpose(opened)
			if image is opened:
				image = opened.copy()
	except (PIL.UnidentifiedImageError, OSError, ValueError, EOFError) as error:
		raise DecodeFailure(f"Cannot decode {label}: {error}") from error
	validate_source(image)
	return image


#============================================
def validate_source(image: PIL.Image.Image) -> None:
	"""
	Fail fast on a bitmap the engine cannot tile.

	Args:
		image: Source bitmap.
	"""
	if not isinstance(image, PIL.Image.Image):
		raise DecodeFailure(f"Source is not a decoded image: {type(image).__name__}")
	width, height = image.size
	if width <= 0 or height <= 0:
		raise DecodeFailure(f"Source image is empty ({width} x {height} px)")
	try:
		image.load()
	except (OSError, ValueError) as error:
		raise DecodeFailure(f"Source image pixels are unreadable: {error}") from error
