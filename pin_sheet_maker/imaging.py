"""
Image loading, zoom/pan framing and edge color sampling.
"""

# Standard Library
import dataclasses
import io
import math
import pathlib

# PIP3 modules
import PIL.Image
import PIL.ImageOps

# local repo modules
import pin_sheet_maker as psm
import pin_sheet_maker.config


EdgeColor = psm.config.EdgeColor
ImageProcessingError = psm.config.ImageProcessingError

EDGE_ALPHA_THRESHOLD = psm.config.EDGE_ALPHA_THRESHOLD
EDGE_MIN_SAMPLES = psm.config.EDGE_MIN_SAMPLES
EDGE_MAX_INSET_FRACTION = psm.config.EDGE_MAX_INSET_FRACTION
EDGE_RING_COUNT = psm.config.EDGE_RING_COUNT
EDGE_FALLBACK_COLOR = psm.config.EDGE_FALLBACK_COLOR
OFFSET_CANVAS_FACTOR = psm.config.OFFSET_CANVAS_FACTOR

TRANSPARENT = (0, 0, 0, 0)

ImageRef = str | pathlib.Path | bytes | PIL.Image.Image


@dataclasses.dataclass
class PreparedRaster:
	image: PIL.Image.Image
	edge_color: EdgeColor | None


#============================================
def round_half_up(value: float) -> int:
	"""
	Round to the nearest integer with halves going up.

	Args:
		value: Input value.

	Returns:
		Rounded integer.
	"""
	return int(math.floor(value + 0.5))


#============================================
def describe_image_ref(ref: ImageRef) -> str:
	"""
	Build a short human-readable name for an image reference.

	Args:
		ref: Image reference.

	Returns:
		Display string.
	"""
	if isinstance(ref, (str, pathlib.Path)):
		return str(ref)
	if isinstance(ref, bytes):
		return f"<{len(ref)} bytes>"
	return f"<image {ref.width}x{ref.height}>"


#============================================
def load_image(ref: ImageRef) -> PIL.Image.Image:
	"""
	Load an image reference into an RGBA Pillow image.

	Args:
		ref: File path, encoded image bytes, or a Pillow image.

	Returns:
		RGBA image.
	"""
	name = describe_image_ref(ref)
	try:
		if isinstance(ref, PIL.Image.Image):
			image = ref
		elif isinstance(ref, bytes):
			image = PIL.Image.open(io.BytesIO(ref))
		else:
			image = PIL.Image.open(pathlib.Path(ref))
		image.load()
	except (OSError, ValueError) as error:
		raise ImageProcessingError(f"Cannot read image {name}: {error}") from error

	if image.width <= 0 or image.height <= 0:
		raise ImageProcessingError(f"Image {name} has zero dimensions")
	if image.mode != "RGBA":
		image = image.convert("RGBA")
	return image


#============================================
def extract_edge_color(image: PIL.Image.Image) -> EdgeColor:
	"""
	Average the opaque pixels along the image border.

	Samples the outer ring first and steps inward (up to a tenth of the
	shorter side, in EDGE_RING_COUNT steps) until enough opaque pixels are
	found. Pixels with alpha at or below EDGE_ALPHA_THRESHOLD are skipped.
	Falls back to EDGE_FALLBACK_COLOR when nothing opaque is found.

	Args:
		image: Source image, any mode.

	Returns:
		EdgeColor.
	"""
	if image.mode != "RGBA":
		image = image.convert("RGBA")
	width, height = image.size
	pixels = image.load()

	total_r = 0
	total_g = 0
	total_b = 0
	count = 0

	def sample(x: int, y: int) -> None:
		nonlocal total_r, total_g, total_b, count
		red, green, blue, alpha = pixels[x, y]
		if alpha > EDGE_ALPHA_THRESHOLD:
			total_r += red
			total_g += green
			total_b += blue
			count += 1

	max_inset = min(width, height) * EDGE_MAX_INSET_FRACTION
	inset_step = max(1, int(math.floor(max_inset / EDGE_RING_COUNT)))
	inset = 0
	while inset <= max_inset and count < EDGE_MIN_SAMPLES:
		if inset < height:
			bottom_y = height - 1 - inset
			for x in range(inset, width - inset):
				sample(x, inset)
				sample(x, bottom_y)
		# side columns skip the corner rows already sampled
		if inset < width and height - inset * 2 - 2 > 0:
			right_x = width - 1 - inset
			for y in range(inset + 1, height - inset - 1):
				sample(inset, y)
				sample(right_x, y)
		inset += inset_step

	if count == 0:
		return EdgeColor(*EDGE_FALLBACK_COLOR)
	return EdgeColor(
		r=round_half_up(total_r / count),
		g=round_half_up(total_g / count),
		b=round_half_up(total_b / count),
	)


#============================================
def fit_to_square(image: PIL.Image.Image, size: int) -> PIL.Image.Image:
	"""
	Resize to fit a square, keeping aspect ratio, with a transparent letterbox.

	Args:
		image: RGBA source image.
		size: Square side in pixels.

	Returns:
		RGBA image of size x size.
	"""
	return PIL.ImageOps.pad(
		image,
		(size, size),
		method=PIL.Image.Resampling.LANCZOS,
		color=TRANSPARENT,
	)


#============================================
def frame_image(
	image: PIL.Image.Image,
	boundary_size: int,
	zoom: float,
	offset_x: float,
	offset_y: float,
) -> PIL.Image.Image:
	"""
	Apply zoom and pan, returning a boundary_size square raster.

	Zooming in or panning can push content past the boundary, so the
	resized image is first composited onto a larger working canvas at its
	offset and the centered boundary window is cut out of that.

	Args:
		image: RGBA source image.
		boundary_size: Output square side in pixels.
		zoom: Zoom factor, 1.0 fits the image to the boundary.
		offset_x: Horizontal pan in pixels.
		offset_y: Vertical pan in pixels.

	Returns:
		RGBA image of boundary_size x boundary_size.
	"""
	zoomed_size = max(1, round_half_up(boundary_size * zoom))
	resized = fit_to_square(image, zoomed_size)

	needs_viewport = zoom >= 1.0 or offset_x != 0 or offset_y != 0
	if not needs_viewport:
		canvas = PIL.Image.new("RGBA", (boundary_size, boundary_size), TRANSPARENT)
		left = round_half_up((boundary_size - zoomed_size) / 2.0)
		canvas.paste(resized, (left, left))
		return canvas

	if zoom >= 1.0:
		work_size = zoomed_size
	else:
		work_size = round_half_up(boundary_size * OFFSET_CANVAS_FACTOR)
	work = PIL.Image.new("RGBA", (work_size, work_size), TRANSPARENT)
	image_left = round_half_up((work_size - zoomed_size) / 2.0 + offset_x)
	image_top = round_half_up((work_size - zoomed_size) / 2.0 + offset_y)
	work.paste(resized, (image_left, image_top))

	extract = round_half_up((work_size - boundary_size) / 2.0)
	return work.crop((extract, extract, extract + boundary_size, extract + boundary_size))


#============================================
def prepare_image(
	image: PIL.Image.Image,
	pin_diameter: float,
	circle_diameter: float,
	zoom: float = 1.0,
	offset_x: float = 0.0,
	offset_y: float = 0.0,
	need_edge_color: bool = False,
) -> PreparedRaster:
	"""
	Prepare one source image for a pin circle.

	The image is framed at the cutting-circle size so zoom and pan have
	room to work, then center-cropped to the pin diameter. The edge color
	is sampled after framing and before the crop.

	Args:
		image: Source image.
		pin_diameter: Pin diameter in points.
		circle_diameter: Cutting-circle diameter in points.
		zoom: Zoom factor.
		offset_x: Horizontal pan in pixels.
		offset_y: Vertical pan in pixels.
		need_edge_color: Whether to sample the edge color.

	Returns:
		PreparedRaster.
	"""
	if image.width <= 0 or image.height <= 0:
		raise ImageProcessingError("Image has zero dimensions")
	if image.mode != "RGBA":
		image = image.convert("RGBA")

	boundary_size = round_half_up(circle_diameter)
	framed = frame_image(image, boundary_size, zoom, offset_x, offset_y)

	edge_color = None
	if need_edge_color:
		edge_color = extract_edge_color(framed)

	if circle_diameter > pin_diameter:
		pin_size = round_half_up(pin_diameter)
		crop_offset = round_half_up((circle_diameter - pin_diameter) / 2.0)
		framed = framed.crop((crop_offset, crop_offset, crop_offset + pin_size, crop_offset + pin_size))

	return PreparedRaster(image=framed, edge_color=edge_color)
