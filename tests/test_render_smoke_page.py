import fitz
import PIL.Image
import pytest

import pin_sheet_maker.config
import pin_sheet_maker.document
import pin_sheet_maker.layout
import pin_sheet_maker.render


DPI = 144
COLOR_TOLERANCE = 12
INK_THRESHOLD = 128

PinSheetConfig = pin_sheet_maker.config.PinSheetConfig
TextLine = pin_sheet_maker.config.TextLine
MM_TO_POINTS = pin_sheet_maker.config.MM_TO_POINTS


#============================================
def _render_page(pdf_bytes: bytes, page_index: int = 0) -> PIL.Image.Image:
	"""
	Render one page of a PDF to an RGB image.

	Args:
		pdf_bytes: PDF document bytes.
		page_index: Zero-based page index.

	Returns:
		PIL image.
	"""
	document = fitz.open(stream=pdf_bytes, filetype="pdf")
	page = document[page_index]
	scale = DPI / 72.0
	matrix = fitz.Matrix(scale, scale)
	pixmap = page.get_pixmap(matrix=matrix, alpha=False)
	image = PIL.Image.frombytes("RGB", [pixmap.width, pixmap.height], pixmap.samples)
	document.close()
	return image


#============================================
def _pixel_at(image: PIL.Image.Image, x: float, y: float) -> tuple[int, int, int]:
	"""
	Read the pixel at a top-down point coordinate.
	"""
	scale = DPI / 72.0
	return image.getpixel((int(round(x * scale)), int(round(y * scale))))


#============================================
def _assert_color(pixel: tuple[int, int, int], expected: tuple[int, int, int]) -> None:
	"""
	Assert a rendered pixel is close to an expected color.
	"""
	for actual, wanted in zip(pixel, expected):
		assert abs(actual - wanted) <= COLOR_TOLERANCE, f"{pixel} != {expected}"


#============================================
def _single_pin_geometry() -> tuple[float, float, float, float]:
	"""
	Center and radii of a lone 32 mm circle.

	Returns:
		Tuple of (center x, center y, pin radius, circle radius).
	"""
	profile = pin_sheet_maker.config.PIN_PROFILES["32mm"]
	position = pin_sheet_maker.layout.calculate_layout(1, profile)[0]
	return (
		position.x,
		position.y,
		profile.pin_diameter_pt / 2.0,
		profile.circle_diameter_pt / 2.0,
	)


#============================================
def test_image_and_background_color(blue_png: bytes) -> None:
	"""
	The image fills the pin face and the background fills the bleed ring.
	"""
	config = PinSheetConfig(background_color="#ff0000")
	result = pin_sheet_maker.document.generate_pin_pdf([blue_png], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, pin_radius, circle_radius = _single_pin_geometry()

	_assert_color(_pixel_at(image, center_x, center_y), (0, 0, 255))
	ring_radius = (pin_radius + circle_radius) / 2.0
	_assert_color(_pixel_at(image, center_x, center_y - ring_radius), (255, 0, 0))
	# outside the cutting circle stays paper white
	_assert_color(_pixel_at(image, center_x, center_y - circle_radius - 6.0), (255, 255, 255))


#============================================
def test_edge_fill_uses_sampled_color(red_png: bytes) -> None:
	"""
	Edge fill paints the bleed ring with the image border color.
	"""
	config = PinSheetConfig(fill=True)
	result = pin_sheet_maker.document.generate_pin_pdf([red_png], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, pin_radius, circle_radius = _single_pin_geometry()
	ring_radius = (pin_radius + circle_radius) / 2.0
	_assert_color(_pixel_at(image, center_x + ring_radius, center_y), (255, 0, 0))


#============================================
def test_no_fill_leaves_ring_blank(red_png: bytes) -> None:
	"""
	Without fill or background the bleed ring stays white.
	"""
	config = PinSheetConfig()
	result = pin_sheet_maker.document.generate_pin_pdf([red_png], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, pin_radius, circle_radius = _single_pin_geometry()
	ring_radius = (pin_radius + circle_radius) / 2.0
	_assert_color(_pixel_at(image, center_x + ring_radius, center_y), (255, 255, 255))
	_assert_color(_pixel_at(image, center_x, center_y), (255, 0, 0))


#============================================
def test_border_ring_inside_cutting_circle(blue_png: bytes) -> None:
	"""
	The border ring covers the band just inside the cutting circle.
	"""
	border_width_mm = 3.0
	config = PinSheetConfig(border_color="#00ff00", border_width_mm=border_width_mm)
	result = pin_sheet_maker.document.generate_pin_pdf([blue_png], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, _pin_radius, circle_radius = _single_pin_geometry()
	band_radius = circle_radius - border_width_mm * MM_TO_POINTS / 2.0
	_assert_color(_pixel_at(image, center_x - band_radius, center_y), (0, 255, 0))
	_assert_color(_pixel_at(image, center_x, center_y), (0, 0, 255))


#============================================
def test_blank_template_draws_cut_lines() -> None:
	"""
	A blank template has ink on every cutting circle and nowhere else.
	"""
	config = PinSheetConfig(pin_size="58mm")
	result = pin_sheet_maker.document.generate_pin_pdf([], config, verbose=False)
	assert result.total_circles == 6
	image = _render_page(result.pdf_bytes)
	gray = image.convert("L")
	scale = DPI / 72.0

	profile = pin_sheet_maker.config.PIN_PROFILES["58mm"]
	circle_radius = profile.circle_diameter_pt / 2.0
	for position in pin_sheet_maker.layout.calculate_layout(6, profile):
		assert _pixel_at(image, position.x, position.y) == (255, 255, 255)
		right_x = int(round((position.x + circle_radius) * scale))
		row_y = int(round(position.y * scale))
		strip = [gray.getpixel((x, row_y)) for x in range(right_x - 3, right_x + 4)]
		assert min(strip) < INK_THRESHOLD


#============================================
def test_text_overlay_leaves_ink() -> None:
	"""
	Centered text on a blank pin puts dark ink near the center.
	"""
	config = PinSheetConfig(
		text_pins=[[TextLine("HELLO", 14.0)]],
		text_position="center",
		text_color="black",
		text_outline_width=0.0,
	)
	result = pin_sheet_maker.document.generate_pin_pdf([], config, verbose=False)
	assert result.total_circles == 1
	image = _render_page(result.pdf_bytes)
	center_x, center_y, _pin_radius, _circle_radius = _single_pin_geometry()
	scale = DPI / 72.0
	box = (
		int((center_x - 25.0) * scale),
		int((center_y - 8.0) * scale),
		int((center_x + 25.0) * scale),
		int((center_y + 8.0) * scale),
	)
	region = image.convert("L").crop(box)
	assert min(region.getdata()) < INK_THRESHOLD


#============================================
def test_blank_border_color_draws_no_ring(blue_png: bytes) -> None:
	"""
	A whitespace border color leaves the band inside the cut line white.
	"""
	border_width_mm = 3.0
	config = PinSheetConfig(border_color="   ", border_width_mm=border_width_mm)
	result = pin_sheet_maker.document.generate_pin_pdf([blue_png], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, _pin_radius, circle_radius = _single_pin_geometry()
	band_radius = circle_radius - border_width_mm * MM_TO_POINTS / 2.0
	_assert_color(_pixel_at(image, center_x - band_radius, center_y), (255, 255, 255))
	_assert_color(_pixel_at(image, center_x, center_y), (0, 0, 255))


#============================================
def test_image_is_clipped_to_pin_disc(blue_png: bytes) -> None:
	"""
	Raster corners outside the pin radius are not drawn.
	"""
	config = PinSheetConfig()
	result = pin_sheet_maker.document.generate_pin_pdf([blue_png], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, pin_radius, _circle_radius = _single_pin_geometry()
	# inside the raster square but past the pin radius
	corner = pin_radius * 0.8
	_assert_color(_pixel_at(image, center_x + corner, center_y + corner), (255, 255, 255))
	_assert_color(_pixel_at(image, center_x - corner, center_y - corner), (255, 255, 255))
	inside = pin_radius * 0.6
	_assert_color(_pixel_at(image, center_x + inside, center_y + inside), (0, 0, 255))


#============================================
def _text_region_ink(
	config: PinSheetConfig,
	top_offset: float,
	bottom_offset: float,
) -> int:
	"""
	Render a blank text pin and find the darkest pixel in a band.

	Args:
		config: Sheet configuration with one text block.
		top_offset: Band top relative to the circle center, in points.
		bottom_offset: Band bottom relative to the circle center, in points.

	Returns:
		Darkest gray value in the band.
	"""
	result = pin_sheet_maker.document.generate_pin_pdf([], config, verbose=False)
	image = _render_page(result.pdf_bytes)
	center_x, center_y, _pin_radius, _circle_radius = _single_pin_geometry()
	scale = DPI / 72.0
	box = (
		int((center_x - 25.0) * scale),
		int((center_y + top_offset) * scale),
		int((center_x + 25.0) * scale),
		int((center_y + bottom_offset) * scale),
	)
	region = image.convert("L").crop(box)
	return min(region.getdata())


#============================================
def test_text_outline_is_stroked() -> None:
	"""
	White text on a white pin shows only through its black outline.
	"""
	outlined = PinSheetConfig(
		text_pins=[[TextLine("HELLO", 14.0)]],
		text_position="center",
		text_color="white",
		text_outline_color="black",
		text_outline_width=2.0,
	)
	assert _text_region_ink(outlined, -10.0, 10.0) < INK_THRESHOLD

	plain = PinSheetConfig(
		text_pins=[[TextLine("HELLO", 14.0)]],
		text_position="center",
		text_color="white",
		text_outline_width=0.0,
	)
	assert _text_region_ink(plain, -10.0, 10.0) > 240


#============================================
def test_text_anchor_positions() -> None:
	"""
	Top text sits above the center and bottom text below it.
	"""
	for position, ink_band, empty_band in (
		("top", (-40.0, -15.0), (15.0, 40.0)),
		("bottom", (15.0, 40.0), (-40.0, -15.0)),
	):
		config = PinSheetConfig(
			text_pins=[[TextLine("HELLO", 14.0)]],
			text_position=position,
			text_color="black",
			text_outline_width=0.0,
		)
		assert _text_region_ink(config, *ink_band) < INK_THRESHOLD, position
		assert _text_region_ink(config, *empty_band) > 240, position


#============================================
def test_compute_text_start() -> None:
	"""
	Block tops for a 80 pt pin centered at 100 with 20 pt of text.
	"""
	compute = pin_sheet_maker.render.compute_text_start
	assert compute(100.0, 80.0, 20.0, "top") == pytest.approx(66.0)
	assert compute(100.0, 80.0, 20.0, "center") == pytest.approx(90.0)
	assert compute(100.0, 80.0, 20.0, "bottom") == pytest.approx(114.0)
