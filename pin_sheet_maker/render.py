"""
Per-pin drawing and the calibration page.
"""

# Standard Library
import io

# PIP3 modules
import pypdf
import reportlab.lib.colors
import reportlab.lib.utils
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfgen.canvas

# local repo modules
import pin_sheet_maker as psm
import pin_sheet_maker.config
import pin_sheet_maker.imaging


PinProfile = psm.config.PinProfile
PageGeometry = psm.config.PageGeometry
CirclePosition = psm.config.CirclePosition
SlotStyle = psm.config.SlotStyle
TextLine = psm.config.TextLine
EdgeColor = psm.config.EdgeColor
PinSheetConfig = psm.config.PinSheetConfig
ConfigurationError = psm.config.ConfigurationError
PreparedRaster = psm.imaging.PreparedRaster

A4_PAGE = psm.config.A4_PAGE
PIN_PROFILES = psm.config.PIN_PROFILES
MM_TO_POINTS = psm.config.MM_TO_POINTS
POINTS_PER_INCH = psm.config.POINTS_PER_INCH
FONT_TEXT = psm.config.FONT_TEXT
FONT_LABEL = psm.config.FONT_LABEL
AUTO_TEXT_SIZE_DIVISOR = psm.config.AUTO_TEXT_SIZE_DIVISOR
TEXT_LINE_HEIGHT = psm.config.TEXT_LINE_HEIGHT
TEXT_ANCHOR_FACTOR = psm.config.TEXT_ANCHOR_FACTOR
CUT_LINE_COLOR = psm.config.CUT_LINE_COLOR
CUT_LINE_WIDTH = psm.config.CUT_LINE_WIDTH
GUIDE_LINE_COLOR = psm.config.GUIDE_LINE_COLOR
GUIDE_LINE_WIDTH = psm.config.GUIDE_LINE_WIDTH
GUIDE_DASH = psm.config.GUIDE_DASH


#============================================
def parse_color(value: str) -> reportlab.lib.colors.Color:
	"""
	Parse a user color string.

	Accepts hex ("#AABBCC"), CSS names ("white") and "rgb(r, g, b)".

	Args:
		value: Color string.

	Returns:
		ReportLab Color.
	"""
	try:
		return reportlab.lib.colors.toColor(value.strip())
	except ValueError as error:
		raise ConfigurationError(f"Invalid color value '{value}'") from error


#============================================
def edge_color_to_color(edge_color: EdgeColor) -> reportlab.lib.colors.Color:
	"""
	Convert a sampled edge color to a ReportLab color.

	Args:
		edge_color: Sampled 0-255 RGB color.

	Returns:
		ReportLab Color.
	"""
	return reportlab.lib.colors.Color(
		edge_color.r / 255.0,
		edge_color.g / 255.0,
		edge_color.b / 255.0,
	)


#============================================
def resolve_background_color(
	style: SlotStyle,
	raster: PreparedRaster | None,
) -> reportlab.lib.colors.Color | None:
	"""
	Pick the background fill for a slot.

	An explicit background color wins over the sampled edge color, which
	is only used when edge fill is enabled for the slot.

	Args:
		style: Resolved slot style.
		raster: Prepared raster, or None for a blank slot.

	Returns:
		Fill color or None for no background.
	"""
	if style.background_color and style.background_color.strip():
		return parse_color(style.background_color)
	if style.fill_with_edge_color and raster is not None and raster.edge_color is not None:
		return edge_color_to_color(raster.edge_color)
	return None


#============================================
def compute_text_start(
	center_y: float,
	pin_diameter: float,
	total_height: float,
	position: str,
) -> float:
	"""
	Compute the top of a text block in top-down page space.

	Args:
		center_y: Circle center y (top-down).
		pin_diameter: Pin diameter in points.
		total_height: Summed line heights.
		position: "top", "center" or "bottom".

	Returns:
		Top y of the first line.
	"""
	pin_radius = pin_diameter / 2.0
	if position == "top":
		return center_y - pin_radius * TEXT_ANCHOR_FACTOR - total_height / 2.0
	if position == "center":
		return center_y - total_height / 2.0
	return center_y + pin_radius * TEXT_ANCHOR_FACTOR - total_height / 2.0


#============================================
def compute_line_sizes(
	text_block: list[TextLine],
	pin_diameter: float,
	default_text_size: float,
) -> list[float]:
	"""
	Resolve the font size of every line in a text block.

	Args:
		text_block: Text lines.
		pin_diameter: Pin diameter in points.
		default_text_size: Sheet default size, 0 for automatic.

	Returns:
		Font size per line.
	"""
	auto_size = default_text_size
	if auto_size <= 0:
		auto_size = pin_diameter / AUTO_TEXT_SIZE_DIVISOR
	return [line.size if line.size else auto_size for line in text_block]


#============================================
def draw_text_line(
	pdf: reportlab.pdfgen.canvas.Canvas,
	text: str,
	x: float,
	baseline_y: float,
	font_size: float,
	render_mode: int,
) -> None:
	"""
	Draw one line of text with an explicit render mode (0 fill, 1 stroke).
	"""
	text_object = pdf.beginText()
	text_object.setTextRenderMode(render_mode)
	text_object.setFont(FONT_TEXT, font_size)
	text_object.setTextOrigin(x, baseline_y)
	text_object.textOut(text)
	pdf.drawText(text_object)


#============================================
def draw_text_overlay(
	pdf: reportlab.pdfgen.canvas.Canvas,
	text_block: list[TextLine],
	position: CirclePosition,
	pin_diameter: float,
	config: PinSheetConfig,
	page: PageGeometry = A4_PAGE,
) -> None:
	"""
	Draw a multi-line text block centered on a pin.

	Args:
		pdf: ReportLab canvas.
		text_block: Text lines, top to bottom.
		position: Circle position (top-down).
		pin_diameter: Pin diameter in points.
		config: Sheet configuration with the shared text styling.
		page: Page geometry.
	"""
	if not text_block:
		return
	line_sizes = compute_line_sizes(text_block, pin_diameter, config.default_text_size)
	line_heights = [size * TEXT_LINE_HEIGHT for size in line_sizes]
	total_height = sum(line_heights)
	current_y = compute_text_start(position.y, pin_diameter, total_height, config.text_position)

	fill_color = parse_color(config.text_color)
	outline_color = None
	if config.text_outline_color.strip() and config.text_outline_width > 0:
		outline_color = parse_color(config.text_outline_color)

	pdf.saveState()
	pdf.setLineJoin(1)
	for line, font_size, line_height in zip(text_block, line_sizes, line_heights):
		text_width = reportlab.pdfbase.pdfmetrics.stringWidth(line.text, FONT_TEXT, font_size)
		ascent = reportlab.pdfbase.pdfmetrics.getAscent(FONT_TEXT) * font_size / 1000.0
		text_x = position.x - text_width / 2.0
		baseline_y = page.page_height - (current_y + ascent)

		if outline_color is not None:
			# stroke straddles the glyph edge, so double it and fill on top
			pdf.saveState()
			pdf.setStrokeColor(outline_color)
			pdf.setLineWidth(config.text_outline_width * 2.0)
			draw_text_line(pdf, line.text, text_x, baseline_y, font_size, 1)
			pdf.restoreState()

		pdf.setFillColor(fill_color)
		draw_text_line(pdf, line.text, text_x, baseline_y, font_size, 0)
		current_y += line_height
	pdf.restoreState()


#============================================
def draw_clipped_image(
	pdf: reportlab.pdfgen.canvas.Canvas,
	raster: PreparedRaster,
	center_x: float,
	center_y: float,
	pin_diameter: float,
) -> None:
	"""
	Draw a prepared raster clipped to the pin disc.

	Args:
		pdf: ReportLab canvas.
		raster: Prepared raster.
		center_x: Center x (PDF space).
		center_y: Center y (PDF space).
		pin_diameter: Pin diameter in points.
	"""
	pin_radius = pin_diameter / 2.0
	pdf.saveState()
	path = pdf.beginPath()
	path.circle(center_x, center_y, pin_radius)
	pdf.clipPath(path, stroke=0, fill=0)
	image_reader = reportlab.lib.utils.ImageReader(raster.image)
	pdf.drawImage(
		image_reader,
		center_x - pin_radius,
		center_y - pin_radius,
		width=pin_diameter,
		height=pin_diameter,
		mask="auto",
		preserveAspectRatio=False,
		anchor="sw",
	)
	pdf.restoreState()


#============================================
def draw_border_ring(
	pdf: reportlab.pdfgen.canvas.Canvas,
	center_x: float,
	center_y: float,
	circle_diameter: float,
	border_color: str,
	border_width_pt: float,
) -> None:
	"""
	Draw a ring from the cutting circle inward by the border width.

	Args:
		pdf: ReportLab canvas.
		center_x: Center x (PDF space).
		center_y: Center y (PDF space).
		circle_diameter: Cutting-circle diameter in points.
		border_color: Ring color string.
		border_width_pt: Ring thickness in points.
	"""
	circle_radius = circle_diameter / 2.0
	ring_width = min(border_width_pt, circle_radius)
	mid_radius = circle_radius - ring_width / 2.0
	pdf.saveState()
	pdf.setStrokeColor(parse_color(border_color))
	pdf.setLineWidth(ring_width)
	pdf.circle(center_x, center_y, mid_radius, stroke=1, fill=0)
	pdf.restoreState()


#============================================
def draw_slot(
	pdf: reportlab.pdfgen.canvas.Canvas,
	raster: PreparedRaster | None,
	position: CirclePosition,
	profile: PinProfile,
	style: SlotStyle,
	text_block: list[TextLine],
	config: PinSheetConfig,
	page: PageGeometry = A4_PAGE,
) -> None:
	"""
	Draw one pin: background, image, border ring, outline and text.

	Args:
		pdf: ReportLab canvas.
		raster: Prepared raster, or None for a blank slot.
		position: Circle position (top-down page space).
		profile: Pin profile.
		style: Resolved slot style.
		text_block: Text lines for this slot, may be empty.
		config: Sheet configuration.
		page: Page geometry.
	"""
	pin_diameter = profile.pin_diameter_pt
	circle_diameter = profile.circle_diameter_pt
	circle_radius = circle_diameter / 2.0
	center_x = position.x
	center_y = page.page_height - position.y

	background = resolve_background_color(style, raster)
	if background is not None:
		pdf.saveState()
		pdf.setFillColor(background)
		pdf.circle(center_x, center_y, circle_radius, stroke=0, fill=1)
		pdf.restoreState()

	if raster is not None:
		draw_clipped_image(pdf, raster, center_x, center_y, pin_diameter)

	border_width_mm = style.border_width_mm or 0.0
	if style.border_color and style.border_color.strip() and border_width_mm > 0:
		draw_border_ring(
			pdf,
			center_x,
			center_y,
			circle_diameter,
			style.border_color,
			border_width_mm * MM_TO_POINTS,
		)

	pdf.saveState()
	pdf.setStrokeColor(parse_color(CUT_LINE_COLOR))
	pdf.setLineWidth(CUT_LINE_WIDTH)
	pdf.circle(center_x, center_y, circle_radius, stroke=1, fill=0)
	pdf.restoreState()

	if config.draw_pin_guides:
		draw_pin_guide(pdf, center_x, center_y, pin_diameter)

	if text_block:
		draw_text_overlay(pdf, text_block, position, pin_diameter, config, page)


#============================================
def draw_pin_guide(
	pdf: reportlab.pdfgen.canvas.Canvas,
	center_x: float,
	center_y: float,
	pin_diameter: float,
) -> None:
	"""
	Draw a dashed grey circle marking the visible pin face.
	"""
	pdf.saveState()
	pdf.setStrokeColorRGB(*GUIDE_LINE_COLOR)
	pdf.setLineWidth(GUIDE_LINE_WIDTH)
	pdf.setDash(*GUIDE_DASH)
	pdf.circle(center_x, center_y, pin_diameter / 2.0, stroke=1, fill=0)
	pdf.restoreState()


#============================================
def draw_ruler(
	pdf: reportlab.pdfgen.canvas.Canvas,
	x: float,
	y: float,
	length: float,
	tick_every: float,
	label: str,
) -> None:
	"""
	Draw a horizontal ruler with ticks and a label.

	Args:
		pdf: ReportLab canvas.
		x: Left x.
		y: Baseline y.
		length: Ruler length in points.
		tick_every: Tick spacing in points.
		label: Text drawn above the right end.
	"""
	pdf.line(x, y, x + length, y)
	tick_count = int(round(length / tick_every))
	for index in range(tick_count + 1):
		tick_x = x + index * tick_every
		pdf.line(tick_x, y, tick_x, y + 4.0)
	pdf.drawString(x + length + 6.0, y - 3.0, label)


#============================================
def draw_calibration_page(
	pdf: reportlab.pdfgen.canvas.Canvas,
	page: PageGeometry = A4_PAGE,
) -> None:
	"""
	Draw every pin profile at true size plus metric and inch rulers.

	Args:
		pdf: ReportLab canvas.
		page: Page geometry.
	"""
	left = page.margin
	top = page.page_height - page.margin

	pdf.setFillColorRGB(0.0, 0.0, 0.0)
	pdf.setFont(FONT_TEXT, 14)
	pdf.drawString(left, top - 14.0, "Pin sheet calibration")
	pdf.setFont(FONT_LABEL, 9)
	pdf.drawString(
		left,
		top - 30.0,
		"Print at 100% scale. Each ruler and circle below should measure as labeled.",
	)

	cursor_x = left
	row_top = top - 50.0
	for name in sorted(PIN_PROFILES):
		profile = PIN_PROFILES[name]
		circle_radius = profile.circle_diameter_pt / 2.0
		center_x = cursor_x + circle_radius
		center_y = row_top - circle_radius
		pdf.setStrokeColorRGB(0.0, 0.0, 0.0)
		pdf.setLineWidth(CUT_LINE_WIDTH)
		pdf.circle(center_x, center_y, circle_radius, stroke=1, fill=0)
		draw_pin_guide(pdf, center_x, center_y, profile.pin_diameter_pt)
		pdf.line(center_x - 6.0, center_y, center_x + 6.0, center_y)
		pdf.line(center_x, center_y - 6.0, center_x, center_y + 6.0)
		label = (
			f"{profile.name}: cut {profile.circle_diameter_mm:g} mm, "
			f"pin {profile.pin_diameter_mm:g} mm, {profile.circles_per_page} per page"
		)
		pdf.drawString(cursor_x, center_y - circle_radius - 14.0, label)
		cursor_x += profile.circle_diameter_pt + 4.0 * page.spacing

	pdf.setStrokeColorRGB(0.0, 0.0, 0.0)
	pdf.setLineWidth(0.6)
	ruler_y = page.margin + 60.0
	draw_ruler(pdf, left, ruler_y, 50.0 * MM_TO_POINTS, 10.0 * MM_TO_POINTS, "50 mm")
	draw_ruler(pdf, left, ruler_y - 30.0, POINTS_PER_INCH, POINTS_PER_INCH / 4.0, "1 in")


#============================================
def build_calibration_page(page: PageGeometry = A4_PAGE) -> pypdf.PageObject:
	"""
	Build a calibration page PDF.

	Args:
		page: Page geometry.

	Returns:
		PDF page object.
	"""
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(page.page_width, page.page_height))
	draw_calibration_page(pdf, page)
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]
