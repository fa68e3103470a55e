"""
Document assembly: layout, distribution, preparation and ordered rendering.
"""

# Standard Library
import concurrent.futures
import io
import json
import os
import pathlib

# PIP3 modules
import PIL.Image
import pypdf
import reportlab.pdfgen.canvas

# local repo modules
import pin_sheet_maker as psm
import pin_sheet_maker.config
import pin_sheet_maker.imaging
import pin_sheet_maker.layout
import pin_sheet_maker.render


PinProfile = psm.config.PinProfile
PinSheetConfig = psm.config.PinSheetConfig
GenerationResult = psm.config.GenerationResult
SlotAssignment = psm.config.SlotAssignment
SlotStyle = psm.config.SlotStyle
PreparedRaster = psm.imaging.PreparedRaster
ImageRef = psm.imaging.ImageRef

A4_PAGE = psm.config.A4_PAGE
PROGRESS_BAR_WIDTH = psm.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = psm.config.PROGRESS_UPDATE_EVERY

# (image index, zoom, offset x, offset y, sample edge color)
RasterKey = tuple[int, float, float, float, bool]


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end="\r")


#============================================
def effective_workers(workers: int) -> int:
	"""
	Resolve the worker count, 0 meaning one per CPU.

	Args:
		workers: Requested worker count.

	Returns:
		Worker count of at least one.
	"""
	if workers <= 0:
		return max(1, min(8, os.cpu_count() or 1))
	return workers


#============================================
def build_raster_keys(
	assignment: SlotAssignment,
	styles: list[SlotStyle],
) -> list[RasterKey | None]:
	"""
	Describe the raster each slot needs.

	Slots that share an image and framing share a key, so each distinct
	raster is prepared once.

	Args:
		assignment: Slot assignment.
		styles: Resolved style per slot.

	Returns:
		RasterKey per slot, None for slots without an image.
	"""
	keys: list[RasterKey | None] = []
	for image_index, style in zip(assignment.image_index, styles):
		if image_index is None:
			keys.append(None)
			continue
		has_background = bool(style.background_color and style.background_color.strip())
		need_edge_color = bool(style.fill_with_edge_color) and not has_background
		keys.append(
			(
				image_index,
				float(style.zoom),
				float(style.offset_x),
				float(style.offset_y),
				need_edge_color,
			)
		)
	return keys


#============================================
def prepare_rasters(
	images: list[ImageRef],
	keys: list[RasterKey | None],
	profile: PinProfile,
	workers: int,
	verbose: bool = True,
) -> dict[RasterKey, PreparedRaster]:
	"""
	Load and prepare every distinct raster on a thread pool.

	Results are keyed by RasterKey so the ordered render loop can look
	them up by slot. The first failure propagates and aborts the run.

	Args:
		images: Source image references.
		keys: RasterKey per slot.
		profile: Pin profile.
		workers: Worker count, 0 for automatic.
		verbose: Print progress.

	Returns:
		Prepared raster per key.
	"""
	unique_keys = list(dict.fromkeys(key for key in keys if key is not None))
	if not unique_keys:
		return {}
	image_indexes = sorted({key[0] for key in unique_keys})

	def prepare_one(key: RasterKey) -> PreparedRaster:
		image_index, zoom, offset_x, offset_y, need_edge_color = key
		return psm.imaging.prepare_image(
			sources[image_index],
			profile.pin_diameter_pt,
			profile.circle_diameter_pt,
			zoom=zoom,
			offset_x=offset_x,
			offset_y=offset_y,
			need_edge_color=need_edge_color,
		)

	n_workers = min(effective_workers(workers), len(unique_keys))
	with concurrent.futures.ThreadPoolExecutor(max_workers=n_workers) as executor:
		loaded = executor.map(psm.imaging.load_image, [images[index] for index in image_indexes])
		sources: dict[int, PIL.Image.Image] = dict(zip(image_indexes, loaded))

		prepared: dict[RasterKey, PreparedRaster] = {}
		total = len(unique_keys)
		if verbose:
			print_progress("Preparing", 0, total)
		for count, (key, raster) in enumerate(zip(unique_keys, executor.map(prepare_one, unique_keys)), start=1):
			prepared[key] = raster
			if verbose and (count % PROGRESS_UPDATE_EVERY == 0 or count == total):
				print_progress("Preparing", count, total)
		if verbose:
			print()
	return prepared


#============================================
def print_layout_summary(
	config: PinSheetConfig,
	profile: PinProfile,
	image_count: int,
	total_circles: int,
	total_pages: int,
) -> None:
	"""
	Print the pin size, layout and duplication summary.
	"""
	text_count = len(config.text_pins)
	if image_count > 0:
		print(f"Processing {image_count} unique image(s)")
	elif text_count > 0:
		print("Generating pins with text on blank templates")
	else:
		print("Generating blank template")
	print(
		f"Pin size: {profile.pin_diameter_mm:g}mm (circle: {profile.circle_diameter_mm:g}mm)"
	)
	print(
		f"Layout: {total_circles} circles on {total_pages} page(s) "
		f"({profile.circles_per_page} per page)"
	)
	if config.duplicate and 0 < image_count < profile.circles_per_page:
		copies = total_circles // image_count
		with_extra = total_circles % image_count
		if with_extra == 0:
			print(f"Each image will be duplicated {copies} times")
		else:
			print(
				f"{with_extra} image(s) duplicated {copies + 1} times, "
				f"{image_count - with_extra} duplicated {copies} times"
			)


#============================================
def generate_pin_pdf(
	images: list[ImageRef],
	config: PinSheetConfig,
	verbose: bool = True,
) -> GenerationResult:
	"""
	Generate the pin sheet PDF.

	Args:
		images: Ordered source image references, may be empty.
		config: Sheet configuration.
		verbose: Print progress.

	Returns:
		GenerationResult with the PDF bytes.
	"""
	profile = psm.config.validate_config(config)
	page = A4_PAGE
	image_count = len(images)
	text_count = len(config.text_pins)

	total_circles = psm.layout.compute_total_circles(
		image_count,
		text_count,
		profile.circles_per_page,
		config.duplicate,
	)
	positions = psm.layout.calculate_layout(total_circles, profile, page)
	total_pages = psm.layout.get_total_pages(positions)
	assignment = psm.layout.build_slot_assignment(
		image_count,
		text_count,
		total_circles,
		config.duplicate,
	)
	styles = [psm.config.resolve_slot_style(config, index) for index in range(total_circles)]
	if verbose:
		print_layout_summary(config, profile, image_count, total_circles, total_pages)

	# fail on bad colors before any image work
	for style in styles:
		for value in (style.background_color, style.border_color):
			if value and value.strip():
				psm.render.parse_color(value)
	if config.text_pins:
		psm.render.parse_color(config.text_color)
		if config.text_outline_color.strip():
			psm.render.parse_color(config.text_outline_color)

	keys = build_raster_keys(assignment, styles)
	rasters = prepare_rasters(images, keys, profile, config.workers, verbose)

	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(page.page_width, page.page_height))
	pdf.setTitle(f"Pin sheet {profile.name}")
	current_page = -1
	for slot_index, position in enumerate(positions):
		if position.page != current_page:
			if current_page >= 0:
				pdf.showPage()
			current_page = position.page
			if verbose:
				print(f"Generating page {current_page + 1}/{total_pages}")
		key = keys[slot_index]
		raster = rasters[key] if key is not None else None
		text_index = assignment.text_index[slot_index]
		text_block = config.text_pins[text_index] if text_index is not None else []
		psm.render.draw_slot(
			pdf,
			raster,
			position,
			profile,
			styles[slot_index],
			text_block,
			config,
			page,
		)
	pdf.save()
	pdf_bytes = buffer.getvalue()

	pages = total_pages
	if config.calibration:
		pdf_bytes = prepend_calibration_page(pdf_bytes)
		pages += 1

	return GenerationResult(
		total_circles=total_circles,
		pages=pages,
		circles_per_page=profile.circles_per_page,
		unique_images=image_count,
		unique_text_pins=text_count,
		calibration=config.calibration,
		pdf_bytes=pdf_bytes,
	)


#============================================
def prepend_calibration_page(pdf_bytes: bytes) -> bytes:
	"""
	Insert the calibration page in front of a rendered sheet.

	Args:
		pdf_bytes: Rendered sheet PDF.

	Returns:
		PDF bytes with the calibration page first.
	"""
	writer = pypdf.PdfWriter()
	writer.add_page(psm.render.build_calibration_page(A4_PAGE))
	reader = pypdf.PdfReader(io.BytesIO(pdf_bytes))
	for sheet_page in reader.pages:
		writer.add_page(sheet_page)
	output = io.BytesIO()
	writer.write(output)
	return output.getvalue()


#============================================
def write_pin_pdf(
	images: list[ImageRef],
	output_path: pathlib.Path,
	config: PinSheetConfig,
	verbose: bool = True,
) -> GenerationResult:
	"""
	Generate the pin sheet and write it to disk.

	Nothing is written when generation fails.

	Args:
		images: Ordered source image references.
		output_path: Output PDF path.
		config: Sheet configuration.
		verbose: Print progress.

	Returns:
		GenerationResult.
	"""
	result = generate_pin_pdf(images, config, verbose)
	output_path.write_bytes(result.pdf_bytes)
	if verbose:
		print(f"PDF generated: {output_path}")
	return result


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	inputs: list[ImageRef],
	config: PinSheetConfig,
	result: GenerationResult,
) -> None:
	"""
	Write a manifest JSON file describing the generated sheet.

	Args:
		manifest_path: Output path.
		inputs: Source image references.
		config: Sheet configuration.
		result: Generation result.
	"""
	profile = psm.config.get_pin_profile(config.pin_size)
	assignment = psm.layout.build_slot_assignment(
		len(inputs),
		len(config.text_pins),
		result.total_circles,
		config.duplicate,
	)
	data = {
		"inputs": [psm.imaging.describe_image_ref(ref) for ref in inputs],
		"pin_size": profile.name,
		"total_circles": result.total_circles,
		"circles_per_page": result.circles_per_page,
		"pages": result.pages,
		"calibration": result.calibration,
		"slots": {
			"image_index": assignment.image_index,
			"text_index": assignment.text_index,
		},
		"layout": {
			"pin_diameter_mm": profile.pin_diameter_mm,
			"circle_diameter_mm": profile.circle_diameter_mm,
			"page_width": A4_PAGE.page_width,
			"page_height": A4_PAGE.page_height,
			"margin": A4_PAGE.margin,
			"spacing": A4_PAGE.spacing,
		},
		"style": {
			"fill": config.fill,
			"duplicate": config.duplicate,
			"background_color": config.background_color,
			"border_color": config.border_color,
			"border_width_mm": config.border_width_mm,
			"text_position": config.text_position,
			"text_color": config.text_color,
			"text_size": config.default_text_size,
			"text_outline_color": config.text_outline_color,
			"text_outline_width": config.text_outline_width,
		},
		"text_pins": [
			[{"text": line.text, "size": line.size} for line in block]
			for block in config.text_pins
		],
	}
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
