"""
CLI entry points for pin sheet generation.
"""

# Standard Library
import argparse
import pathlib
import re
import sys
import time

# local repo modules
import pin_sheet_maker as psm
import pin_sheet_maker.config
import pin_sheet_maker.document


PinSheetConfig = psm.config.PinSheetConfig
TextLine = psm.config.TextLine
ConfigurationError = psm.config.ConfigurationError
ImageProcessingError = psm.config.ImageProcessingError

PIN_PROFILES = psm.config.PIN_PROFILES
TEXT_POSITIONS = psm.config.TEXT_POSITIONS
IMAGE_EXTENSIONS = psm.config.IMAGE_EXTENSIONS
DEFAULT_PIN_SIZE = psm.config.DEFAULT_PIN_SIZE
DEFAULT_TEXT_POSITION = psm.config.DEFAULT_TEXT_POSITION
DEFAULT_TEXT_COLOR = psm.config.DEFAULT_TEXT_COLOR
DEFAULT_TEXT_SIZE = psm.config.DEFAULT_TEXT_SIZE
DEFAULT_TEXT_OUTLINE_COLOR = psm.config.DEFAULT_TEXT_OUTLINE_COLOR
DEFAULT_TEXT_OUTLINE_WIDTH = psm.config.DEFAULT_TEXT_OUTLINE_WIDTH

TEXT_FLAG = "--text"
SIZE_PATTERN = re.compile(r"^\d+(\.\d+)?$")


#============================================
def parse_text_arguments(argv: list[str]) -> tuple[list[list[TextLine]], set[int]]:
	"""
	Pull repeated --text blocks out of a raw argument list.

	Every --text flag starts one text block. Following arguments up to the
	next flag are lines. A numeric argument directly after a line that has
	no size yet sets that line's size.

	Args:
		argv: Raw command line arguments.

	Returns:
		Tuple of (text blocks, indices of consumed arguments).
	"""
	text_pins: list[list[TextLine]] = []
	consumed: set[int] = set()
	index = 0
	while index < len(argv):
		if argv[index] != TEXT_FLAG:
			index += 1
			continue
		consumed.add(index)
		index += 1
		lines: list[TextLine] = []
		while index < len(argv) and not argv[index].startswith("-"):
			token = argv[index]
			if lines and lines[-1].size is None and SIZE_PATTERN.match(token):
				lines[-1] = TextLine(text=lines[-1].text, size=float(token))
			else:
				lines.append(TextLine(text=token))
			consumed.add(index)
			index += 1
		if lines:
			text_pins.append(lines)
	return (text_pins, consumed)


#============================================
def gather_image_paths(inputs: list[str]) -> list[pathlib.Path]:
	"""
	Expand input files and directories into image paths.

	Args:
		inputs: Paths to image files or directories.

	Returns:
		Image paths in argument order, directories sorted by name.
	"""
	paths: list[pathlib.Path] = []
	missing: list[str] = []
	for value in inputs:
		path = pathlib.Path(value)
		if path.is_dir():
			found = sorted(
				entry for entry in path.iterdir()
				if entry.is_file() and entry.suffix.lower() in IMAGE_EXTENSIONS
			)
			paths.extend(found)
			continue
		if not path.is_file():
			missing.append(value)
			continue
		paths.append(path)
	if missing:
		listing = "\n".join(f"  - {value}" for value in missing)
		raise ConfigurationError(f"The following image files do not exist:\n{listing}")
	return paths


#============================================
def build_config(args: argparse.Namespace, text_pins: list[list[TextLine]]) -> PinSheetConfig:
	"""
	Build sheet config from CLI args.

	Args:
		args: Parsed argparse namespace.
		text_pins: Text blocks from --text flags.

	Returns:
		PinSheetConfig.
	"""
	config = PinSheetConfig(
		pin_size=args.pin_size,
		fill=args.fill,
		duplicate=args.duplicate,
		background_color=args.background_color,
		border_color=args.border_color,
		border_width_mm=args.border_width,
		text_pins=text_pins,
		text_position=args.text_position,
		text_color=args.text_color,
		default_text_size=args.text_size,
		text_outline_color=args.text_outline,
		text_outline_width=args.text_outline_width,
		zoom_levels=list(args.zoom_levels or []),
		offset_x_values=list(args.offset_x_values or []),
		offset_y_values=list(args.offset_y_values or []),
		calibration=args.calibration,
		draw_pin_guides=args.pin_guides,
		workers=args.workers,
	)
	return config


#============================================
def parse_args(argv: list[str] | None = None) -> tuple[argparse.Namespace, list[list[TextLine]]]:
	"""
	Parse command line arguments.

	Args:
		argv: Arguments without the program name, defaults to sys.argv.

	Returns:
		Tuple of (parsed argparse namespace, text blocks).
	"""
	if argv is None:
		argv = sys.argv[1:]
	text_pins, consumed = parse_text_arguments(argv)
	remaining = [value for index, value in enumerate(argv) if index not in consumed]

	parser = argparse.ArgumentParser(
		description="Generate printable PDF sheets of circular pin/button templates.",
		epilog=(
			"Text: --text LINE [SIZE] [LINE [SIZE] ...] adds one text block; "
			"repeat --text for one block per pin."
		),
	)
	parser.add_argument("inputs", nargs="*", help="Image files or directories (omit for a blank template).")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", default="pins.pdf", help="Output PDF path.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")

	layout_group = parser.add_argument_group("Layout")
	layout_group.add_argument(
		"-s", "--size", dest="pin_size", choices=sorted(PIN_PROFILES), default=DEFAULT_PIN_SIZE,
		help="Pin size.",
	)
	layout_group.add_argument("-d", "--duplicate", dest="duplicate", action="store_true", help="Duplicate images to fill the page.")
	layout_group.add_argument("-D", "--no-duplicate", dest="duplicate", action="store_false", help="One circle per image.")
	layout_group.add_argument("-c", "--calibration", dest="calibration", action="store_true", help="Add a calibration page.")
	layout_group.add_argument("-C", "--no-calibration", dest="calibration", action="store_false", help="Disable calibration page.")
	layout_group.add_argument("-g", "--pin-guides", dest="pin_guides", action="store_true", help="Draw dashed pin-size guide circles.")

	style_group = parser.add_argument_group("Background and border")
	style_group.add_argument("-f", "--fill", dest="fill", action="store_true", help="Fill background with the average edge color.")
	style_group.add_argument("-F", "--no-fill", dest="fill", action="store_false", help="Leave the background empty.")
	style_group.add_argument("--background-color", dest="background_color", default="", help="Background color (hex, rgb() or name).")
	style_group.add_argument("--border-color", dest="border_color", default="", help="Border ring color.")
	style_group.add_argument(
		"--border-width", dest="border_width", type=float, default=0.0,
		help="Border width in mm, extending inward from the cutting circle.",
	)

	text_group = parser.add_argument_group("Text")
	text_group.add_argument(
		"--text-position", dest="text_position", choices=TEXT_POSITIONS, default=DEFAULT_TEXT_POSITION,
		help="Vertical text anchor.",
	)
	text_group.add_argument("--text-color", dest="text_color", default=DEFAULT_TEXT_COLOR, help="Text color.")
	text_group.add_argument(
		"--text-size", dest="text_size", type=float, default=DEFAULT_TEXT_SIZE,
		help="Default text size in points (0 scales with the pin).",
	)
	text_group.add_argument("--text-outline", dest="text_outline", default=DEFAULT_TEXT_OUTLINE_COLOR, help="Text outline color.")
	text_group.add_argument(
		"--text-outline-width", dest="text_outline_width", type=float, default=DEFAULT_TEXT_OUTLINE_WIDTH,
		help="Text outline width in points (0 disables).",
	)

	framing_group = parser.add_argument_group("Framing (per circle, repeat in slot order)")
	framing_group.add_argument("--zoom", dest="zoom_levels", type=float, action="append", help="Zoom factor.")
	framing_group.add_argument("--offset-x", dest="offset_x_values", type=float, action="append", help="Horizontal offset in pixels.")
	framing_group.add_argument("--offset-y", dest="offset_y_values", type=float, action="append", help="Vertical offset in pixels.")

	perf_group = parser.add_argument_group("Performance")
	perf_group.add_argument("-w", "--workers", dest="workers", type=int, default=0, help="Image preparation threads (0 = auto).")

	parser.set_defaults(
		duplicate=False,
		calibration=False,
		pin_guides=False,
		fill=False,
	)

	args = parser.parse_args(remaining)
	if args.border_width < 0:
		parser.error("--border-width must be a non-negative number")
	if args.text_outline_width < 0:
		parser.error("--text-outline-width must be a non-negative number")
	if args.text_size < 0:
		parser.error("--text-size must be a non-negative number")
	if args.workers < 0:
		parser.error("--workers must be zero or positive")
	return (args, text_pins)


#============================================
def run_pipeline(args: argparse.Namespace, text_pins: list[list[TextLine]]) -> None:
	"""
	Run the full pipeline from CLI args to a written PDF.

	Args:
		args: Parsed argparse namespace.
		text_pins: Text blocks from --text flags.
	"""
	print("Pin sheet generator")
	print(f"Output PDF: {args.output_path}")
	if args.manifest_path:
		print(f"Manifest: {args.manifest_path}")
	print(f"Pin size: {args.pin_size}")
	print(f"Duplicate: {args.duplicate}")
	print(f"Fill: {args.fill}")
	print(f"Calibration: {args.calibration}")
	if text_pins:
		print(f"Text blocks: {len(text_pins)}")

	start_time = time.perf_counter()
	paths = gather_image_paths(args.inputs)
	print(f"Images found: {len(paths)}")

	config = build_config(args, text_pins)
	output_path = pathlib.Path(args.output_path).resolve()
	result = psm.document.write_pin_pdf(paths, output_path, config)
	print(f"Pages written: {result.pages}")
	print(f"Circles: {result.total_circles}")

	if args.manifest_path:
		manifest_path = pathlib.Path(args.manifest_path)
		psm.document.write_manifest(manifest_path, paths, config, result)
		print(f"Manifest written: {manifest_path}")

	total_time = time.perf_counter() - start_time
	print(f"Timing: total={total_time:.2f}s")


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.

	Args:
		argv: Arguments without the program name.

	Returns:
		Process exit status.
	"""
	args, text_pins = parse_args(argv)
	try:
		run_pipeline(args, text_pins)
	except (ConfigurationError, ImageProcessingError) as error:
		print(f"Error: {error}", file=sys.stderr)
		return 1
	return 0
