"""
Shared configuration, constants and data model.
"""

import dataclasses


MM_TO_POINTS = 2.83465
POINTS_PER_INCH = 72.0

DEFAULT_PIN_SIZE = "32mm"
TEXT_POSITIONS = ("top", "center", "bottom")
DEFAULT_TEXT_POSITION = "bottom"
DEFAULT_TEXT_COLOR = "white"
DEFAULT_TEXT_OUTLINE_COLOR = "black"
DEFAULT_TEXT_OUTLINE_WIDTH = 2.0
DEFAULT_TEXT_SIZE = 0.0
AUTO_TEXT_SIZE_DIVISOR = 8.0
TEXT_LINE_HEIGHT = 1.2
TEXT_ANCHOR_FACTOR = 0.6
FONT_TEXT = "Helvetica-Bold"
FONT_LABEL = "Helvetica"

CUT_LINE_COLOR = "black"
CUT_LINE_WIDTH = 1.0
GUIDE_LINE_COLOR = (0.5, 0.5, 0.5)
GUIDE_LINE_WIDTH = 0.5
GUIDE_DASH = (5, 5)

EDGE_ALPHA_THRESHOLD = 10
EDGE_MIN_SAMPLES = 100
EDGE_MAX_INSET_FRACTION = 0.1
EDGE_RING_COUNT = 5
EDGE_FALLBACK_COLOR = (255, 255, 255)
OFFSET_CANVAS_FACTOR = 1.5

PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 5

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".tif", ".tiff"}


class ConfigurationError(ValueError):
	"""
	Raised for invalid sheet options.
	"""


class ImageProcessingError(RuntimeError):
	"""
	Raised when a source image cannot be read or prepared.
	"""


@dataclasses.dataclass(frozen=True)
class PinProfile:
	name: str
	pin_diameter_mm: float
	circle_diameter_mm: float
	circles_per_page: int

	@property
	def pin_diameter_pt(self) -> float:
		return mm_to_points(self.pin_diameter_mm)

	@property
	def circle_diameter_pt(self) -> float:
		return mm_to_points(self.circle_diameter_mm)


@dataclasses.dataclass(frozen=True)
class PageGeometry:
	page_width: float
	page_height: float
	margin: float
	spacing: float


@dataclasses.dataclass(frozen=True)
class CirclePosition:
	x: float
	y: float
	page: int


@dataclasses.dataclass(frozen=True)
class TextLine:
	text: str
	size: float | None = None


@dataclasses.dataclass(frozen=True)
class EdgeColor:
	r: int
	g: int
	b: int

	def to_hex(self) -> str:
		return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


@dataclasses.dataclass
class SlotStyle:
	zoom: float | None = None
	offset_x: float | None = None
	offset_y: float | None = None
	fill_with_edge_color: bool | None = None
	background_color: str | None = None
	border_color: str | None = None
	border_width_mm: float | None = None


@dataclasses.dataclass
class SlotAssignment:
	image_index: list[int | None]
	text_index: list[int | None]


@dataclasses.dataclass
class PinSheetConfig:
	pin_size: str = DEFAULT_PIN_SIZE
	fill: bool = False
	duplicate: bool = False
	background_color: str = ""
	border_color: str = ""
	border_width_mm: float = 0.0
	text_pins: list[list[TextLine]] = dataclasses.field(default_factory=list)
	text_position: str = DEFAULT_TEXT_POSITION
	text_color: str = DEFAULT_TEXT_COLOR
	default_text_size: float = DEFAULT_TEXT_SIZE
	text_outline_color: str = DEFAULT_TEXT_OUTLINE_COLOR
	text_outline_width: float = DEFAULT_TEXT_OUTLINE_WIDTH
	zoom_levels: list[float] = dataclasses.field(default_factory=list)
	offset_x_values: list[float] = dataclasses.field(default_factory=list)
	offset_y_values: list[float] = dataclasses.field(default_factory=list)
	slot_styles: list[SlotStyle | None] = dataclasses.field(default_factory=list)
	calibration: bool = False
	draw_pin_guides: bool = False
	workers: int = 0


@dataclasses.dataclass
class GenerationResult:
	total_circles: int
	pages: int
	circles_per_page: int
	unique_images: int
	unique_text_pins: int
	calibration: bool
	pdf_bytes: bytes


PIN_PROFILES = {
	"32mm": PinProfile(
		name="32mm",
		pin_diameter_mm=32.0,
		circle_diameter_mm=43.0,
		circles_per_page=20,
	),
	"58mm": PinProfile(
		name="58mm",
		pin_diameter_mm=58.0,
		circle_diameter_mm=70.0,
		circles_per_page=6,
	),
}

# A4 portrait with a 10mm margin and 5mm between circles
A4_PAGE = PageGeometry(
	page_width=595.28,
	page_height=841.89,
	margin=28.35,
	spacing=14.17,
)


#============================================
def mm_to_points(value: float) -> float:
	"""
	Convert millimeters to points.

	Args:
		value: Millimeter value.

	Returns:
		Points value.
	"""
	return value * MM_TO_POINTS


#============================================
def get_pin_profile(pin_size: str) -> PinProfile:
	"""
	Look up a pin profile by size identifier.

	Args:
		pin_size: Size identifier such as "32mm".

	Returns:
		PinProfile.
	"""
	profile = PIN_PROFILES.get(pin_size)
	if profile is None:
		choices = ", ".join(sorted(PIN_PROFILES))
		raise ConfigurationError(f"Unknown pin size '{pin_size}' (expected one of: {choices})")
	return profile


#============================================
def validate_config(config: PinSheetConfig) -> PinProfile:
	"""
	Validate sheet options before any work is done.

	Args:
		config: Sheet configuration.

	Returns:
		The selected PinProfile.
	"""
	profile = get_pin_profile(config.pin_size)
	if config.border_width_mm < 0:
		raise ConfigurationError("Border width must be a non-negative number")
	if config.text_outline_width < 0:
		raise ConfigurationError("Text outline width must be a non-negative number")
	if config.default_text_size < 0:
		raise ConfigurationError("Text size must be a non-negative number")
	if config.text_position not in TEXT_POSITIONS:
		raise ConfigurationError(
			f"Text position must be one of {', '.join(TEXT_POSITIONS)}, got '{config.text_position}'"
		)
	for zoom in config.zoom_levels:
		if zoom <= 0:
			raise ConfigurationError(f"Zoom must be positive, got {zoom}")
	for style in config.slot_styles:
		if style is None:
			continue
		if style.zoom is not None and style.zoom <= 0:
			raise ConfigurationError(f"Zoom must be positive, got {style.zoom}")
		if style.border_width_mm is not None and style.border_width_mm < 0:
			raise ConfigurationError("Border width must be a non-negative number")
	for block in config.text_pins:
		for line in block:
			if line.size is not None and line.size <= 0:
				raise ConfigurationError(f"Text line size must be positive, got {line.size}")
	if config.workers < 0:
		raise ConfigurationError("Worker count must be zero (auto) or positive")
	return profile


#============================================
def resolve_slot_style(config: PinSheetConfig, slot_index: int) -> SlotStyle:
	"""
	Merge per-slot overrides with sheet-wide defaults.

	Explicit SlotStyle fields win over the per-slot zoom/offset lists,
	which win over the sheet defaults.

	Args:
		config: Sheet configuration.
		slot_index: Zero-based slot index.

	Returns:
		Fully populated SlotStyle.
	"""
	zoom = 1.0
	if slot_index < len(config.zoom_levels):
		zoom = config.zoom_levels[slot_index]
	offset_x = 0.0
	if slot_index < len(config.offset_x_values):
		offset_x = config.offset_x_values[slot_index]
	offset_y = 0.0
	if slot_index < len(config.offset_y_values):
		offset_y = config.offset_y_values[slot_index]
	resolved = SlotStyle(
		zoom=zoom,
		offset_x=offset_x,
		offset_y=offset_y,
		fill_with_edge_color=config.fill,
		background_color=config.background_color,
		border_color=config.border_color,
		border_width_mm=config.border_width_mm,
	)
	override = None
	if slot_index < len(config.slot_styles):
		override = config.slot_styles[slot_index]
	if override is None:
		return resolved
	changes = {
		field.name: getattr(override, field.name)
		for field in dataclasses.fields(SlotStyle)
		if getattr(override, field.name) is not None
	}
	return dataclasses.replace(resolved, **changes)
