"""
Circle grid layout and slot distribution.
"""

# Standard Library
import dataclasses
import math

# local repo modules
import pin_sheet_maker as psm
import pin_sheet_maker.config


PinProfile = psm.config.PinProfile
PageGeometry = psm.config.PageGeometry
CirclePosition = psm.config.CirclePosition
SlotAssignment = psm.config.SlotAssignment

A4_PAGE = psm.config.A4_PAGE


@dataclasses.dataclass
class PageGrid:
	rows: int
	cols: int
	start_x: float
	start_y: float


#============================================
def calculate_page_layout(
	circle_count: int,
	circle_diameter: float,
	page: PageGeometry = A4_PAGE,
) -> PageGrid:
	"""
	Pick a grid shape for one page and center it.

	Scans column counts from one upward and keeps the first that fits the
	printable height, so portrait pages get tall, narrow grids. When no
	column count fits, the square-ish default is kept.

	Args:
		circle_count: Circles on this page.
		circle_diameter: Circle diameter in points.
		page: Page geometry.

	Returns:
		PageGrid with rows, columns and the top-left grid origin.
	"""
	available_width = page.page_width - 2.0 * page.margin
	available_height = page.page_height - 2.0 * page.margin
	step = circle_diameter + page.spacing

	max_cols = int(math.floor((available_width + page.spacing) / step))

	best_cols = max(1, int(math.ceil(math.sqrt(circle_count))))
	best_rows = int(math.ceil(circle_count / best_cols))

	for cols in range(1, max_cols + 1):
		rows = int(math.ceil(circle_count / cols))
		height_used = rows * circle_diameter + (rows - 1) * page.spacing
		if height_used <= available_height:
			best_cols = cols
			best_rows = rows
			break

	width_used = best_cols * circle_diameter + (best_cols - 1) * page.spacing
	height_used = best_rows * circle_diameter + (best_rows - 1) * page.spacing
	start_x = (page.page_width - width_used) / 2.0
	start_y = (page.page_height - height_used) / 2.0
	return PageGrid(rows=best_rows, cols=best_cols, start_x=start_x, start_y=start_y)


#============================================
def calculate_layout(
	total_circles: int,
	profile: PinProfile,
	page: PageGeometry = A4_PAGE,
) -> list[CirclePosition]:
	"""
	Compute the center and page of every circle.

	Args:
		total_circles: Number of circles to place.
		profile: Pin profile.
		page: Page geometry.

	Returns:
		List of CirclePosition in slot order.
	"""
	positions: list[CirclePosition] = []
	if total_circles <= 0:
		return positions

	circle_diameter = profile.circle_diameter_pt
	per_page = profile.circles_per_page
	total_pages = int(math.ceil(total_circles / per_page))
	step = circle_diameter + page.spacing

	for page_index in range(total_pages):
		circles_on_page = min(per_page, total_circles - page_index * per_page)
		grid = calculate_page_layout(circles_on_page, circle_diameter, page)
		for index in range(circles_on_page):
			row = index // grid.cols
			col = index % grid.cols
			x = grid.start_x + col * step + circle_diameter / 2.0
			y = grid.start_y + row * step + circle_diameter / 2.0
			positions.append(CirclePosition(x=x, y=y, page=page_index))
	return positions


#============================================
def get_total_pages(positions: list[CirclePosition]) -> int:
	"""
	Count pages spanned by a layout.

	Args:
		positions: Circle positions.

	Returns:
		Page count, 0 for an empty layout.
	"""
	if not positions:
		return 0
	return max(position.page for position in positions) + 1


#============================================
def create_distribution(item_count: int, total_slots: int) -> list[int]:
	"""
	Spread items over slots by even, contiguous duplication.

	Each item gets total_slots // item_count copies and the first
	total_slots % item_count items get one more. Copies of one item are
	grouped together in slot order. When there are more items than slots
	the first total_slots items map one-to-one and the rest are unused.

	Args:
		item_count: Number of available items.
		total_slots: Number of slots to fill.

	Returns:
		Item index for each slot.
	"""
	distribution: list[int] = []
	if item_count <= 0:
		return distribution
	if item_count > total_slots:
		return list(range(total_slots))

	copies_per_item = total_slots // item_count
	remainder = total_slots % item_count
	for item_index in range(item_count):
		copies = copies_per_item
		if item_index < remainder:
			copies += 1
		distribution.extend([item_index] * copies)
	return distribution


#============================================
def identity_distribution(item_count: int, total_slots: int) -> list[int | None]:
	"""
	Map slot i to item i, leaving slots past the last item empty.

	Args:
		item_count: Number of available items.
		total_slots: Number of slots.

	Returns:
		Item index or None for each slot.
	"""
	return [index if index < item_count else None for index in range(total_slots)]


#============================================
def compute_total_circles(
	image_count: int,
	text_count: int,
	circles_per_page: int,
	duplicate: bool,
) -> int:
	"""
	Decide how many circles the sheet holds.

	Args:
		image_count: Number of source images.
		text_count: Number of text blocks.
		circles_per_page: Circles per page for the profile.
		duplicate: Whether to fill remaining slots with copies.

	Returns:
		Total circle count.
	"""
	if image_count > 0:
		if duplicate:
			return max(image_count, circles_per_page)
		return image_count
	if text_count > 0:
		if duplicate:
			return max(text_count, circles_per_page)
		return text_count
	return circles_per_page


#============================================
def build_slot_assignment(
	image_count: int,
	text_count: int,
	total_slots: int,
	duplicate: bool,
) -> SlotAssignment:
	"""
	Map every slot to a source image and a text block.

	Images and text are distributed independently against the same slot
	count, so when their counts differ a duplicated image can sit next to
	text from a different position in the cycle.

	Args:
		image_count: Number of source images.
		text_count: Number of text blocks.
		total_slots: Total circle count.
		duplicate: Whether duplication is enabled.

	Returns:
		SlotAssignment.
	"""
	if image_count > 0 and duplicate:
		image_index: list[int | None] = list(create_distribution(image_count, total_slots))
	else:
		image_index = identity_distribution(image_count, total_slots)

	# with images present a single text block labels every pin
	if text_count > 0 and (image_count > 0 or duplicate):
		text_index: list[int | None] = list(create_distribution(text_count, total_slots))
	else:
		text_index = identity_distribution(text_count, total_slots)

	image_index = pad_distribution(image_index, total_slots)
	text_index = pad_distribution(text_index, total_slots)
	return SlotAssignment(image_index=image_index, text_index=text_index)


#============================================
def pad_distribution(distribution: list[int | None], total_slots: int) -> list[int | None]:
	"""
	Pad or trim a distribution so it covers exactly total_slots.

	Args:
		distribution: Item index per slot.
		total_slots: Slot count.

	Returns:
		Distribution of length total_slots.
	"""
	padded = list(distribution[:total_slots])
	padded.extend([None] * (total_slots - len(padded)))
	return padded
