"""
Grid preview rendering.
"""

# Standard Library
import pathlib

# PIP3 modules
import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont

# local repo modules
import tileprint as tp
import tileprint.config
import tileprint.grid


PaperProfile = tp.config.PaperProfile
PhysicalSpec = tp.config.PhysicalSpec
OverlapSpec = tp.config.OverlapSpec
TileGrid = tp.config.TileGrid

PREVIEW_MAX_SIZE = tp.config.PREVIEW_MAX_SIZE
PREVIEW_LINE_COLOR = tp.config.PREVIEW_LINE_COLOR
PREVIEW_DASH_LENGTH = tp.config.PREVIEW_DASH_LENGTH
PREVIEW_CAPTION_FILL = tp.config.PREVIEW_CAPTION_FILL
PREVIEW_CAPTION_TEXT = tp.config.PREVIEW_CAPTION_TEXT


#============================================
def compute_preview_size(target: PhysicalSpec, max_size: int) -> tuple[int, int]:
	"""
	Fit the physical target aspect into a max_size box.

	Args:
		target: Physical target size.
		max_size: Longest preview side in pixels.

	Returns:
		Tuple of (width, height) in pixels.
	"""
	aspect = target.target_width / target.target_height
	if aspect >= 1.0:
		width = max_size
		height = max(1, int(round(max_size / aspect)))
	else:
		height = max_size
		width = max(1, int(round(max_size * aspect)))
	return (width, height)


#============================================
def format_inches(value: float) -> str:
	"""
	Format an inch value without a trailing ".0".
	"""
	return f"{value:g}"


#============================================
def build_caption(target: PhysicalSpec, paper: PaperProfile, grid: TileGrid) -> str:
	"""
	Caption text like '15" x 20" - 4 Pages (A4)'.
	"""
	width_text = format_inches(target.target_width)
	height_text = format_inches(target.target_height)
	return f'{width_text}" x {height_text}" - {grid.tile_count} Pages ({paper.name})'


#============================================
def draw_dashed_line(
	draw: PIL.ImageDraw.ImageDraw,
	start: tuple[int, int],
	end: tuple[int, int],
	color: tuple[int, int, int],
	dash: int,
) -> None:
	"""
	Draw an axis-aligned dashed line.

	Args:
		draw: ImageDraw instance.
		start: Start point.
		end: End point, sharing one coordinate with start.
		color: RGB color.
		dash: Dash and gap length in pixels.
	"""
	x0, y0 = start
	x1, y1 = end
	if x0 == x1:
		for y in range(y0, y1, dash * 2):
			draw.line((x0, y, x0, min(y + dash - 1, y1)), fill=color, width=1)
	else:
		for x in range(x0, x1, dash * 2):
			draw.line((x, y0, min(x + dash - 1, x1), y0), fill=color, width=1)


#============================================
def render_grid_preview(
	source: PIL.Image.Image,
	target: PhysicalSpec,
	paper: PaperProfile,
	overlap: OverlapSpec,
	max_size: int = PREVIEW_MAX_SIZE,
) -> PIL.Image.Image:
	"""
	Render the source at the target aspect with page boundaries overlaid.

	Grid lines sit at even fractions of the preview, one per page boundary,
	with a caption naming the physical size and page count.

	Args:
		source: Source bitmap.
		target: Physical target size.
		paper: Paper profile.
		overlap: Overlap spec.
		max_size: Longest preview side in pixels.

	Returns:
		RGB preview image.
	"""
	grid = tp.grid.plan_for_source(source.width, source.height, target, paper, overlap)
	size = compute_preview_size(target, max_size)
	preview = source.convert("RGB").resize(size, PIL.Image.Resampling.BILINEAR)
	draw = PIL.ImageDraw.Draw(preview)
	width, height = size

	for index in range(1, grid.columns):
		x = int(round(index / grid.columns * width))
		draw_dashed_line(draw, (x, 0), (x, height - 1), PREVIEW_LINE_COLOR, PREVIEW_DASH_LENGTH)
	for index in range(1, grid.rows):
		y = int(round(index / grid.rows * height))
		draw_dashed_line(draw, (0, y), (width - 1, y), PREVIEW_LINE_COLOR, PREVIEW_DASH_LENGTH)

	caption = build_caption(target, paper, grid)
	font = PIL.ImageFont.load_default()
	x0, y0, x1, y1 = draw.textbbox((8, 8), caption, font=font)
	draw.rectangle((x0 - 4, y0 - 2, x1 + 4, y1 + 2), fill=PREVIEW_CAPTION_FILL)
	draw.text((8, 8), caption, fill=PREVIEW_CAPTION_TEXT, font=font)
	return preview


#============================================
def write_grid_preview(preview: PIL.Image.Image, output_path: pathlib.Path) -> None:
	"""
	Save a preview image, format chosen by file extension.

	Args:
		preview: Preview image.
		output_path: Output path.
	"""
	output_path.parent.mkdir(parents=True, exist_ok=True)
	preview.save(output_path)
