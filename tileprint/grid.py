"""
Scale resolution and grid planning.
"""

# Standard Library
import math

# local repo modules
import tileprint as tp
import tileprint.config


PaperProfile = tp.config.PaperProfile
PhysicalSpec = tp.config.PhysicalSpec
OverlapSpec = tp.config.OverlapSpec
TileGrid = tp.config.TileGrid
InvalidSpec = tp.config.InvalidSpec

ORIGIN_TOLERANCE = tp.config.ORIGIN_TOLERANCE


#============================================
def resolve_scale(
	source_width: int,
	source_height: int,
	target: PhysicalSpec,
) -> tuple[float, float]:
	"""
	Compute horizontal and vertical pixels per inch.

	The two factors are independent, so a source whose aspect differs from
	the target is stretched to the exact physical size.

	Args:
		source_width: Source width in pixels.
		source_height: Source height in pixels.
		target: Physical target size.

	Returns:
		Tuple of (width_ppi, height_ppi).
	"""
	if target.target_width <= 0 or target.target_height <= 0:
		raise InvalidSpec(
			f"Target size must be positive, got {target.target_width} x {target.target_height} in"
		)
	width_ppi = source_width / target.target_width
	height_ppi = source_height / target.target_height
	return (width_ppi, height_ppi)


#============================================
def validate_overlap(paper: PaperProfile, overlap: OverlapSpec) -> None:
	"""
	Reject overlaps that would stall or invert the grid.

	Args:
		paper: Paper profile.
		overlap: Overlap spec.
	"""
	if overlap.overlap < 0:
		raise InvalidSpec(f"Overlap must not be negative, got {overlap.overlap} in")
	smallest = min(paper.width, paper.height)
	if overlap.overlap >= smallest:
		raise InvalidSpec(
			f"Overlap {overlap.overlap} in must be smaller than the paper ({paper.name}, {smallest} in)"
		)


#============================================
def plan_grid(
	source_width: int,
	source_height: int,
	width_ppi: float,
	height_ppi: float,
	paper: PaperProfile,
	overlap: OverlapSpec,
) -> TileGrid:
	"""
	Plan the tile grid for a source at a given scale.

	Args:
		source_width: Source width in pixels.
		source_height: Source height in pixels.
		width_ppi: Horizontal pixels per inch.
		height_ppi: Vertical pixels per inch.
		paper: Paper profile.
		overlap: Overlap spec.

	Returns:
		TileGrid.
	"""
	validate_overlap(paper, overlap)

	tile_width = int(round(paper.width * width_ppi))
	tile_height = int(round(paper.height * height_ppi))
	step_x = (paper.width - overlap.overlap) * width_ppi
	step_y = (paper.height - overlap.overlap) * height_ppi
	if step_x <= 0 or step_y <= 0:
		raise InvalidSpec(f"Tile step must advance, got {step_x:.3f} x {step_y:.3f} px")
	if tile_width <= 0 or tile_height <= 0:
		raise InvalidSpec(
			f"Tile raster is empty ({tile_width} x {tile_height} px); source too small for target"
		)

	columns = max(1, math.ceil(source_width / step_x))
	rows = max(1, math.ceil(source_height / step_y))
	return TileGrid(
		columns=columns,
		rows=rows,
		step_x=step_x,
		step_y=step_y,
		tile_width=tile_width,
		tile_height=tile_height,
		width_ppi=width_ppi,
		height_ppi=height_ppi,
	)


#============================================
def plan_for_source(
	source_width: int,
	source_height: int,
	target: PhysicalSpec,
	paper: PaperProfile,
	overlap: OverlapSpec,
) -> TileGrid:
	"""
	Resolve scale and plan the grid in one step.

	Args:
		source_width: Source width in pixels.
		source_height: Source height in pixels.
		target: Physical target size.
		paper: Paper profile.
		overlap: Overlap spec.

	Returns:
		TileGrid.
	"""
	width_ppi, height_ppi = resolve_scale(source_width, source_height, target)
	return plan_grid(source_width, source_height, width_ppi, height_ppi, paper, overlap)


#============================================
def source_origin(grid: TileGrid, col: int, row: int) -> tuple[int, int]:
	"""
	Pixel origin of a cell's source region.

	The fractional step is floored so the last column or row always starts
	inside the source and keeps its sliver of image. ORIGIN_TOLERANCE absorbs
	float error such as 1603.9999999 for a 1604 px step.
	"""
	src_x = math.floor(col * grid.step_x + ORIGIN_TOLERANCE)
	src_y = math.floor(row * grid.step_y + ORIGIN_TOLERANCE)
	return (src_x, src_y)
