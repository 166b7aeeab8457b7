"""
Tile rasterization, registration marks, encoding, and the tiling engine.
"""

# Standard Library
import concurrent.futures
import io
import os
import threading

# PIP3 modules
import PIL.Image
import PIL.ImageDraw

# local repo modules
import tileprint as tp
import tileprint.config
import tileprint.grid
import tileprint.source


PaperProfile = tp.config.PaperProfile
PhysicalSpec = tp.config.PhysicalSpec
OverlapSpec = tp.config.OverlapSpec
TileGrid = tp.config.TileGrid
Tile = tp.config.Tile
TileFailure = tp.config.TileFailure
TileRunResult = tp.config.TileRunResult
EncodeFailure = tp.config.EncodeFailure
TilingCancelled = tp.config.TilingCancelled

BACKGROUND_COLOR = tp.config.BACKGROUND_COLOR
MARK_COLOR = tp.config.MARK_COLOR
MARK_LENGTH = tp.config.MARK_LENGTH
MARK_THICKNESS = tp.config.MARK_THICKNESS
JPEG_QUALITY = tp.config.JPEG_QUALITY
DEFAULT_MAX_WORKERS = tp.config.DEFAULT_MAX_WORKERS
IN_FLIGHT_PER_WORKER = tp.config.IN_FLIGHT_PER_WORKER
PROGRESS_BAR_WIDTH = tp.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = tp.config.PROGRESS_UPDATE_EVERY


#============================================
def format_progress(current: int, total: int) -> str:
	"""
	Format a tile progress bar like "Tiles [#####-----] 4/8 (50%)".

	Args:
		current: Tiles finished.
		total: Tiles in the grid.

	Returns:
		Progress line, empty when the grid is empty.
	"""
	if total <= 0:
		return ""
	percent = (current * 100) // total
	filled = (current * PROGRESS_BAR_WIDTH) // total
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	return f"Tiles [{bar}] {current}/{total} ({percent}%)"


def show_progress(current: int, total: int) -> None:
	line = format_progress(current, total)
	if line:
		print(line, end="\r")


#============================================
def has_transparency(image: PIL.Image.Image) -> bool:
	"""
	Check whether an image carries alpha, a transparent palette entry, or a
	colour key (PNG tRNS on RGB, L, or I;16 data).
	"""
	if image.mode in ("RGBA", "LA", "RGBa", "La", "PA"):
		return True
	return "transparency" in image.info


#============================================
def rasterize_tile(
	source: PIL.Image.Image,
	grid: TileGrid,
	col: int,
	row: int,
) -> PIL.Image.Image:
	"""
	Render one grid cell onto a white paper-sized buffer.

	The source region is copied 1:1. Anything past the source bounds keeps
	the white fill.

	Args:
		source: Source bitmap.
		grid: Planned grid.
		col: Column index.
		row: Row index.

	Returns:
		RGB tile image of size (tile_width, tile_height).
	"""
	canvas = PIL.Image.new("RGB", (grid.tile_width, grid.tile_height), BACKGROUND_COLOR)
	src_x, src_y = tp.grid.source_origin(grid, col, row)

	left = max(0, src_x)
	top = max(0, src_y)
	right = min(source.width, src_x + grid.tile_width)
	bottom = min(source.height, src_y + grid.tile_height)
	if right <= left or bottom <= top:
		return canvas

	region = source.crop((left, top, right, bottom))
	offset = (left - src_x, top - src_y)
	if has_transparency(region):
		region = region.convert("RGBA")
		canvas.paste(region, offset, region)
	else:
		canvas.paste(region.convert("RGB"), offset)
	return canvas


#============================================
def draw_registration_marks(image: PIL.Image.Image, paper: PaperProfile) -> None:
	"""
	Draw L-shaped alignment marks at the top-left and bottom-right corners.

	Borderless paper is left untouched.

	Args:
		image: Tile image, modified in place.
		paper: Paper profile.
	"""
	if paper.is_borderless:
		return
	width, height = image.size
	length_x = min(MARK_LENGTH, width)
	length_y = min(MARK_LENGTH, height)
	thick_x = min(MARK_THICKNESS, width)
	thick_y = min(MARK_THICKNESS, height)
	draw = PIL.ImageDraw.Draw(image)

	# top-left: right and down
	draw.rectangle((0, 0, length_x - 1, thick_y - 1), fill=MARK_COLOR)
	draw.rectangle((0, 0, thick_x - 1, length_y - 1), fill=MARK_COLOR)

	# bottom-right: left and up
	draw.rectangle((width - length_x, height - thick_y, width - 1, height - 1), fill=MARK_COLOR)
	draw.rectangle((width - thick_x, height - length_y, width - 1, height - 1), fill=MARK_COLOR)


#============================================
def encode_tile(image: PIL.Image.Image, tile_id: str) -> bytes:
	"""
	Serialize a tile raster to JPEG bytes.

	Args:
		image: Tile image.
		tile_id: Tile identifier used in error reports.

	Returns:
		Encoded JPEG bytes.
	"""
	buffer = io.BytesIO()
	try:
		image.save(buffer, format="JPEG", quality=JPEG_QUALITY)
	except (OSError, ValueError) as error:
		raise EncodeFailure(tile_id, str(error)) from error
	data = buffer.getvalue()
	if not data:
		raise EncodeFailure(tile_id, "encoder produced no data")
	return data


#============================================
def render_tile(
	source: PIL.Image.Image,
	grid: TileGrid,
	paper: PaperProfile,
	col: int,
	row: int,
	cancel_event: threading.Event | None = None,
) -> Tile | None:
	"""
	Rasterize, mark, and encode one cell.

	Args:
		source: Source bitmap.
		grid: Planned grid.
		paper: Paper profile.
		col: Column index.
		row: Row index.
		cancel_event: Optional cancellation flag.

	Returns:
		Tile, or None when the run was cancelled before this cell started.
	"""
	if cancel_event is not None and cancel_event.is_set():
		return None
	image = rasterize_tile(source, grid, col, row)
	draw_registration_marks(image, paper)
	tile_id = tp.config.format_tile_id(col, row)
	data = encode_tile(image, tile_id)
	return Tile(
		column_index=col,
		row_index=row,
		width=image.width,
		height=image.height,
		data=data,
	)


#============================================
def default_workers() -> int:
	"""
	Worker count bounded by the CPU count.
	"""
	return max(1, min(DEFAULT_MAX_WORKERS, os.cpu_count() or 1))


#============================================
def tile_image(
	source: PIL.Image.Image,
	target: PhysicalSpec,
	paper: PaperProfile,
	overlap: OverlapSpec,
	workers: int | None = None,
	max_in_flight: int | None = None,
	cancel_event: threading.Event | None = None,
	verbose: bool = False,
) -> TileRunResult:
	"""
	Split a source image into paper-sized tiles.

	Cells are rendered on a thread pool with a bounded number of cells in
	flight. Tiles come back in row-major order regardless of completion
	order. Cells whose encoding fails are reported in the result failures.

	Args:
		source: Decoded source bitmap.
		target: Physical size of the assembled print.
		paper: Paper profile.
		overlap: Overlap between adjacent tiles.
		workers: Thread count, defaults to the CPU count capped at 4.
		max_in_flight: Cells submitted at once, defaults to twice the workers.
		cancel_event: Set to abort the run; raises TilingCancelled.
		verbose: Print progress and a summary.

	Returns:
		TileRunResult.
	"""
	tp.source.validate_source(source)
	grid = tp.grid.plan_for_source(source.width, source.height, target, paper, overlap)

	if workers is None:
		workers = default_workers()
	workers = max(1, workers)
	if max_in_flight is None:
		max_in_flight = workers * IN_FLIGHT_PER_WORKER
	max_in_flight = max(1, max_in_flight)

	cells = [(col, row) for row in range(grid.rows) for col in range(grid.columns)]
	total = len(cells)
	if verbose:
		print(
			f"Grid: {grid.columns} x {grid.rows} tiles of {grid.tile_width} x {grid.tile_height} px "
			f"(PPI {grid.width_ppi:.1f} x {grid.height_ppi:.1f})"
		)
		show_progress(0, total)

	tiles: list[Tile] = []
	failures: list[TileFailure] = []
	done_count = 0

	def cancelled() -> bool:
		return cancel_event is not None and cancel_event.is_set()

	def collect(future: concurrent.futures.Future, cell: tuple[int, int]) -> None:
		nonlocal done_count
		col, row = cell
		try:
			tile = future.result()
		except EncodeFailure as error:
			failures.append(
				TileFailure(
					column_index=col,
					row_index=row,
					tile_id=error.tile_id,
					message=str(error),
				)
			)
		else:
			if tile is not None:
				tiles.append(tile)
		done_count += 1
		if verbose and (done_count % PROGRESS_UPDATE_EVERY == 0 or done_count == total):
			show_progress(done_count, total)

	with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
		pending: dict[concurrent.futures.Future, tuple[int, int]] = {}
		try:
			for cell in cells:
				if cancelled():
					break
				while len(pending) >= max_in_flight:
					done, _ = concurrent.futures.wait(
						pending,
						return_when=concurrent.futures.FIRST_COMPLETED,
					)
					for future in done:
						collect(future, pending.pop(future))
				if cancelled():
					break
				col, row = cell
				future = pool.submit(render_tile, source, grid, paper, col, row, cancel_event)
				pending[future] = cell
			for future in concurrent.futures.as_completed(list(pending)):
				collect(future, pending.pop(future))
		finally:
			for future in pending:
				future.cancel()

	if verbose and total > 0:
		print()
	if cancelled():
		tiles.clear()
		failures.clear()
		raise TilingCancelled(f"Tiling cancelled after {done_count} of {total} tiles")

	tiles.sort(key=lambda tile: (tile.row_index, tile.column_index))
	failures.sort(key=lambda failure: (failure.row_index, failure.column_index))
	if verbose:
		print(f"Tiles rendered: {len(tiles)}/{total}")
		if failures:
			print(f"Encode failures: {len(failures)} tiles")
			for failure in failures:
				print(f"  {failure.message}")
	return TileRunResult(grid=grid, tiles=tiles, failures=failures)
