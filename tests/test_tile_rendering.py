import io
import pathlib
import threading
import time

import PIL.Image
import pytest

import tileprint.config
import tileprint.grid
import tileprint.render
import tileprint.source


A4 = tileprint.config.get_paper_profile("A4")
A4_BORDERLESS = tileprint.config.get_paper_profile("A4 Borderless")
SOURCE_COLOR = (20, 60, 160)
WHITE = tileprint.config.BACKGROUND_COLOR
MARK = tileprint.config.MARK_COLOR


#============================================
def _solid_source(width: int, height: int, color: tuple[int, int, int] = SOURCE_COLOR) -> PIL.Image.Image:
	"""
	Build a solid color RGB source image.
	"""
	return PIL.Image.new("RGB", (width, height), color)


#============================================
def _grid(
	source: PIL.Image.Image,
	target: tuple[float, float],
	overlap: float,
	paper: tileprint.config.PaperProfile = A4,
) -> tileprint.config.TileGrid:
	"""
	Plan a grid for a source image.
	"""
	return tileprint.grid.plan_for_source(
		source.width,
		source.height,
		tileprint.config.PhysicalSpec(*target),
		paper,
		tileprint.config.OverlapSpec(overlap),
	)


#============================================
def _run(
	source: PIL.Image.Image,
	target: tuple[float, float] = (15.0, 20.0),
	overlap: float = 0.25,
	paper: tileprint.config.PaperProfile = A4,
	**kwargs,
) -> tileprint.config.TileRunResult:
	"""
	Run the engine with tuple arguments.
	"""
	return tileprint.render.tile_image(
		source,
		tileprint.config.PhysicalSpec(*target),
		paper,
		tileprint.config.OverlapSpec(overlap),
		**kwargs,
	)


#============================================
def test_rasterize_fills_outside_source_with_white() -> None:
	"""
	The last column and row sample past the source and stay white.
	"""
	source = _solid_source(300, 400)
	grid = _grid(source, (15.0, 20.0), 0.25)
	assert (grid.columns, grid.rows) == (2, 2)

	first = tileprint.render.rasterize_tile(source, grid, 0, 0)
	assert first.size == (grid.tile_width, grid.tile_height)
	assert first.getpixel((0, 0)) == SOURCE_COLOR
	assert first.getpixel((grid.tile_width - 1, grid.tile_height - 1)) == SOURCE_COLOR

	last = tileprint.render.rasterize_tile(source, grid, 1, 1)
	src_x, src_y = tileprint.grid.source_origin(grid, 1, 1)
	inside_w = source.width - src_x
	inside_h = source.height - src_y
	assert last.getpixel((0, 0)) == SOURCE_COLOR
	assert last.getpixel((inside_w - 1, inside_h - 1)) == SOURCE_COLOR
	assert last.getpixel((inside_w, 0)) == WHITE
	assert last.getpixel((0, inside_h)) == WHITE
	assert last.getpixel((grid.tile_width - 1, grid.tile_height - 1)) == WHITE


#============================================
def test_rasterize_copies_region_one_to_one() -> None:
	"""
	Source pixels land at the same relative offset inside the tile.
	"""
	source = _solid_source(300, 400, (0, 0, 0))
	grid = _grid(source, (15.0, 20.0), 0.25)
	src_x, src_y = tileprint.grid.source_origin(grid, 1, 0)
	source.putpixel((src_x + 5, src_y + 7), (255, 0, 0))
	tile = tileprint.render.rasterize_tile(source, grid, 1, 0)
	assert tile.getpixel((5, 7)) == (255, 0, 0)
	assert tile.getpixel((6, 7)) == (0, 0, 0)


#============================================
def test_rasterize_composites_transparency_over_white() -> None:
	source = PIL.Image.new("RGBA", (300, 400), (0, 0, 0, 0))
	grid = _grid(source, (15.0, 20.0), 0.25)
	tile = tileprint.render.rasterize_tile(source, grid, 0, 0)
	assert tile.mode == "RGB"
	assert tile.getpixel((10, 10)) == WHITE


#============================================
def test_rasterize_composites_colour_key_over_white(
	tmp_path: pathlib.Path,
	make_source,
	a4_paper: tileprint.config.PaperProfile,
) -> None:
	"""
	PNG colour-key transparency (tRNS on RGB data) shows the white fill.
	"""
	path = tmp_path / "keyed.png"
	keyed = make_source(300, 400, (0, 0, 0))
	keyed.putpixel((60, 50), (255, 0, 0))
	keyed.save(path, transparency=(0, 0, 0))
	source = tileprint.source.load_source_image(path)
	assert source.mode == "RGB"
	grid = _grid(source, (15.0, 20.0), 0.25, paper=a4_paper)
	tile = tileprint.render.rasterize_tile(source, grid, 0, 0)
	assert tile.getpixel((50, 50)) == WHITE
	assert tile.getpixel((60, 50)) == (255, 0, 0)


#============================================
def test_last_column_keeps_sub_pixel_sliver(make_source) -> None:
	"""
	An origin within half a pixel of the edge still samples the source.
	"""
	source = make_source(100, 50, (0, 0, 0))
	grid = tileprint.config.TileGrid(
		columns=2,
		rows=1,
		step_x=99.7,
		step_y=50.0,
		tile_width=110,
		tile_height=50,
		width_ppi=10.0,
		height_ppi=10.0,
	)
	assert tileprint.grid.source_origin(grid, 1, 0) == (99, 0)
	tile = tileprint.render.rasterize_tile(source, grid, 1, 0)
	assert tile.getpixel((0, 10)) == (0, 0, 0)
	assert tile.getpixel((1, 10)) == WHITE


#============================================
def test_registration_marks_on_two_corners() -> None:
	"""
	Marks sit at the top-left and bottom-right corners only.
	"""
	image = _solid_source(200, 300, (0, 0, 0))
	tileprint.render.draw_registration_marks(image, A4)
	width, height = image.size
	length = tileprint.config.MARK_LENGTH
	thickness = tileprint.config.MARK_THICKNESS

	# top-left arms
	assert image.getpixel((0, 0)) == MARK
	assert image.getpixel((length - 1, thickness - 1)) == MARK
	assert image.getpixel((thickness - 1, length - 1)) == MARK
	assert image.getpixel((length, 0)) == (0, 0, 0)
	assert image.getpixel((0, length)) == (0, 0, 0)
	assert image.getpixel((thickness, thickness)) == (0, 0, 0)

	# bottom-right arms
	assert image.getpixel((width - 1, height - 1)) == MARK
	assert image.getpixel((width - length, height - 1)) == MARK
	assert image.getpixel((width - 1, height - length)) == MARK
	assert image.getpixel((width - length - 1, height - 1)) == (0, 0, 0)
	assert image.getpixel((width - 1, height - length - 1)) == (0, 0, 0)

	# unmarked corners
	assert image.getpixel((width - 1, 0)) == (0, 0, 0)
	assert image.getpixel((0, height - 1)) == (0, 0, 0)


#============================================
def test_borderless_has_no_marks() -> None:
	image = _solid_source(200, 300, (0, 0, 0))
	tileprint.render.draw_registration_marks(image, A4_BORDERLESS)
	assert image.getpixel((0, 0)) == (0, 0, 0)
	assert image.getpixel((199, 299)) == (0, 0, 0)


#============================================
def test_marks_clamped_on_tiny_tiles() -> None:
	image = _solid_source(5, 1, (0, 0, 0))
	tileprint.render.draw_registration_marks(image, A4)
	assert image.getpixel((0, 0)) == MARK
	assert image.getpixel((4, 0)) == MARK


#============================================
def test_encode_tile_returns_jpeg() -> None:
	image = _solid_source(40, 30)
	data = tileprint.render.encode_tile(image, "tile_0_0")
	assert data[:2] == b"\xff\xd8"
	decoded = PIL.Image.open(io.BytesIO(data))
	assert decoded.format == "JPEG"
	assert decoded.size == (40, 30)


#============================================
def test_encode_tile_failure_is_typed() -> None:
	"""
	An unencodable raster raises EncodeFailure naming the tile.
	"""
	image = PIL.Image.new("RGBA", (10, 10))
	with pytest.raises(tileprint.config.EncodeFailure) as excinfo:
		tileprint.render.encode_tile(image, "tile_3_4")
	assert excinfo.value.tile_id == "tile_3_4"


#============================================
def test_tile_image_full_grid_in_row_major_order() -> None:
	"""
	Every cell is returned, sized identically, in (row, col) order.
	"""
	source = _solid_source(600, 400)
	result = _run(source, target=(30.0, 20.0), overlap=0.5, workers=3, max_in_flight=2)
	grid = result.grid
	assert result.complete
	assert len(result.tiles) == grid.columns * grid.rows
	assert grid.columns == 4
	assert grid.rows == 2

	order = [(tile.row_index, tile.column_index) for tile in result.tiles]
	assert order == sorted(order)
	assert len(set(tile.tile_id for tile in result.tiles)) == len(result.tiles)
	assert result.tiles[0].tile_id == "tile_0_0"
	assert result.tiles[1].tile_id == "tile_1_0"
	assert result.tiles[-1].tile_id == f"tile_{grid.columns - 1}_{grid.rows - 1}"

	for tile in result.tiles:
		assert tile.width == int(round(A4.width * grid.width_ppi))
		assert tile.height == int(round(A4.height * grid.height_ppi))
		decoded = PIL.Image.open(io.BytesIO(tile.data))
		assert decoded.size == (tile.width, tile.height)


#============================================
def test_scenario_grid_tiles() -> None:
	"""
	3000x4000 px at 15x20 in on A4 gives four 1654x2338 tiles.
	"""
	source = _solid_source(3000, 4000)
	result = _run(source)
	ids = [tile.tile_id for tile in result.tiles]
	assert ids == ["tile_0_0", "tile_1_0", "tile_0_1", "tile_1_1"]
	for tile in result.tiles:
		assert (tile.width, tile.height) == (1654, 2338)


#============================================
def test_borderless_tiles_have_no_marks_after_encoding() -> None:
	"""
	Decoded borderless tiles keep source color at the corners.
	"""
	source = _solid_source(300, 400, (0, 0, 0))
	for overlap in (0.0, 0.5):
		result = _run(source, overlap=overlap, paper=A4_BORDERLESS)
		first = PIL.Image.open(io.BytesIO(result.tiles[0].data)).convert("L")
		assert first.getpixel((0, 0)) < 40

	marked = _run(source, paper=A4)
	first = PIL.Image.open(io.BytesIO(marked.tiles[0].data)).convert("L")
	assert first.getpixel((0, 0)) > 160


#============================================
def test_encode_failure_reported_not_dropped(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	A failing tile is reported and the rest of the run completes.
	"""
	original = tileprint.render.encode_tile

	def flaky_encode(image: PIL.Image.Image, tile_id: str) -> bytes:
		if tile_id == "tile_1_0":
			raise tileprint.config.EncodeFailure(tile_id, "simulated failure")
		return original(image, tile_id)

	monkeypatch.setattr(tileprint.render, "encode_tile", flaky_encode)
	source = _solid_source(300, 400)
	result = _run(source)
	assert not result.complete
	assert result.expected_tiles == 4
	assert len(result.tiles) == 3
	assert [failure.tile_id for failure in result.failures] == ["tile_1_0"]
	assert result.failures[0].column_index == 1
	assert result.failures[0].row_index == 0
	assert "tile_1_0" not in [tile.tile_id for tile in result.tiles]


#============================================
def test_cancelled_run_returns_nothing() -> None:
	cancel_event = threading.Event()
	cancel_event.set()
	source = _solid_source(300, 400)
	with pytest.raises(tileprint.config.TilingCancelled):
		_run(source, cancel_event=cancel_event)


#============================================
def test_cancel_midway(monkeypatch: pytest.MonkeyPatch) -> None:
	"""
	Setting the event during a run discards everything rendered so far.
	"""
	cancel_event = threading.Event()
	original = tileprint.render.encode_tile

	def cancelling_encode(image: PIL.Image.Image, tile_id: str) -> bytes:
		cancel_event.set()
		return original(image, tile_id)

	monkeypatch.setattr(tileprint.render, "encode_tile", cancelling_encode)
	source = _solid_source(600, 400)
	with pytest.raises(tileprint.config.TilingCancelled):
		_run(source, target=(30.0, 20.0), workers=1, max_in_flight=1, cancel_event=cancel_event)


#============================================
def test_invalid_overlap_raises_before_rendering(monkeypatch: pytest.MonkeyPatch) -> None:
	calls = []
	monkeypatch.setattr(
		tileprint.render,
		"rasterize_tile",
		lambda *args: calls.append(args),
	)
	source = _solid_source(300, 400)
	with pytest.raises(tileprint.config.InvalidSpec):
		_run(source, overlap=12.0)
	assert calls == []


#============================================
def test_unusable_source_raises_decode_failure() -> None:
	with pytest.raises(tileprint.config.DecodeFailure):
		_run(PIL.Image.new("RGB", (0, 0)))
	with pytest.raises(tileprint.config.DecodeFailure):
		_run(b"not an image")


#============================================
def test_verbose_prints_summary(capsys: pytest.CaptureFixture) -> None:
	source = _solid_source(300, 400)
	_run(source, verbose=True)
	captured = capsys.readouterr()
	assert "Grid: 2 x 2 tiles" in captured.out
	assert "Tiles rendered: 4/4" in captured.out


#============================================
def test_row_major_order_despite_reverse_completion(
	monkeypatch: pytest.MonkeyPatch,
	make_source,
) -> None:
	"""
	Earlier cells finish last, yet tiles come back sorted by (row, col).
	"""
	original = tileprint.render.encode_tile
	finished: list[str] = []
	lock = threading.Lock()

	def slow_early_encode(image: PIL.Image.Image, tile_id: str) -> bytes:
		_, col, row = tile_id.split("_")
		index = int(row) * 4 + int(col)
		time.sleep(0.05 * (8 - index))
		with lock:
			finished.append(tile_id)
		return original(image, tile_id)

	monkeypatch.setattr(tileprint.render, "encode_tile", slow_early_encode)
	source = make_source(600, 400)
	result = _run(source, target=(30.0, 20.0), overlap=0.5, workers=8, max_in_flight=8)
	assert (result.grid.columns, result.grid.rows) == (4, 2)

	expected = [f"tile_{col}_{row}" for row in range(2) for col in range(4)]
	assert finished != expected
	assert finished[-1] == "tile_0_0"
	assert [tile.tile_id for tile in result.tiles] == expected


#============================================
def test_format_progress() -> None:
	assert tileprint.render.format_progress(0, 0) == ""
	assert tileprint.render.format_progress(0, 8) == "Tiles [--------------------] 0/8 (0%)"
	assert tileprint.render.format_progress(4, 8) == "Tiles [##########----------] 4/8 (50%)"
	assert tileprint.render.format_progress(8, 8) == "Tiles [####################] 8/8 (100%)"
