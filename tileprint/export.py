"""
Packaging of finished tiles: archive, directory, and manifest.
"""

# Standard Library
import hashlib
import json
import pathlib
import zipfile

# local repo modules
import tileprint as tp
import tileprint.config


Tile = tp.config.Tile
TileRunResult = tp.config.TileRunResult
PaperProfile = tp.config.PaperProfile
PhysicalSpec = tp.config.PhysicalSpec
OverlapSpec = tp.config.OverlapSpec

ARCHIVE_FOLDER = tp.config.ARCHIVE_FOLDER
MANIFEST_NAME = tp.config.MANIFEST_NAME
TILE_EXTENSION = tp.config.TILE_EXTENSION
JPEG_QUALITY = tp.config.JPEG_QUALITY


#============================================
def tile_filename(tile: Tile) -> str:
	"""
	File name for a tile, for example "tile_1_0.jpg".
	"""
	return f"{tile.tile_id}{TILE_EXTENSION}"


#============================================
def build_manifest(
	source_name: str,
	source_size: tuple[int, int],
	target: PhysicalSpec,
	paper: PaperProfile,
	overlap: OverlapSpec,
	result: TileRunResult,
) -> dict:
	"""
	Build the JSON-ready run manifest.

	Args:
		source_name: Source file name or label.
		source_size: Source (width, height) in pixels.
		target: Physical target size.
		paper: Paper profile.
		overlap: Overlap spec.
		result: Tiling result.

	Returns:
		Manifest dictionary.
	"""
	grid = result.grid
	tiles = []
	for tile in result.tiles:
		tiles.append(
			{
				"id": tile.tile_id,
				"file": tile_filename(tile),
				"column": tile.column_index,
				"row": tile.row_index,
				"width": tile.width,
				"height": tile.height,
				"bytes": len(tile.data),
				"sha256": hashlib.sha256(tile.data).hexdigest(),
			}
		)
	failures = [
		{
			"id": failure.tile_id,
			"column": failure.column_index,
			"row": failure.row_index,
			"message": failure.message,
		}
		for failure in result.failures
	]
	data = {
		"source": {
			"name": source_name,
			"width": source_size[0],
			"height": source_size[1],
		},
		"target": {
			"width_in": target.target_width,
			"height_in": target.target_height,
		},
		"paper": {
			"name": paper.name,
			"width_in": paper.width,
			"height_in": paper.height,
			"borderless": paper.is_borderless,
		},
		"overlap_in": overlap.overlap,
		"grid": {
			"columns": grid.columns,
			"rows": grid.rows,
			"step_x": grid.step_x,
			"step_y": grid.step_y,
			"tile_width": grid.tile_width,
			"tile_height": grid.tile_height,
			"width_ppi": grid.width_ppi,
			"height_ppi": grid.height_ppi,
		},
		"jpeg_quality": JPEG_QUALITY,
		"expected_tiles": result.expected_tiles,
		"complete": result.complete,
		"tiles": tiles,
		"failures": failures,
	}
	return data


#============================================
def write_manifest(manifest_path: pathlib.Path, manifest: dict) -> None:
	"""
	Write a manifest JSON file.

	Args:
		manifest_path: Output path.
		manifest: Manifest dictionary.
	"""
	manifest_path.parent.mkdir(parents=True, exist_ok=True)
	with manifest_path.open("w", encoding="utf-8") as handle:
		json.dump(manifest, handle, indent=2, sort_keys=True)


#============================================
def write_tile_archive(
	tiles: list[Tile],
	output_path: pathlib.Path,
	manifest: dict | None = None,
) -> int:
	"""
	Package tiles into a ZIP archive under a single project folder.

	Args:
		tiles: Tiles in row-major order.
		output_path: Output ZIP path.
		manifest: Optional manifest stored next to the tiles.

	Returns:
		Number of tiles written.
	"""
	output_path.parent.mkdir(parents=True, exist_ok=True)
	# JPEG data is already compressed
	with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_STORED) as archive:
		for tile in tiles:
			archive.writestr(f"{ARCHIVE_FOLDER}/{tile_filename(tile)}", tile.data)
		if manifest is not None:
			text = json.dumps(manifest, indent=2, sort_keys=True)
			archive.writestr(f"{ARCHIVE_FOLDER}/{MANIFEST_NAME}", text)
	return len(tiles)


#============================================
def write_tile_directory(tiles: list[Tile], output_dir: pathlib.Path) -> list[pathlib.Path]:
	"""
	Write each tile as a JPEG file.

	Args:
		tiles: Tiles to write.
		output_dir: Output directory.

	Returns:
		Written file paths in tile order.
	"""
	output_dir.mkdir(parents=True, exist_ok=True)
	paths: list[pathlib.Path] = []
	for tile in tiles:
		path = output_dir / tile_filename(tile)
		path.write_bytes(tile.data)
		paths.append(path)
	return paths
