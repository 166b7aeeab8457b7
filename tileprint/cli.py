"""
CLI entry point for splitting an image into printable tiles.
"""

# Standard Library
import argparse
import pathlib
import sys
import time

# local repo modules
import tileprint as tp
import tileprint.config
import tileprint.export
import tileprint.preview
import tileprint.printing
import tileprint.render
import tileprint.source


PhysicalSpec = tp.config.PhysicalSpec
OverlapSpec = tp.config.OverlapSpec
PaperProfile = tp.config.PaperProfile
TilingError = tp.config.TilingError

DEFAULT_TARGET_WIDTH = tp.config.DEFAULT_TARGET_WIDTH
DEFAULT_TARGET_HEIGHT = tp.config.DEFAULT_TARGET_HEIGHT
DEFAULT_OVERLAP = tp.config.DEFAULT_OVERLAP
DEFAULT_PAPER_NAME = tp.config.DEFAULT_PAPER_NAME
ARCHIVE_NAME = tp.config.ARCHIVE_NAME


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Optional argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Split an image into paper-sized tiles for printing.")
	parser.add_argument("image", nargs="?", default=None, help="Source image file.")

	size_group = parser.add_argument_group("Size")
	size_group.add_argument("-W", "--width", dest="target_width", type=float, default=DEFAULT_TARGET_WIDTH, help="Final print width in inches.")
	size_group.add_argument("-H", "--height", dest="target_height", type=float, default=DEFAULT_TARGET_HEIGHT, help="Final print height in inches.")
	size_group.add_argument("-s", "--paper", dest="paper", default=DEFAULT_PAPER_NAME, help="Paper size name.")
	size_group.add_argument("-v", "--overlap", dest="overlap", type=float, default=DEFAULT_OVERLAP, help="Overlap between tiles in inches.")
	size_group.add_argument("--list-papers", dest="list_papers", action="store_true", help="List paper sizes and exit.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="archive_path", default=None, help=f"Output ZIP path (default {ARCHIVE_NAME}).")
	output_group.add_argument("-d", "--tiles-dir", dest="tiles_dir", default=None, help="Also write tile JPEGs into this directory.")
	output_group.add_argument("-f", "--pdf", dest="pdf_path", default=None, help="Write a print-ready PDF, one tile per page.")
	output_group.add_argument("-r", "--preview", dest="preview_path", default=None, help="Write a grid preview image.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument("-c", "--calibration", dest="calibration", action="store_true", help="Add a calibration page to the PDF.")
	behavior_group.add_argument("-C", "--no-calibration", dest="calibration", action="store_false", help="Disable calibration page.")
	behavior_group.add_argument("-j", "--workers", dest="workers", type=int, default=None, help="Worker threads for rendering.")

	parser.set_defaults(calibration=False, list_papers=False)

	args = parser.parse_args(argv)
	if args.image is None and not args.list_papers:
		parser.error("the following arguments are required: image")
	return args


#============================================
def print_paper_sizes() -> None:
	"""
	Print the built-in paper catalog.
	"""
	for profile in tp.config.PAPER_CATALOG.values():
		flag = " (borderless)" if profile.is_borderless else ""
		print(f"{profile.name}: {profile.width:g} x {profile.height:g} in{flag}")


#============================================
def run_pipeline(args: argparse.Namespace) -> int:
	"""
	Run ingestion, tiling, and the requested exports.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Process exit status.
	"""
	paper = tp.config.get_paper_profile(args.paper)
	target = PhysicalSpec(target_width=args.target_width, target_height=args.target_height)
	overlap = OverlapSpec(overlap=args.overlap)
	archive_path = pathlib.Path(args.archive_path or ARCHIVE_NAME)

	print("Tile print pipeline")
	print(f"Image: {args.image}")
	print(f"Target: {target.target_width:g} x {target.target_height:g} in")
	print(f"Paper: {paper.name} ({paper.width:g} x {paper.height:g} in)")
	print(f"Borderless: {paper.is_borderless}")
	print(f"Overlap: {overlap.overlap:g} in")
	print(f"Output ZIP: {archive_path}")

	start_time = time.perf_counter()
	source = tp.source.load_source_image(args.image)
	print(f"Source: {source.width} x {source.height} px")
	load_end = time.perf_counter()

	if args.preview_path:
		preview = tp.preview.render_grid_preview(source, target, paper, overlap)
		tp.preview.write_grid_preview(preview, pathlib.Path(args.preview_path))
		print(f"Preview written: {args.preview_path}")

	render_start = time.perf_counter()
	result = tp.render.tile_image(
		source,
		target,
		paper,
		overlap,
		workers=args.workers,
		verbose=True,
	)
	render_end = time.perf_counter()

	manifest = tp.export.build_manifest(
		pathlib.Path(args.image).name,
		source.size,
		target,
		paper,
		overlap,
		result,
	)
	written = tp.export.write_tile_archive(result.tiles, archive_path, manifest)
	print(f"Archive written: {archive_path} ({written} tiles)")
	if args.tiles_dir:
		paths = tp.export.write_tile_directory(result.tiles, pathlib.Path(args.tiles_dir))
		print(f"Tile files written: {len(paths)} in {args.tiles_dir}")
	if args.pdf_path:
		pages = tp.printing.write_print_pdf(
			result.tiles,
			paper,
			pathlib.Path(args.pdf_path),
			calibration=args.calibration,
		)
		print(f"PDF pages written: {pages}")

	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = f"{archive_path}.json"
	tp.export.write_manifest(pathlib.Path(manifest_path), manifest)
	print(f"Manifest written: {manifest_path}")

	total_time = time.perf_counter() - start_time
	print(
		"Timing: load={:.2f}s render={:.2f}s total={:.2f}s".format(
			load_end - start_time,
			render_end - render_start,
			total_time,
		)
	)
	if not result.complete:
		print(f"Incomplete print job: {len(result.failures)} of {result.expected_tiles} tiles failed")
		return 1
	return 0


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.
	"""
	args = parse_args(argv)
	if args.list_papers:
		print_paper_sizes()
		return 0
	try:
		return run_pipeline(args)
	except TilingError as error:
		print(f"Error: {error}", file=sys.stderr)
		return 2
