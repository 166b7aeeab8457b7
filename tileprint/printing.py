"""
Print-ready PDF assembly for finished tiles.
"""

# Standard Library
import io
import pathlib

# PIP3 modules
import PIL.Image
import pypdf
import reportlab.lib.utils
import reportlab.pdfgen.canvas

# local repo modules
import tileprint as tp
import tileprint.config


Tile = tp.config.Tile
PaperProfile = tp.config.PaperProfile

POINTS_PER_INCH = tp.config.POINTS_PER_INCH
CALIBRATION_FONT = tp.config.CALIBRATION_FONT


#============================================
def paper_page_size(paper: PaperProfile) -> tuple[float, float]:
	"""
	Paper size in points.

	Args:
		paper: Paper profile.

	Returns:
		Tuple of (width, height) in points.
	"""
	return (paper.width * POINTS_PER_INCH, paper.height * POINTS_PER_INCH)


#============================================
def build_tile_page(tile: Tile, paper: PaperProfile) -> pypdf.PageObject:
	"""
	Build a single PDF page with the tile filling the paper edge to edge.

	Args:
		tile: Encoded tile.
		paper: Paper profile.

	Returns:
		PDF page object.
	"""
	buffer = io.BytesIO()
	page_width, page_height = paper_page_size(paper)
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=(page_width, page_height))
	image = PIL.Image.open(io.BytesIO(tile.data))
	image_reader = reportlab.lib.utils.ImageReader(image)
	pdf.drawImage(
		image_reader,
		0,
		0,
		width=page_width,
		height=page_height,
		mask=None,
		preserveAspectRatio=False,
		anchor="sw",
	)
	pdf.setTitle(tile.tile_id)
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]


#============================================
def draw_calibration_page(pdf: reportlab.pdfgen.canvas.Canvas, paper: PaperProfile) -> None:
	"""
	Draw a 1 inch ruler and a paper outline to check printer scaling.

	Args:
		pdf: ReportLab canvas.
		paper: Paper profile.
	"""
	page_width, page_height = paper_page_size(paper)
	pdf.setLineWidth(0.3)
	pdf.setStrokeColorRGB(0.6, 0.6, 0.6)
	inset = 0.5 * POINTS_PER_INCH
	pdf.rect(inset, inset, page_width - 2.0 * inset, page_height - 2.0 * inset, stroke=1, fill=0)

	ruler_x = inset + 20.0
	ruler_y = page_height - inset - 40.0
	pdf.setStrokeColorRGB(0.0, 0.0, 0.0)
	pdf.setLineWidth(0.6)
	pdf.line(ruler_x, ruler_y, ruler_x + POINTS_PER_INCH, ruler_y)
	tick = 4.0
	pdf.line(ruler_x, ruler_y - tick, ruler_x, ruler_y + tick)
	pdf.line(ruler_x + POINTS_PER_INCH, ruler_y - tick, ruler_x + POINTS_PER_INCH, ruler_y + tick)
	pdf.setFont(CALIBRATION_FONT, 8)
	pdf.drawString(ruler_x, ruler_y + 6.0, "1 in")
	pdf.drawString(
		ruler_x,
		ruler_y - 16.0,
		f"{paper.name}: {paper.width:g} x {paper.height:g} in. Print at 100% scale.",
	)


#============================================
def build_calibration_page(paper: PaperProfile) -> pypdf.PageObject:
	"""
	Build a calibration page PDF.

	Args:
		paper: Paper profile.

	Returns:
		PDF page object.
	"""
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(buffer, pagesize=paper_page_size(paper))
	draw_calibration_page(pdf, paper)
	pdf.save()
	buffer.seek(0)
	reader = pypdf.PdfReader(buffer)
	return reader.pages[0]


#============================================
def write_print_pdf(
	tiles: list[Tile],
	paper: PaperProfile,
	output_path: pathlib.Path,
	calibration: bool = False,
) -> int:
	"""
	Write one zero-margin paper-sized page per tile.

	Args:
		tiles: Tiles in row-major order.
		paper: Paper profile.
		output_path: Output PDF path.
		calibration: Prepend a calibration page.

	Returns:
		Number of pages written.
	"""
	writer = pypdf.PdfWriter()
	if calibration:
		writer.add_page(build_calibration_page(paper))
	for tile in tiles:
		writer.add_page(build_tile_page(tile, paper))
	for index, tile in enumerate(tiles):
		page_index = index + 1 if calibration else index
		writer.add_outline_item(tile.tile_id, page_index)
	output_path.parent.mkdir(parents=True, exist_ok=True)
	writer.write(str(output_path))
	return len(writer.pages)
