"""
Shared configuration, constants, and value types.
"""

import dataclasses


POINTS_PER_INCH = 72.0

DEFAULT_TARGET_WIDTH = 15.0
DEFAULT_TARGET_HEIGHT = 20.0
DEFAULT_OVERLAP = 0.25
DEFAULT_PAPER_NAME = "A4"
BORDERLESS_TOKEN = "Borderless"

BACKGROUND_COLOR = (255, 255, 255)
MARK_COLOR = (204, 204, 204)
MARK_LENGTH = 20
MARK_THICKNESS = 2

JPEG_QUALITY = 95
TILE_EXTENSION = ".jpg"
TILE_ID_FORMAT = "tile_{col}_{row}"

DEFAULT_MAX_WORKERS = 4
IN_FLIGHT_PER_WORKER = 2
ORIGIN_TOLERANCE = 1e-6

ARCHIVE_NAME = "tileprint-project.zip"
ARCHIVE_FOLDER = "tileprint-project"
MANIFEST_NAME = "manifest.json"

PREVIEW_MAX_SIZE = 500
PREVIEW_LINE_COLOR = (239, 68, 68)
PREVIEW_DASH_LENGTH = 6
PREVIEW_CAPTION_FILL = (0, 0, 0)
PREVIEW_CAPTION_TEXT = (255, 255, 255)

CALIBRATION_FONT = "Helvetica"
PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 10

# (name, width inches, height inches)
PAPER_SIZES = (
	("A4", 8.27, 11.69),
	("A4 Borderless", 8.27, 11.69),
	("Letter (US)", 8.5, 11.0),
	("Legal (US)", 8.5, 14.0),
	("A3", 11.69, 16.53),
)
PAPER_ALIASES = {
	"Letter": "Letter (US)",
	"Legal": "Legal (US)",
}


#============================================
class TilingError(Exception):
	"""
	Base class for tiling engine errors.
	"""


class InvalidSpec(TilingError, ValueError):
	"""
	Raised when the physical target, paper, or overlap cannot form a grid.
	"""


class DecodeFailure(TilingError):
	"""
	Raised when a source image cannot be decoded or is unusable.
	"""


class EncodeFailure(TilingError):
	"""
	Raised when a tile raster cannot be serialized.
	"""

	def __init__(self, tile_id: str, message: str) -> None:
		super().__init__(f"{tile_id}: {message}")
		self.tile_id = tile_id


class TilingCancelled(TilingError):
	"""
	Raised when a run is aborted through its cancel event.
	"""


#============================================
@dataclasses.dataclass(frozen=True)
class PaperProfile:
	name: str
	width: float
	height: float
	is_borderless: bool = False


@dataclasses.dataclass(frozen=True)
class PhysicalSpec:
	target_width: float
	target_height: float


@dataclasses.dataclass(frozen=True)
class OverlapSpec:
	overlap: float = DEFAULT_OVERLAP


@dataclasses.dataclass(frozen=True)
class TileGrid:
	columns: int
	rows: int
	step_x: float
	step_y: float
	tile_width: int
	tile_height: int
	width_ppi: float
	height_ppi: float

	@property
	def tile_count(self) -> int:
		return self.columns * self.rows


@dataclasses.dataclass(frozen=True)
class Tile:
	column_index: int
	row_index: int
	width: int
	height: int
	data: bytes = dataclasses.field(repr=False)

	@property
	def tile_id(self) -> str:
		return format_tile_id(self.column_index, self.row_index)


@dataclasses.dataclass(frozen=True)
class TileFailure:
	column_index: int
	row_index: int
	tile_id: str
	message: str


@dataclasses.dataclass
class TileRunResult:
	grid: TileGrid
	tiles: list[Tile]
	failures: list[TileFailure]

	@property
	def expected_tiles(self) -> int:
		return self.grid.tile_count

	@property
	def complete(self) -> bool:
		return not self.failures


#============================================
def format_tile_id(col: int, row: int) -> str:
	"""
	Format the stable identifier for a grid cell.

	Args:
		col: Zero-based column index.
		row: Zero-based row index.

	Returns:
		Tile identifier like "tile_0_1".
	"""
	return TILE_ID_FORMAT.format(col=col, row=row)


#============================================
def build_paper_profile(name: str, width: float, height: float) -> PaperProfile:
	"""
	Build a paper profile, deriving the borderless flag from its name.

	Args:
		name: Profile name.
		width: Paper width in inches.
		height: Paper height in inches.

	Returns:
		PaperProfile.
	"""
	return PaperProfile(
		name=name,
		width=width,
		height=height,
		is_borderless=BORDERLESS_TOKEN in name,
	)


PAPER_CATALOG = {
	name: build_paper_profile(name, width, height)
	for name, width, height in PAPER_SIZES
}


#============================================
def get_paper_profile(name: str) -> PaperProfile:
	"""
	Look up a built-in paper profile by name or short alias.

	Args:
		name: Catalog name, for example "A4" or "Letter".

	Returns:
		PaperProfile.
	"""
	key = PAPER_ALIASES.get(name, name)
	profile = PAPER_CATALOG.get(key)
	if profile is None:
		known = ", ".join(PAPER_CATALOG)
		raise InvalidSpec(f"Unknown paper size '{name}' (known: {known})")
	return profile

