import base64
import io
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

from PIL import Image

from wishlens.constants import DEFAULT_GRID_SIZE, TILE_JPEG_QUALITY, TILE_MIME_TYPE
from wishlens.errors import TilingError
from wishlens.logging import get_logger

_logger = get_logger(__name__)

ImageSource: TypeAlias = str | Path | bytes | Image.Image


@dataclass(frozen=True)
class Tile:
    index: int
    row: int
    col: int
    box: tuple[int, int, int, int]
    data: bytes
    mime_type: str = TILE_MIME_TYPE

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def _open(image: ImageSource) -> Image.Image:
    if isinstance(image, Image.Image):
        return image
    if isinstance(image, bytes):
        return Image.open(io.BytesIO(image))
    if isinstance(image, (str, Path)):
        return Image.open(image)
    raise TypeError(f"unsupported image source {type(image).__name__}")


def encode_jpeg(image: Image.Image, quality: int = TILE_JPEG_QUALITY) -> bytes:
    if image.mode != "RGB":
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def make_tiles(
    image: ImageSource,
    grid_size: int = DEFAULT_GRID_SIZE,
    quality: int = TILE_JPEG_QUALITY,
) -> list[Tile]:
    """Split an image into a grid_size x grid_size grid of JPEG-encoded tiles.

    Tiles are produced in row-major order. Pixels left over when the image
    size is not divisible by the grid size are dropped from the last
    column and row. Any failure aborts the whole split.
    """
    if grid_size < 1:
        raise TilingError(f"Failed to split image: grid size must be at least 1, got {grid_size}")

    try:
        source = _open(image)
        source.load()
        width, height = source.size
        _logger.debug("Splitting image", width=width, height=height, grid=grid_size)

        tile_width = width // grid_size
        tile_height = height // grid_size
        if tile_width == 0 or tile_height == 0:
            raise ValueError(f"image {width}x{height} is too small for a {grid_size}x{grid_size} grid")

        tiles: list[Tile] = []
        for row in range(grid_size):
            for col in range(grid_size):
                left = col * tile_width
                top = row * tile_height
                box = (left, top, left + tile_width, top + tile_height)
                tiles.append(
                    Tile(
                        index=row * grid_size + col,
                        row=row,
                        col=col,
                        box=box,
                        data=encode_jpeg(source.crop(box), quality),
                    )
                )
    except Exception as e:
        _logger.error("Failed to split image: %s", e)
        raise TilingError(f"Failed to split image: {e}") from e

    _logger.info("Generated %d tiles", len(tiles))
    return tiles
