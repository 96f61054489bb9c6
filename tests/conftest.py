import io

import httpx
import pytest
from PIL import Image

from wishlens.config import Config
from wishlens.vision.models import CandidateItem, TileResult, TileStatus
from wishlens.vision.tiling import Tile


def make_image(width: int = 200, height: int = 100, mode: str = "RGB") -> Image.Image:
    color = (200, 30, 30, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
    return Image.new(mode, (width, height), color)


def image_bytes(width: int = 200, height: int = 100, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    make_image(width, height).save(buffer, format=fmt)
    return buffer.getvalue()


def make_tile(index: int) -> Tile:
    return Tile(index=index, row=0, col=index, box=(index, 0, index + 1, 1), data=b"tile-%d" % index)


def make_item(title: str, store_url: str | None = "https://shop.example.com/p/1", **extras) -> CandidateItem:
    return CandidateItem(title=title, store_url=store_url, extras=extras)


def ok_tile(index: int, *items: CandidateItem, query: str | None = None, confidence: float | None = None) -> TileResult:
    return TileResult(tile_index=index, status=TileStatus.OK, items=list(items), query=query, confidence=confidence)


def error_tile(index: int, error: str) -> TileResult:
    return TileResult(tile_index=index, status=TileStatus.ERROR, error=error)


def status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://backend.example.com/functions/v1/identify-product-from-image")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


class FixedRandom:
    def __init__(self, value: float = 0.0):
        self.value = value

    def random(self) -> float:
        return self.value


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def config() -> Config:
    return Config(
        _env_file=None,
        backend_url="https://backend.example.com",
        anon_key="anon-key",
        access_token="token-1",
    )
