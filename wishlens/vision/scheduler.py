import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeAlias

from wishlens.constants import MAX_CONCURRENT_TILES
from wishlens.logging import get_logger
from wishlens.vision.models import TileResult
from wishlens.vision.progress import ProgressFn, notify
from wishlens.vision.tiling import Tile

RecognizeFn: TypeAlias = Callable[[Tile], Awaitable[TileResult]]

_logger = get_logger(__name__)


async def _run_one(tile: Tile, total: int, recognize: RecognizeFn, on_progress: ProgressFn | None) -> TileResult:
    notify(on_progress, f"Analyzing part {tile.index + 1}/{total}...")
    try:
        result = await recognize(tile)
    except Exception as e:
        _logger.error("Tile %d failed: %s", tile.index + 1, e)
        return TileResult.failed(tile.index, str(e) or type(e).__name__)

    if result.tile_index != tile.index:
        result = result.model_copy(update={"tile_index": tile.index})
    _logger.info("Tile %d complete: %s", tile.index + 1, result.status)
    return result


async def run_tiles(
    tiles: Sequence[Tile],
    recognize: RecognizeFn,
    max_concurrent: int = MAX_CONCURRENT_TILES,
    on_progress: ProgressFn | None = None,
) -> list[TileResult]:
    """Recognize every tile exactly once, at most `max_concurrent` at a time.

    Tiles run in sequential batches; a batch must fully settle before the
    next one starts. Results come back in tile order, one per tile.
    """
    if max_concurrent < 1:
        raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

    total = len(tiles)
    results: list[TileResult] = []
    for start in range(0, total, max_concurrent):
        batch = tiles[start : start + max_concurrent]
        results.extend(await asyncio.gather(*(_run_one(tile, total, recognize, on_progress) for tile in batch)))

    _logger.info("All tiles processed: %d results", len(results))
    return results
