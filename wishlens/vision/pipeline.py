import asyncio

from wishlens.config import Config, get_config
from wishlens.constants import DEFAULT_GRID_SIZE
from wishlens.logging import get_logger
from wishlens.net.edge import EdgeFunctionClient, StaticSession
from wishlens.vision.models import AggregatedResult
from wishlens.vision.outcome import classify_tiles, vision_failed
from wishlens.vision.progress import ProgressFn, notify
from wishlens.vision.recognition import EdgeRecognizer, Recognizer
from wishlens.vision.scheduler import run_tiles
from wishlens.vision.tiling import ImageSource, make_tiles

_logger = get_logger(__name__)


def build_recognizer(config: Config) -> EdgeRecognizer:
    client = EdgeFunctionClient(
        base_url=config.backend_url or "",
        anon_key=config.anon_key or "",
        session=StaticSession(config.access_token),
        timeout=config.request_timeout,
    )
    return EdgeRecognizer(client, retry=config.retry)


async def identify_product_from_image_tiles(
    image: ImageSource,
    grid_size: int = DEFAULT_GRID_SIZE,
    on_progress: ProgressFn | None = None,
    *,
    recognizer: Recognizer | None = None,
    config: Config | None = None,
) -> AggregatedResult:
    """Identify products in an image by recognizing each grid tile separately.

    Never raises: every failure resolves to an `AggregatedResult` with
    status `error`.
    """
    _logger.info("Identifying products from %dx%d tiles", grid_size, grid_size)
    owned: EdgeRecognizer | None = None
    try:
        config = config or get_config()
        if recognizer is None:
            recognizer = owned = build_recognizer(config)

        notify(on_progress, f"Splitting image into {grid_size * grid_size} parts...")
        tiles = await asyncio.to_thread(make_tiles, image, grid_size, config.jpeg_quality)

        results = await run_tiles(tiles, recognizer.recognize, config.max_concurrent, on_progress)

        notify(on_progress, "Aggregating results...")
        outcome = classify_tiles(results)
        _logger.info("Identification finished", status=str(outcome.status), items=len(outcome.aggregated_items))
        return outcome
    except Exception as e:
        _logger.error("Image identification failed: %s", e)
        return vision_failed(e)
    finally:
        if owned is not None:
            try:
                await owned.close()
            except Exception:
                _logger.warning("Failed to close recognition client", exc_info=True)
