from collections.abc import Sequence

from wishlens.constants import (
    AUTH_REQUIRED,
    AUTH_REQUIRED_MESSAGE,
    NO_RESULTS_MESSAGE,
    VISION_FAILED,
    VISION_FAILED_MESSAGE,
)
from wishlens.vision.aggregate import Aggregation, aggregate
from wishlens.vision.models import AggregatedResult, TileResult, TileStatus


def classify(aggregation: Aggregation, results: Sequence[TileResult]) -> AggregatedResult:
    if aggregation.items:
        return AggregatedResult(
            status=TileStatus.OK,
            aggregated_items=aggregation.items,
            query=aggregation.query,
            confidence=aggregation.confidence,
            message=None,
        )

    # auth failures take priority over no_results
    if any(r.error == AUTH_REQUIRED for r in results):
        return AggregatedResult(
            status=TileStatus.ERROR,
            error=AUTH_REQUIRED,
            message=AUTH_REQUIRED_MESSAGE,
        )

    return AggregatedResult(status=TileStatus.NO_RESULTS, message=NO_RESULTS_MESSAGE)


def classify_tiles(results: Sequence[TileResult]) -> AggregatedResult:
    return classify(aggregate(results), results)


def vision_failed(exc: BaseException) -> AggregatedResult:
    return AggregatedResult(
        status=TileStatus.ERROR,
        error=VISION_FAILED,
        message=str(exc) or VISION_FAILED_MESSAGE,
    )
