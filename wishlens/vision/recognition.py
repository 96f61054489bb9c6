import random
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError, field_validator

from wishlens.constants import AUTH_REQUIRED, IDENTIFY_FUNCTION
from wishlens.logging import get_logger
from wishlens.net.edge import EdgeFunctionClient
from wishlens.net.safety import ErrorCategory, RandomSource, RetryConfig, SleepFn, safe_call
from wishlens.vision.models import CandidateItem, TileResult, TileStatus
from wishlens.vision.tiling import Tile

_logger = get_logger(__name__)


class Recognizer(Protocol):
    async def recognize(self, tile: Tile) -> TileResult: ...


class RecognitionResponse(BaseModel):
    status: TileStatus
    items: list[Any] = Field(default_factory=list)
    query: str | None = None
    confidence: float | None = None
    error: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, v: Any) -> Any:
        return [] if v is None else v


def _parse_items(raw_items: list[Any], tile_index: int) -> list[CandidateItem]:
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            _logger.warning("Dropping non-object item", tile=tile_index, item=repr(raw))
            continue
        try:
            items.append(CandidateItem.from_payload(raw))
        except ValidationError as e:
            _logger.warning("Dropping malformed item", tile=tile_index, error=str(e))
    return items


def to_tile_result(tile_index: int, response: RecognitionResponse) -> TileResult:
    if response.status != TileStatus.OK:
        return TileResult(tile_index=tile_index, status=response.status, error=response.error)

    confidence = response.confidence
    if confidence is not None:
        confidence = min(max(confidence, 0.0), 1.0)

    return TileResult(
        tile_index=tile_index,
        status=TileStatus.OK,
        items=_parse_items(response.items, tile_index),
        query=response.query,
        confidence=confidence,
    )


class EdgeRecognizer:
    """Identifies products in one tile via the backend's vision edge function."""

    def __init__(
        self,
        client: EdgeFunctionClient,
        retry: RetryConfig | None = None,
        rng: RandomSource | None = None,
        sleep: SleepFn | None = None,
    ):
        self._client = client
        self._retry = retry or RetryConfig()
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def recognize(self, tile: Tile) -> TileResult:
        payload = {"imageBase64": tile.as_base64(), "mimeType": tile.mime_type}

        async def _call() -> dict[str, Any]:
            return await self._client.call(IDENTIFY_FUNCTION, payload)

        kwargs = {"sleep": self._sleep} if self._sleep else {}
        envelope = await safe_call(IDENTIFY_FUNCTION, _call, self._retry, self._rng, **kwargs)

        if not envelope.ok:
            error = AUTH_REQUIRED if envelope.category == ErrorCategory.AUTH else envelope.error
            return TileResult.failed(tile.index, error)

        try:
            response = RecognitionResponse.model_validate(envelope.data)
        except ValidationError as e:
            _logger.warning("Unexpected recognition response", tile=tile.index, error=str(e))
            return TileResult.failed(tile.index, "Unexpected response from recognition service.")

        return to_tile_result(tile.index, response)

    async def close(self) -> None:
        await self._client.close()
