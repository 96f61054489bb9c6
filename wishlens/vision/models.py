from enum import StrEnum
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from wishlens.constants import UNKNOWN_HOST


class TileStatus(StrEnum):
    OK = "ok"
    NO_RESULTS = "no_results"
    ERROR = "error"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


def store_host(url: str | None) -> str:
    if not url:
        return UNKNOWN_HOST
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return UNKNOWN_HOST
    return (host or UNKNOWN_HOST).lower()


_KNOWN_KEYS = frozenset({"title", "storeUrl", "reason", "score"})


class CandidateItem(_FrozenModel):
    """A product guess: typed fields used for ranking plus the provider's other fields in `extras`."""

    title: str
    store_url: str | None = Field(default=None, alias="storeUrl")
    reason: str | None = None
    score: int = Field(default=1, ge=1)
    extras: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CandidateItem":
        extras = {k: v for k, v in payload.items() if k not in _KNOWN_KEYS}
        return cls(
            title=payload.get("title"),
            store_url=payload.get("storeUrl"),
            reason=payload.get("reason"),
            extras=extras,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            **self.extras,
            "title": self.title,
            "storeUrl": self.store_url,
            "reason": self.reason,
            "score": self.score,
        }

    @property
    def identity_key(self) -> str:
        return f"{store_host(self.store_url)}::{self.title.lower().strip()}"


class TileResult(_FrozenModel):
    tile_index: int = Field(ge=0)
    status: TileStatus
    items: list[CandidateItem] = Field(default_factory=list)
    query: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    error: str | None = None

    @classmethod
    def failed(cls, tile_index: int, error: str) -> "TileResult":
        return cls(tile_index=tile_index, status=TileStatus.ERROR, error=error)


class AggregatedResult(_FrozenModel):
    status: TileStatus
    aggregated_items: list[CandidateItem] = Field(default_factory=list)
    query: str | None = None
    confidence: float | None = None
    message: str | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": str(self.status),
            "aggregatedItems": [item.to_payload() for item in self.aggregated_items],
            "query": self.query,
            "confidence": self.confidence,
            "message": self.message,
            "error": self.error,
        }
