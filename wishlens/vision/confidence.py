from typing import Literal, TypeAlias

ConfidenceLevel: TypeAlias = Literal["high", "medium", "low"]

CONFIDENCE_COLORS: dict[str, str] = {
    "high": "#10b981",
    "medium": "#f59e0b",
    "low": "#ef4444",
}


def confidence_level(confidence: float | None) -> ConfidenceLevel:
    if not confidence:
        return "low"
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.5:
        return "medium"
    return "low"


def confidence_label(confidence: float | None) -> str:
    return confidence_level(confidence).capitalize()


def confidence_color(confidence: float | None) -> str:
    return CONFIDENCE_COLORS[confidence_level(confidence)]
