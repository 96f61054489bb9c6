from collections.abc import Callable
from typing import TypeAlias

from wishlens.logging import get_logger

ProgressFn: TypeAlias = Callable[[str], None]

_logger = get_logger(__name__)


def notify(on_progress: ProgressFn | None, message: str) -> None:
    """Fire-and-forget progress update; a failing sink never reaches the pipeline."""
    if on_progress is None:
        return
    try:
        on_progress(message)
    except Exception as e:
        _logger.warning("Progress callback failed", message=message, error=str(e))
