from wishlens.vision.models import AggregatedResult, CandidateItem, TileResult, TileStatus
from wishlens.vision.pipeline import identify_product_from_image_tiles

__all__ = [
    "AggregatedResult",
    "CandidateItem",
    "TileResult",
    "TileStatus",
    "identify_product_from_image_tiles",
]
