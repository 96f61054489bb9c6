# --- Tiling ---

DEFAULT_GRID_SIZE = 2
MAX_GRID_SIZE = 6
TILE_JPEG_QUALITY = 70
TILE_MIME_TYPE = "image/jpeg"


# --- Scheduling & Aggregation ---

MAX_CONCURRENT_TILES = 2
TOP_K_CANDIDATES = 8
UNKNOWN_HOST = "unknown"


# --- Retry Policy (seconds) ---

MAX_RETRIES = 2
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 5.0
RETRY_JITTER_RATIO = 0.3
REQUEST_TIMEOUT = 30.0


# --- Edge Functions ---

IDENTIFY_FUNCTION = "identify-product-from-image"
EDGE_FUNCTIONS = frozenset(
    {
        IDENTIFY_FUNCTION,
        "identify-from-image",
        "extract-item",
        "search-by-name",
        "find-alternatives",
    }
)


# --- Error Codes ---

AUTH_REQUIRED = "AUTH_REQUIRED"
VISION_FAILED = "VISION_FAILED"


# --- User-facing Messages ---

AUTH_REQUIRED_MESSAGE = "Please sign in again."
NO_RESULTS_MESSAGE = "No matches found. Try cropping, better lighting, or removing background clutter."
VISION_FAILED_MESSAGE = "Failed to analyze image."
