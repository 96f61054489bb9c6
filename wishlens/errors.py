from wishlens.constants import AUTH_REQUIRED


class WishlensError(Exception):
    pass


class TilingError(WishlensError):
    """The source image could not be decoded, cropped or encoded."""


class AuthRequiredError(WishlensError):
    """The session is missing or was rejected even after a refresh."""

    def __init__(self):
        super().__init__(AUTH_REQUIRED)
