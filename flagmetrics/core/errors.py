"""Error types raised by the metrics core."""


class MetricsError(Exception):
    """Base class for metrics errors."""


class NotFoundError(MetricsError):
    """Raised when a point lookup finds no row."""

    def __init__(self, message: str = "Could not find metric"):
        self.message = message
        super().__init__(message)
