"""Ready-made handlers for request logging, metrics, and error capture.

Each plugin carries a default `name`, so registering two instances of one
plugin on the same chain needs an explicit name.
"""

from .capture import CaptureErrorMiddleware
from .logging import LoggingMiddleware
from .metrics import LogMetricsBackend, MetricsBackend, MetricsMiddleware

__all__ = [
    "CaptureErrorMiddleware",
    "LoggingMiddleware",
    "LogMetricsBackend",
    "MetricsBackend",
    "MetricsMiddleware",
]
