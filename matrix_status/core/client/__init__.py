from .errors import MatrixAPIError, MatrixClientError, RequestCancelledError
from .event_types import Room
from .http_client import MatrixHTTPClient

__all__ = [
    "MatrixAPIError",
    "MatrixClientError",
    "MatrixHTTPClient",
    "RequestCancelledError",
    "Room",
]
