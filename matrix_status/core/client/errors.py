"""
Matrix client errors
"""


class MatrixClientError(Exception):
    """Base class for failures talking to the homeserver"""


class MatrixAPIError(MatrixClientError):
    """Non-success HTTP response from the homeserver"""

    def __init__(self, status: int, errcode: str = "UNKNOWN", error: str = ""):
        self.status = status
        self.errcode = errcode
        self.error = error
        super().__init__(
            f"Matrix API error: {errcode} - {error or 'Unknown error'} "
            f"(status: {status})"
        )

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)


class RequestCancelledError(MatrixClientError):
    """The request was aborted because the client is shutting down"""
