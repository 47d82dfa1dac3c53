"""Failure kinds of a token API call.

All three are captured the same way by the lookup controllers: stored in the
``error`` field of the request state and shown to the user, never raised out
of a request task.
"""


class TokenApiError(Exception):
    """Base class for every failure talking to the token API."""


class NetworkError(TokenApiError):
    """Connection, DNS or timeout failure: no response was received."""


class HttpStatusError(TokenApiError):
    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code} from {url}")
        self.status_code = status_code
        self.url = url


class DecodeError(TokenApiError):
    """Response body is not JSON or does not have the expected shape."""
