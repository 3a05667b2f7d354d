"""
Fatal errors raised before any batch work begins
"""

from typing import Optional, Tuple

import httplib2
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError


# Socket timeouts surface as OSError (TimeoutError) from httplib2
TRANSPORT_ERRORS = (OSError, httplib2.HttpLib2Error, RefreshError)


class PurgeError(Exception):
    """Base error carrying the HTTP status and response body, when known"""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class InvalidCredentialsError(PurgeError):
    """Access token was rejected by the profile lookup"""


class EnumerationError(PurgeError):
    """A search page could not be fetched"""


class PaginationLimitExceeded(EnumerationError):
    """Search kept returning page tokens past the configured page cap"""

    def __init__(self, max_pages: int, collected: int):
        super().__init__(
            f"Gave up after {max_pages} pages ({collected} messages collected); "
            f"the server kept returning page tokens"
        )
        self.max_pages = max_pages
        self.collected = collected


def http_error_details(error: Exception) -> Tuple[Optional[int], str]:
    """Return (status, body) for an HttpError or a transport failure"""
    if isinstance(error, HttpError):
        content = error.content or b""
        return error.resp.status, content.decode("utf-8", errors="replace").strip()
    return None, str(error)


def status_label(status: Optional[int]) -> str:
    return f"HTTP {status}" if status else "no response"
