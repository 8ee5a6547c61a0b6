"""Protocol definitions for the request pipeline."""

from __future__ import annotations

from typing import Optional, Protocol

from ..models.config import RequestConfig
from ..models.response import HttpResponse


class ReadableStream(Protocol):
    """Binary stream the body is read from (socket response, file, decoder)."""

    def read(self, size: int = -1) -> bytes: ...

    def close(self) -> None: ...


class BodySource(Protocol):
    """
    Protocol for an open connection whose body can be read.

    Mirrors how responses expose their payload: a primary input stream,
    which is unavailable for error statuses, and an error stream carrying
    the body of those error responses.
    """

    @property
    def content_encoding(self) -> Optional[str]:
        """Declared Content-Encoding of the response, if any."""
        ...

    def get_input_stream(self) -> ReadableStream:
        """
        Return the body stream of a successful response.

        Raises:
            OSError when the response has no primary stream (error status)
        """
        ...

    def get_error_stream(self) -> Optional[ReadableStream]:
        """Return the body stream of an error response, or None."""
        ...


class HttpClient(Protocol):
    """
    Protocol for clients performing one request/response exchange.

    This abstraction allows for:
    - Mock implementations in tests
    - Callers depending on the behavior rather than on RequestExecutor
    """

    def execute(self, request: RequestConfig) -> HttpResponse:
        """
        Perform the request described by ``request``.

        Returns:
            HttpResponse with status, header text and body (or file path)

        Raises:
            InvalidUrlError, TransportError, DownloadPathError
        """
        ...
