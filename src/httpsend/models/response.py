"""Response container returned by the request executor."""

from __future__ import annotations


class HttpResponse:
    """
    Simplified HTTP response: status code, header text and body text.

    The header and body are append-only accumulators. Chunks that were
    appended are never modified, so the rendered text is the verbatim
    concatenation in append order.

    In download mode the body holds exactly one chunk: the path of the file
    the content was written to.

    Example:
        response = HttpResponse()
        response.status_code = 200
        response.append_header("Content-Type", "text/html")
        response.append_body("<html></html>")
        print(response.header)  # "Content-Type: text/html\\n"
    """

    def __init__(self) -> None:
        self.status_code: int = 0
        self._header_pairs: list[tuple[str, str]] = []
        self._header_lines: list[str] = []
        self._body_chunks: list[str] = []

    def append_header(self, name: str | None, value: str | None) -> None:
        """
        Add one header line.

        Args:
            name: Header name (e.g. "Content-Type")
            value: Header value (e.g. "text/html")
        """
        if not name or not value:
            return
        self._header_pairs.append((name, value))
        self._header_lines.append(f"{name}: {value}\n")

    def append_body(self, data: str | None) -> None:
        """Append a chunk of text to the body."""
        if data:
            self._body_chunks.append(data)

    @property
    def header(self) -> str:
        """All headers as ``Name: Value`` lines, in arrival order."""
        return "".join(self._header_lines)

    @property
    def body(self) -> str:
        return "".join(self._body_chunks)

    def headers(self) -> list[tuple[str, str]]:
        """Return a copy of the captured ``(name, value)`` pairs."""
        return list(self._header_pairs)

    def __str__(self) -> str:
        return f"{self.header}\n{self.body}"

    def __repr__(self) -> str:
        return f"HttpResponse(status_code={self.status_code}, headers={len(self._header_pairs)}, body_length={len(self.body)})"
