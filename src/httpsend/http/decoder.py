"""Content-Encoding decoding and charset resolution for response bodies."""

from __future__ import annotations

import codecs
import logging
import re
import zlib
from types import TracebackType
from typing import Optional

from ..errors import TransportError
from .protocols import BodySource, ReadableStream

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf-8"
CHARSET_PATTERN = re.compile(r'charset=\s*"?([^; "]+)', re.IGNORECASE)


def resolve_charset(content_type: Optional[str]) -> str:
    """
    Resolve the text charset declared in a Content-Type header value.

    Args:
        content_type: Content-Type header value, e.g. "text/html; charset=ISO-8859-1"

    Returns:
        Python codec name; UTF-8 when nothing usable is declared
    """
    if not content_type:
        return DEFAULT_CHARSET

    match = CHARSET_PATTERN.search(content_type)
    if not match:
        return DEFAULT_CHARSET

    declared = match.group(1)
    try:
        return codecs.lookup(declared).name
    except LookupError:
        logger.debug(f"Unknown charset {declared!r}, falling back to {DEFAULT_CHARSET}")
        return DEFAULT_CHARSET


class _DeflateDecoder:
    """zlib-wrapped deflate, falling back to raw deflate on the first chunk."""

    def __init__(self) -> None:
        self._first_try = True
        self._data = b""
        self._obj = zlib.decompressobj()

    def decompress(self, data: bytes) -> bytes:
        if not data:
            return data

        if not self._first_try:
            return self._obj.decompress(data)

        self._data += data
        try:
            decompressed = self._obj.decompress(data)
            if decompressed:
                self._first_try = False
                self._data = b""
            return decompressed
        except zlib.error:
            self._first_try = False
            self._obj = zlib.decompressobj(-zlib.MAX_WBITS)
            buffered, self._data = self._data, b""
            return self.decompress(buffered)

    def flush(self) -> bytes:
        return self._obj.flush()


class _GzipDecoder:
    """gzip decoding, concatenated members included."""

    def __init__(self) -> None:
        self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)
        self._first_member = True
        self._swallow = False

    def decompress(self, data: bytes) -> bytes:
        out = bytearray()
        if self._swallow or not data:
            return bytes(out)
        while True:
            try:
                out += self._obj.decompress(data)
            except zlib.error:
                if self._first_member:
                    raise
                # Trailing garbage after a complete member is ignored
                self._swallow = True
                return bytes(out)
            data = self._obj.unused_data
            if not data:
                return bytes(out)
            self._first_member = False
            self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)

    def flush(self) -> bytes:
        return self._obj.flush()


class DecodedStream:
    """
    Readable stream that undoes a Content-Encoding on the fly.

    Reads pull compressed bytes from the raw stream only as needed, so the
    whole body is never held in memory. Corrupt input raises TransportError.
    """

    def __init__(self, raw: ReadableStream, decoder: _DeflateDecoder | _GzipDecoder):
        self._raw = raw
        self._decoder = decoder
        self._buffer = bytearray()
        self._eof = False

    def read(self, size: int = -1) -> bytes:
        try:
            while not self._eof and (size < 0 or len(self._buffer) < size):
                chunk = self._raw.read(size if size > 0 else 65536)
                if not chunk:
                    self._buffer += self._decoder.flush()
                    self._eof = True
                    break
                self._buffer += self._decoder.decompress(chunk)
        except zlib.error as e:
            raise TransportError(f"Corrupt compressed response body: {e}") from e

        if size < 0 or size >= len(self._buffer):
            data = bytes(self._buffer)
            self._buffer.clear()
        else:
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
        return data

    def close(self) -> None:
        self._raw.close()

    def __enter__(self) -> DecodedStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def decoded_stream(
    raw: Optional[ReadableStream], content_encoding: Optional[str]
) -> Optional[ReadableStream]:
    """
    Wrap a raw body stream according to its Content-Encoding.

    Args:
        raw: Raw response body stream (None when there is no body)
        content_encoding: Declared Content-Encoding token

    Returns:
        A stream yielding the decoded bytes, ``raw`` itself for identity or
        unknown encodings, or None when ``raw`` is None
    """
    if raw is None:
        return None

    encoding = (content_encoding or "").strip().lower()
    if encoding == "gzip":
        return DecodedStream(raw, _GzipDecoder())
    if encoding == "deflate":
        return DecodedStream(raw, _DeflateDecoder())
    return raw


def open_body_stream(source: BodySource) -> Optional[ReadableStream]:
    """Primary body stream of a connection, or its error stream if that fails."""
    try:
        return source.get_input_stream()
    except OSError as e:
        logger.debug(f"No input stream ({e}), using the error stream")
        return source.get_error_stream()


def open_decoded_stream(source: BodySource) -> Optional[ReadableStream]:
    """Decoded body stream of a connection, or None when it has no body."""
    return decoded_stream(open_body_stream(source), source.content_encoding)
