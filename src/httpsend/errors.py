"""Exception hierarchy for httpsend."""


class HttpSendError(Exception):
    """Base exception for the httpsend library."""


class InvalidUrlError(HttpSendError, ValueError):
    """The target URL cannot be parsed or is not an http(s) URL."""


class TransportError(HttpSendError, OSError):
    """A network or I/O failure while performing the exchange.

    DNS, connect, TLS handshake, timeout, read/write failures and oversize
    responses all surface as this type. The message tells them apart.
    """


class ContentTooLargeError(TransportError):
    """The response body exceeded the maximum allowed size."""


class DownloadPathError(HttpSendError, OSError):
    """The destination directory of a download could not be created."""
