"""Synchronous HTTP client performing one request/response exchange per call."""

from __future__ import annotations

import base64
import http.client
import logging
import urllib.error
import urllib.request
from collections.abc import Callable, Hashable, Mapping, Sequence
from email.message import Message
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

from ..errors import ContentTooLargeError, DownloadPathError, HttpSendError, TransportError
from ..models.config import ClientConfig, RequestConfig
from ..models.response import HttpResponse
from ..security.credentials import (
    DEFAULT_SCOPE,
    Challenger,
    CredentialScope,
    ScopedPasswordManager,
    current_caller,
)
from ..security.url_validator import UrlValidator
from .decoder import open_decoded_stream, resolve_charset
from .protocols import ReadableStream
from .tls import ProtocolRestrictedTlsFactory, get_tls_factory

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/51.0.2704.79 Safari/537.36 Edge/14.14393 httpsend"
)
BUFFER_SIZE = 64 * 1024  # 64 KB chunks
DEFAULT_FILENAME = "download"


def filename_from_url(url: str) -> str:
    """
    Name of the resource a URL points to, usable as a local file name.

    Args:
        url: URL of the downloaded resource (after redirects)

    Returns:
        The percent-decoded last path segment, or "download" when the URL
        path does not end with a usable name
    """
    segment = unquote(urlparse(url).path.rsplit("/", 1)[-1])
    segment = segment.replace("/", "_").replace("\\", "_").strip()
    if segment in ("", ".", ".."):
        return DEFAULT_FILENAME
    return segment


def _copy_stream(
    stream: ReadableStream,
    sink: Callable[[bytes], object],
    limit: Optional[int] = None,
) -> int:
    total = 0
    while True:
        chunk = stream.read(BUFFER_SIZE)
        if not chunk:
            return total
        total += len(chunk)
        if limit is not None and total > limit:
            raise ContentTooLargeError(f"Content is too large (maximum {limit} bytes)")
        sink(chunk)


class _SchemeFilter:
    """
    Leaves challenges of other schemes unanswered instead of failing.

    urllib's auth handlers raise ValueError on a scheme they do not know
    (Bearer, Negotiate...). Declining lets the 401/407 reach the caller.
    """

    def _answers(self, challenges: list[str]) -> bool:
        raise NotImplementedError

    def http_error_auth_reqed(self, auth_header, host, req, headers):  # type: ignore[no-untyped-def]
        challenges = headers.get_all(auth_header) or []
        if not self._answers([c.strip().split(" ", 1)[0].lower() for c in challenges]):
            return None
        return super().http_error_auth_reqed(auth_header, host, req, headers)  # type: ignore[misc]


class _BasicFilter(_SchemeFilter):
    def _answers(self, challenges: list[str]) -> bool:
        return "basic" in challenges


class _DigestFilter(_SchemeFilter):
    # The digest handler only ever looks at the first challenge
    def _answers(self, challenges: list[str]) -> bool:
        return bool(challenges) and challenges[0] == "digest"


class _BasicAuthHandler(_BasicFilter, urllib.request.HTTPBasicAuthHandler):
    pass


class _DigestAuthHandler(_DigestFilter, urllib.request.HTTPDigestAuthHandler):
    pass


class _ProxyBasicAuthHandler(_BasicFilter, urllib.request.ProxyBasicAuthHandler):
    pass


class _ProxyDigestAuthHandler(_DigestFilter, urllib.request.ProxyDigestAuthHandler):
    pass


class _Connection:
    """
    One urllib exchange, exposing the response whatever its status.

    urllib raises HTTPError for 4xx/5xx statuses once its handlers are done
    with them. The error object still carries the status, the headers and
    the body, so it is kept as the error stream instead of being raised.
    """

    def __init__(self, opener: urllib.request.OpenerDirector, request: urllib.request.Request, timeout: float):
        self._opener = opener
        self._request = request
        self._timeout = timeout
        self._response: Optional[http.client.HTTPResponse] = None
        self._error: Optional[urllib.error.HTTPError] = None

    def open(self) -> None:
        try:
            self._response = self._opener.open(self._request, timeout=self._timeout)
        except urllib.error.HTTPError as e:
            self._error = e

    @property
    def _active(self) -> Union[http.client.HTTPResponse, urllib.error.HTTPError]:
        active = self._response if self._response is not None else self._error
        if active is None:
            raise RuntimeError("Connection not opened")
        return active

    @property
    def status_code(self) -> int:
        if self._response is not None:
            return self._response.status
        return self._active.code

    @property
    def headers(self) -> Optional[Message]:
        return self._active.headers

    @property
    def url(self) -> str:
        """URL of the exchange after all redirects were followed."""
        if self._response is not None:
            return self._response.geturl()
        return self._active.filename

    def _header(self, name: str) -> Optional[str]:
        headers = self.headers
        return headers.get(name) if headers is not None else None

    @property
    def content_encoding(self) -> Optional[str]:
        return self._header("Content-Encoding")

    @property
    def content_type(self) -> Optional[str]:
        return self._header("Content-Type")

    @property
    def content_length(self) -> int:
        """Declared Content-Length, -1 when absent or not a number."""
        value = self._header("Content-Length")
        try:
            return int(value) if value is not None else -1
        except ValueError:
            return -1

    def get_input_stream(self) -> ReadableStream:
        if self._response is None:
            raise TransportError(f"Server returned HTTP response code: {self.status_code} for URL: {self.url}")
        return self._response

    def get_error_stream(self) -> Optional[ReadableStream]:
        if self._error is None or self._error.fp is None:
            return None
        return self._error

    def close(self) -> None:
        if self._response is not None:
            self._response.close()
        # An HTTPError raised by a handler may carry no response at all
        if self._error is not None and self._error.fp is not None:
            self._error.close()


class RequestExecutor:
    """
    Executes HTTP requests with per-call TLS, proxy and credential settings.

    Features:
    - Direct or HTTP-proxied connections
    - TLS protocol restriction on top of a permissive trust policy
    - Server and proxy authentication answered from a per-caller scope
    - Transparent gzip/deflate decoding and charset resolution
    - Size cap on buffered responses, streaming download to files

    Every call opens exactly one connection and closes it before returning.
    4xx/5xx responses are returned, not raised. Nothing is retried.

    Example:
        executor = RequestExecutor()
        response = executor.execute(RequestConfig(url="https://example.com"))
        print(response.status_code, response.body)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        scope: Optional[CredentialScope] = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            config: TLS policy and size limit (defaults: permissive TLS, 50 MB)
            scope: Credential scope consulted on authentication challenges
                (defaults to the process-wide scope)
        """
        self.config = config or ClientConfig()
        self.scope = scope if scope is not None else DEFAULT_SCOPE
        self.tls_policy = self.config.tls.to_policy()
        self.max_content_length = int(self.config.max_content_length)
        self._url_validator = UrlValidator()

    def _build_opener(
        self,
        request: RequestConfig,
        tls_factory: ProtocolRestrictedTlsFactory,
        caller_id: Hashable,
    ) -> urllib.request.OpenerDirector:
        if request.proxy.enabled:
            proxies = {"http": request.proxy.url, "https": request.proxy.url}
        else:
            # Direct connection, environment proxies ignored
            proxies = {}

        server_passwords = ScopedPasswordManager(self.scope, Challenger.SERVER, caller_id)
        proxy_passwords = ScopedPasswordManager(self.scope, Challenger.PROXY, caller_id)

        # build_opener adds the redirect and error handlers; HTTPS is always
        # installed because a redirect can switch the scheme
        opener = urllib.request.build_opener(
            urllib.request.ProxyHandler(proxies),
            urllib.request.HTTPSHandler(context=tls_factory.context),
            _BasicAuthHandler(server_passwords),
            _DigestAuthHandler(server_passwords),
            _ProxyBasicAuthHandler(proxy_passwords),
            _ProxyDigestAuthHandler(proxy_passwords),
        )
        opener.addheaders = []
        return opener

    def _build_request(self, request: RequestConfig, url: str, caller_id: Hashable) -> urllib.request.Request:
        data = request.body.encode("utf-8") if request.body else None
        url_request = urllib.request.Request(url, data=data, method=request.method)

        url_request.add_header("User-Agent", request.user_agent or DEFAULT_USER_AGENT)
        for name, value in request.headers.items():
            if name and value:
                url_request.add_header(name, value)

        # CONNECT tunnels never see a 407 handler, answer the proxy up front
        if request.proxy.enabled and url_request.type == "https":
            pair = self.scope.resolve(caller_id, Challenger.PROXY)
            if pair is not None:
                token = base64.b64encode(f"{pair[0]}:{pair[1]}".encode()).decode("ascii")
                url_request.add_header("Proxy-Authorization", f"Basic {token}")

        return url_request

    @staticmethod
    def _prepare_download_path(download_path: Path) -> Path:
        parent = download_path.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise DownloadPathError(f"Couldn't create the necessary directories for {download_path}") from e
        return download_path

    def execute(self, request: RequestConfig, caller_id: Optional[Hashable] = None) -> HttpResponse:
        """
        Perform the exchange described by ``request``.

        Args:
            request: Request descriptor
            caller_id: Key of the credentials in the scope (defaults to the
                calling thread)

        Returns:
            HttpResponse with status code, headers and either the decoded
            body text or, in download mode, the path of the written file

        Raises:
            InvalidUrlError: The URL is malformed or not http(s)
            DownloadPathError: The destination directories cannot be created
            TransportError: Connection, TLS, timeout or I/O failure, or the
                response exceeds the maximum size
        """
        url = self._url_validator.ensure_valid(request.url)

        download_path = None
        if request.download_path is not None:
            download_path = self._prepare_download_path(Path(request.download_path))

        if caller_id is None:
            caller_id = current_caller()

        tls_factory = get_tls_factory(self.tls_policy, request.tls_protocols)
        if request.tls_protocols and not tls_factory.protocols:
            logger.warning(
                f"None of the requested TLS protocols {request.tls_protocols} is supported, "
                "using the platform default"
            )

        auth = request.auth
        with self.scope.scoped(
            caller_id,
            auth.username,
            auth.password,
            auth.proxy_username,
            auth.proxy_password,
        ):
            opener = self._build_opener(request, tls_factory, caller_id)
            url_request = self._build_request(request, url, caller_id)
            connection = _Connection(opener, url_request, request.timeout)

            logger.debug(
                f"{request.method} {url}"
                + (f" via proxy {request.proxy.url}" if request.proxy.enabled else "")
            )
            try:
                connection.open()
                response = HttpResponse()
                response.status_code = connection.status_code
                if connection.headers is not None:
                    for name, value in connection.headers.items():
                        response.append_header(name, value)

                if download_path is not None:
                    self._download(connection, download_path, response)
                else:
                    self._read_body(connection, response)

                logger.debug(f"{request.method} {url} -> {response.status_code}")
                return response

            except HttpSendError:
                raise
            except (OSError, http.client.HTTPException) as e:
                logger.warning(f"{request.method} {url} failed: {e}")
                raise TransportError(f"{request.method} {url} failed: {e}") from e
            finally:
                connection.close()

    def _download(self, connection: _Connection, download_path: Path, response: HttpResponse) -> None:
        # The file name can only be derived now: the requested URL may be a
        # script that redirects to the actual resource
        if download_path.is_dir():
            download_path = download_path / filename_from_url(connection.url)

        try:
            output = download_path.open("wb")
        except OSError as e:
            raise DownloadPathError(f"Cannot write to {download_path}: {e}") from e

        stream = open_decoded_stream(connection)
        try:
            with output:
                if stream is not None:
                    written = _copy_stream(stream, output.write)
                    logger.debug(f"Downloaded {written} bytes to {download_path}")
        finally:
            if stream is not None:
                stream.close()

        response.append_body(str(download_path))

    def _read_body(self, connection: _Connection, response: HttpResponse) -> None:
        content_length = connection.content_length
        if content_length > self.max_content_length:
            raise ContentTooLargeError(
                f"Content is too large ({content_length} bytes > {self.max_content_length} bytes)"
            )

        charset = resolve_charset(connection.content_type)

        body = bytearray()
        stream = open_decoded_stream(connection)
        if stream is not None:
            try:
                _copy_stream(stream, body.extend, limit=self.max_content_length)
            finally:
                stream.close()

        response.append_body(body.decode(charset, errors="replace"))


_DEFAULT_EXECUTOR = RequestExecutor()


def send_request(
    url: str,
    method: str = "GET",
    tls_protocols: Optional[Sequence[str]] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    proxy_host: Optional[str] = None,
    proxy_port: int = 0,
    proxy_username: Optional[str] = None,
    proxy_password: Optional[str] = None,
    user_agent: Optional[str] = None,
    headers: Optional[Mapping[str, Optional[str]]] = None,
    body: Optional[str] = None,
    timeout: float = 120,
    download_path: Optional[Union[str, Path]] = None,
) -> HttpResponse:
    """
    Send one HTTP request and return its response.

    Args:
        url: The URL to request (e.g. https://w3.test.org/site/list.jsp)
        method: GET, POST, PUT, DELETE or any other verb
        tls_protocols: TLS protocols to enable (e.g. ["TLSv1.2"]); empty
            means the platform default
        username: Username for the server
        password: Password for the server
        proxy_host: Host name or IP address of the proxy; empty for a
            direct connection
        proxy_port: Port of the proxy (e.g. 3128)
        proxy_username: Username for the proxy
        proxy_password: Password for the proxy
        user_agent: User-Agent header (a default one when empty)
        headers: Additional headers; blank names or values are skipped
        body: Request body, sent UTF-8 encoded
        timeout: Connect and read timeout in seconds
        download_path: File or directory to write the response body to

    Returns:
        HttpResponse with status code, headers and body (or the path of
        the downloaded file)

    Raises:
        InvalidUrlError, DownloadPathError, TransportError
    """
    request = RequestConfig(
        url=url,
        method=method,
        tls_protocols=list(tls_protocols or []),
        auth={
            "username": username,
            "password": password,
            "proxy_username": proxy_username,
            "proxy_password": proxy_password,
        },
        proxy={"host": proxy_host, "port": proxy_port},
        user_agent=user_agent,
        headers=dict(headers or {}),
        body=body,
        timeout=timeout,
        download_path=download_path,
    )
    return _DEFAULT_EXECUTOR.execute(request)
