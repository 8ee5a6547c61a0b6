"""HTTP request execution, TLS restriction and response decoding for httpsend."""

from .client import BUFFER_SIZE, DEFAULT_USER_AGENT, RequestExecutor, filename_from_url, send_request
from .decoder import decoded_stream, open_body_stream, open_decoded_stream, resolve_charset
from .protocols import BodySource, HttpClient, ReadableStream
from .tls import (
    LEGACY_PSEUDO_PROTOCOL,
    PERMISSIVE_POLICY,
    ProtocolRestrictedTlsFactory,
    TlsPolicy,
    filter_protocols,
    get_tls_factory,
    platform_protocols,
)

__all__ = [
    "BUFFER_SIZE",
    "DEFAULT_USER_AGENT",
    "LEGACY_PSEUDO_PROTOCOL",
    "PERMISSIVE_POLICY",
    "BodySource",
    "HttpClient",
    "ProtocolRestrictedTlsFactory",
    "ReadableStream",
    "RequestExecutor",
    "TlsPolicy",
    "decoded_stream",
    "filename_from_url",
    "filter_protocols",
    "get_tls_factory",
    "open_body_stream",
    "open_decoded_stream",
    "platform_protocols",
    "resolve_charset",
    "send_request",
]
