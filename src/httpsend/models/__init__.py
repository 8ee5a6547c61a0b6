"""httpsend configuration and response models."""

from .config import (
    MAX_CONTENT_LENGTH,
    ByteSize,
    ClientConfig,
    CredentialsConfig,
    ProxyConfig,
    RequestConfig,
    TlsConfig,
)
from .response import HttpResponse

__all__ = [
    # Config
    "MAX_CONTENT_LENGTH",
    "ByteSize",
    "ClientConfig",
    "CredentialsConfig",
    "ProxyConfig",
    "RequestConfig",
    "TlsConfig",
    # Response
    "HttpResponse",
]
