"""
httpsend - Send one HTTP(S) request with full control over TLS, proxy and credentials.

Usage:
    from httpsend import send_request

    response = send_request(
        "https://example.com/api/items",
        method="POST",
        username="admin",
        password="s3cret",
        headers={"Content-Type": "application/json"},
        body='{"name": "widget"}',
        timeout=30,
    )
    print(response.status_code)
    print(response.header)
    print(response.body)
"""

__version__ = "1.0.0"

from .errors import (
    ContentTooLargeError,
    DownloadPathError,
    HttpSendError,
    InvalidUrlError,
    TransportError,
)
from .http import (
    DEFAULT_USER_AGENT,
    ProtocolRestrictedTlsFactory,
    RequestExecutor,
    TlsPolicy,
    send_request,
)
from .models import (
    MAX_CONTENT_LENGTH,
    ClientConfig,
    CredentialsConfig,
    HttpResponse,
    ProxyConfig,
    RequestConfig,
    TlsConfig,
)
from .logging_config import setup_logging
from .security import Challenger, CredentialScope

__all__ = [
    "__version__",
    # Core
    "send_request",
    "RequestExecutor",
    "HttpResponse",
    "DEFAULT_USER_AGENT",
    "MAX_CONTENT_LENGTH",
    # Config
    "RequestConfig",
    "CredentialsConfig",
    "ProxyConfig",
    "ClientConfig",
    "TlsConfig",
    # TLS and credentials
    "TlsPolicy",
    "ProtocolRestrictedTlsFactory",
    "CredentialScope",
    "Challenger",
    # Errors
    "HttpSendError",
    "InvalidUrlError",
    "TransportError",
    "ContentTooLargeError",
    "DownloadPathError",
    # Logging
    "setup_logging",
]
