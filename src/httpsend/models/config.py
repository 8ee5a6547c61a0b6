"""Pydantic configuration models for httpsend."""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from ..http.tls import TlsPolicy

MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50 MB

_ModelT = TypeVar("_ModelT", bound="_YamlModel")


class ByteSize(int):
    """
    Custom type that parses human-readable byte sizes.

    Accepts:
        - Integers (bytes)
        - Strings like '200kb', '1mb', '5gb'

    Examples:
        >>> ByteSize._parse('200kb')
        204800
        >>> ByteSize._parse('1mb')
        1048576
        >>> ByteSize._parse(1024)
        1024
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(cls._parse)

    @classmethod
    def _parse(cls, v: Any) -> int:
        if isinstance(v, int) and not isinstance(v, bool):
            if v <= 0:
                raise ValueError(f"Byte size must be positive: {v}")
            return v
        if isinstance(v, str):
            v = v.lower().strip()
            # Order matters: check longer suffixes first
            units = [("gb", 1024**3), ("mb", 1024**2), ("kb", 1024), ("b", 1)]
            for unit, mult in units:
                if v.endswith(unit):
                    num_str = v[: -len(unit)].strip()
                    try:
                        return cls._parse(int(float(num_str) * mult))
                    except ValueError as err:
                        raise ValueError(f"Invalid number in byte size: {v}") from err
            # Try parsing as plain number
            try:
                return cls._parse(int(v))
            except ValueError:
                pass
        raise ValueError(f"Invalid byte size: {v}. Use format like '200kb', '1mb', or integer bytes.")


def expand_env_var(value: Optional[str]) -> Optional[str]:
    """Expand environment variable references in a string.

    Supports $VAR and ${VAR} syntax. Returns original value if
    the env var is not set.
    """
    import os
    import re

    if value is None:
        return None

    # Match $VAR or ${VAR}
    pattern = r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)"

    def replace(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replace, value)


class _YamlModel(BaseModel):
    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls: type[_ModelT], yaml_str: str) -> _ModelT:
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls: type[_ModelT], path: Path) -> _ModelT:
        """Load config from YAML file."""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"))


class CredentialsConfig(BaseModel):
    """Credentials for the origin server and for the proxy.

    Values are used exactly as given. Configuration loaded from YAML or the
    command line goes through ``with_env_expanded()``, which expands $VAR or
    ${VAR} references in the password fields. For example:
        --user 'admin:${API_PASSWORD}'
    """

    username: Optional[str] = Field(None, description="Username for the server")
    password: Optional[str] = Field(None, repr=False, description="Password for the server")
    proxy_username: Optional[str] = Field(None, description="Username for the proxy")
    proxy_password: Optional[str] = Field(None, repr=False, description="Password for the proxy")

    model_config = {"extra": "forbid"}

    def with_env_expanded(self) -> "CredentialsConfig":
        """Return a copy with environment variables expanded in the passwords."""
        return self.model_copy(
            update={
                "password": expand_env_var(self.password),
                "proxy_password": expand_env_var(self.proxy_password),
            }
        )


class ProxyConfig(BaseModel):
    """HTTP proxy the request is routed through."""

    host: Optional[str] = Field(None, description="Proxy host name or IP address (empty = direct)")
    port: int = Field(0, ge=0, le=65535, description="Proxy port (e.g. 3128)")

    model_config = {"extra": "forbid"}

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.host.strip())

    @property
    def url(self) -> Optional[str]:
        """Proxy address as urllib expects it, or None when not enabled."""
        if not self.enabled:
            return None
        host = self.host.strip()  # type: ignore[union-attr]
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"http://{host}:{self.port}"


class RequestConfig(_YamlModel):
    """
    Description of one request/response exchange.

    Example:
        request = RequestConfig(
            url="https://example.com/api/items",
            method="POST",
            headers={"Content-Type": "application/json"},
            body='{"name": "widget"}',
            timeout=30,
        )

    YAML format:
        url: https://example.com/api/items
        method: POST
        tls_protocols: [TLSv1.2, TLSv1.3]
        auth:
          username: admin
          password: ${API_PASSWORD}
        proxy:
          host: proxy.internal
          port: 3128
        download_path: ./downloads
    """

    url: str = Field(..., description="Target URL")
    method: str = Field("GET", description="HTTP method token, sent exactly as given")
    tls_protocols: list[str] = Field(
        default_factory=list,
        description="TLS protocols to enable (e.g. TLSv1.2); empty = platform default",
    )
    auth: CredentialsConfig = Field(default_factory=CredentialsConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    user_agent: Optional[str] = Field(None, description="User-Agent header (default when empty)")
    headers: dict[str, str] = Field(default_factory=dict, description="Additional request headers")
    body: Optional[str] = Field(None, description="Request body, sent UTF-8 encoded")
    timeout: float = Field(120.0, gt=0, description="Connect and read timeout in seconds")
    download_path: Optional[Path] = Field(
        None,
        description="File or directory to stream the response body into",
    )

    model_config = {"extra": "forbid"}

    @field_validator("method")
    @classmethod
    def _strip_method(cls, v: str) -> str:
        # Method tokens are case-sensitive, sent as given
        v = v.strip()
        if not v:
            raise ValueError("HTTP method must not be empty")
        return v

    @field_validator("tls_protocols", mode="before")
    @classmethod
    def _drop_empty_protocols(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [p for p in v if p]

    @field_validator("headers", mode="before")
    @classmethod
    def _drop_blank_headers(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {k: val for k, val in v.items() if k and val}
        return v

    @field_validator("download_path", mode="before")
    @classmethod
    def _empty_path_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "RequestConfig":  # type: ignore[override]
        """Load a request from YAML, expanding $VAR references in the passwords."""
        request = super().from_yaml(yaml_str)
        return request.model_copy(update={"auth": request.auth.with_env_expanded()})


class TlsConfig(BaseModel):
    """Trust policy for HTTPS connections.

    Certificate and hostname verification are off by default so that
    endpoints with self-signed certificates can be reached.
    """

    verify_certificates: bool = Field(False, description="Validate certificate chains")
    verify_hostname: bool = Field(False, description="Check the certificate matches the host name")

    model_config = {"extra": "forbid"}

    def to_policy(self) -> "TlsPolicy":
        from ..http.tls import TlsPolicy

        return TlsPolicy(
            verify_certificates=self.verify_certificates,
            verify_hostname=self.verify_hostname,
        )


class ClientConfig(_YamlModel):
    """
    Settings shared by every request an executor performs.

    YAML format:
        tls:
          verify_certificates: false
        max_content_length: 10mb
        log_level: DEBUG
    """

    tls: TlsConfig = Field(default_factory=TlsConfig)
    max_content_length: ByteSize = Field(
        ByteSize(MAX_CONTENT_LENGTH),
        description="Maximum response size kept in memory (e.g. '10mb')",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "WARNING",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}
