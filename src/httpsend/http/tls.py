"""TLS trust policy and protocol-restricted SSL contexts."""

from __future__ import annotations

import functools
import logging
import ssl
import warnings
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Legacy hello format some stacks list as a protocol; enabling it breaks handshakes
LEGACY_PSEUDO_PROTOCOL = "SSLv2Hello"

# Newest first, the order platforms usually report them in
PROTOCOL_VERSIONS: dict[str, ssl.TLSVersion] = {
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1": ssl.TLSVersion.TLSv1,
    "SSLv3": ssl.TLSVersion.SSLv3,
}

_PROTOCOL_AVAILABLE: dict[str, bool] = {
    "TLSv1.3": getattr(ssl, "HAS_TLSv1_3", False),
    "TLSv1.2": getattr(ssl, "HAS_TLSv1_2", False),
    "TLSv1.1": getattr(ssl, "HAS_TLSv1_1", False),
    "TLSv1": getattr(ssl, "HAS_TLSv1", False),
    "SSLv3": getattr(ssl, "HAS_SSLv3", False),
}

_PROTOCOL_DISABLE_OPTIONS: dict[str, int] = {
    "TLSv1.3": ssl.OP_NO_TLSv1_3,
    "TLSv1.2": ssl.OP_NO_TLSv1_2,
    "TLSv1.1": ssl.OP_NO_TLSv1_1,
    "TLSv1": ssl.OP_NO_TLSv1,
    "SSLv3": ssl.OP_NO_SSLv3,
}


@functools.lru_cache(maxsize=None)
def platform_protocols() -> tuple[str, ...]:
    """Protocol names the local ssl module can negotiate, newest first."""
    return tuple(name for name in PROTOCOL_VERSIONS if _PROTOCOL_AVAILABLE[name])


def filter_protocols(requested: Optional[Iterable[Optional[str]]]) -> tuple[str, ...]:
    """
    Reduce a caller-supplied protocol list to what this platform supports.

    Matching is case-insensitive and the result uses the platform spelling,
    keeps the request order and drops duplicates. The legacy SSLv2Hello
    pseudo-protocol is always removed.

    Args:
        requested: Protocol names such as "TLSv1.2" (None entries allowed)

    Returns:
        Tuple of supported protocol names, possibly empty
    """
    if not requested:
        return ()

    supported = {name.lower(): name for name in platform_protocols()}
    enabled: list[str] = []
    for name in requested:
        if not name or name.lower() == LEGACY_PSEUDO_PROTOCOL.lower():
            continue
        match = supported.get(name.strip().lower())
        if match is None:
            logger.debug(f"Ignoring TLS protocol not supported by this platform: {name}")
        elif match not in enabled:
            enabled.append(match)
    return tuple(enabled)


@dataclass(frozen=True)
class TlsPolicy:
    """
    Trust policy applied to every TLS connection.

    The default accepts any certificate chain and any hostname, so that
    self-signed and misconfigured endpoints in controlled environments can
    still be reached. Set ``verify_certificates`` to validate chains against
    the system trust store; ``verify_hostname`` only applies on top of it.
    """

    verify_certificates: bool = False
    verify_hostname: bool = False

    def new_context(self) -> ssl.SSLContext:
        """Build a fresh SSLContext carrying this trust policy."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        if self.verify_certificates:
            context.load_default_certs()
            context.check_hostname = self.verify_hostname
            context.verify_mode = ssl.CERT_REQUIRED
        else:
            # check_hostname must be off before verification can be disabled
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def base_context(self) -> ssl.SSLContext:
        """Shared context for this policy with the platform default protocols."""
        return _base_context(self)


PERMISSIVE_POLICY = TlsPolicy()


@functools.lru_cache(maxsize=None)
def _base_context(policy: TlsPolicy) -> ssl.SSLContext:
    return policy.new_context()


@functools.lru_cache(maxsize=64)
def _restricted_context(policy: TlsPolicy, protocols: tuple[str, ...]) -> ssl.SSLContext:
    context = policy.new_context()
    versions = [PROTOCOL_VERSIONS[name] for name in protocols]
    lowest, highest = min(versions), max(versions)

    if lowest < ssl.TLSVersion.TLSv1_2:
        # Old protocols are refused at the default OpenSSL security level
        try:
            context.set_ciphers("DEFAULT:@SECLEVEL=0")
        except ssl.SSLError as e:
            logger.debug(f"Could not lower the OpenSSL security level: {e}")

    # Protocols inside the [lowest, highest] range the caller left out
    gaps = [
        name
        for name, version in PROTOCOL_VERSIONS.items()
        if lowest < version < highest and name not in protocols
    ]

    # The ssl module flags every pre-TLSv1.2 setting as deprecated
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DeprecationWarning)
        context.minimum_version = lowest
        context.maximum_version = highest
        for name in gaps:
            context.options |= _PROTOCOL_DISABLE_OPTIONS[name]

    logger.debug(f"Built TLS context restricted to {', '.join(protocols)}")
    return context


class ProtocolRestrictedTlsFactory:
    """
    Wraps a trust policy and forces the protocols of every socket it creates.

    With an empty protocol list the factory hands out the shared base context
    of the policy untouched, i.e. whatever the platform negotiates by default.
    With a non-empty list it uses a derived context whose enabled protocol
    range is exactly that list. The base context is never modified, and
    derived contexts are cached per (policy, protocols).

    Example:
        factory = ProtocolRestrictedTlsFactory(PERMISSIVE_POLICY, ["TLSv1.2"])
        handler = urllib.request.HTTPSHandler(context=factory.context)
    """

    def __init__(
        self,
        base_policy: Optional[TlsPolicy] = None,
        protocols: Optional[Sequence[Optional[str]]] = None,
    ):
        self.base_policy = base_policy or PERMISSIVE_POLICY
        self.protocols = filter_protocols(protocols)

    @property
    def context(self) -> ssl.SSLContext:
        if not self.protocols:
            return self.base_policy.base_context()
        return _restricted_context(self.base_policy, self.protocols)

    def wrap_socket(self, sock: Any, server_hostname: Optional[str] = None, **kwargs: Any) -> ssl.SSLSocket:
        """Wrap a connected socket using the restricted context."""
        return self.context.wrap_socket(sock, server_hostname=server_hostname, **kwargs)

    def get_ciphers(self) -> list[dict[str, Any]]:
        return self.context.get_ciphers()

    def __repr__(self) -> str:
        protocols = ", ".join(self.protocols) or "platform default"
        return f"ProtocolRestrictedTlsFactory({self.base_policy!r}, protocols=[{protocols}])"


@functools.lru_cache(maxsize=64)
def _cached_factory(policy: TlsPolicy, protocols: tuple[str, ...]) -> ProtocolRestrictedTlsFactory:
    return ProtocolRestrictedTlsFactory(policy, protocols)


def get_tls_factory(
    policy: Optional[TlsPolicy] = None,
    protocols: Optional[Iterable[Optional[str]]] = None,
) -> ProtocolRestrictedTlsFactory:
    """Return the (cached) factory for a policy and a requested protocol list."""
    return _cached_factory(policy or PERMISSIVE_POLICY, filter_protocols(protocols))
