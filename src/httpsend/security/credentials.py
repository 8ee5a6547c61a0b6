"""Per-caller credential storage consulted on authentication challenges."""

from __future__ import annotations

import logging
import threading
import urllib.request
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Challenger(str, Enum):
    """Party issuing an authentication challenge."""

    SERVER = "server"
    PROXY = "proxy"


@dataclass(frozen=True)
class Credentials:
    """Server and proxy credentials registered for one caller."""

    username: Optional[str] = None
    password: Optional[str] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None

    def pair_for(self, challenger: Challenger) -> Optional[tuple[str, str]]:
        if challenger is Challenger.SERVER:
            user, secret = self.username, self.password
        else:
            user, secret = self.proxy_username, self.proxy_password
        if user is None or secret is None:
            return None
        return user, secret


def current_caller() -> int:
    """Identity of the calling thread, the default credential scope key."""
    return threading.get_ident()


class CredentialScope:
    """
    Thread-safe table of credentials keyed by caller identity.

    urllib only offers password managers shared by every request made
    through an opener, with no per-call context. Keying the credentials by
    the calling thread keeps concurrent callers from seeing each other's
    secrets, and since the scope never remembers a successful login, every
    challenge reflects only the credentials of the current call.

    Callers must clear their entry once the exchange is over, on success
    and on failure alike. ``scoped()`` does it for you.

    Example:
        scope = CredentialScope()
        with scope.scoped(current_caller(), username="alice", password="s3cret"):
            scope.resolve(current_caller(), Challenger.SERVER)  # ("alice", "s3cret")
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, Credentials] = {}
        self._lock = threading.Lock()

    def set_credentials(
        self,
        caller_id: Hashable,
        username: Optional[str] = None,
        password: Optional[str] = None,
        proxy_username: Optional[str] = None,
        proxy_password: Optional[str] = None,
    ) -> None:
        """Store (or replace) the credentials of ``caller_id``."""
        entry = Credentials(username, password, proxy_username, proxy_password)
        with self._lock:
            self._entries[caller_id] = entry

    def clear_credentials(self, caller_id: Hashable) -> None:
        """Forget the credentials of ``caller_id``, if any."""
        with self._lock:
            self._entries.pop(caller_id, None)

    def resolve(self, caller_id: Hashable, challenger: Challenger) -> Optional[tuple[str, str]]:
        """
        Return the ``(username, password)`` pair answering a challenge.

        Args:
            caller_id: Identity of the caller being challenged
            challenger: Whether the origin server or the proxy is asking

        Returns:
            The matching pair, or None to decline authenticating
        """
        with self._lock:
            entry = self._entries.get(caller_id)
        if entry is None:
            return None
        return entry.pair_for(challenger)

    @contextmanager
    def scoped(
        self,
        caller_id: Hashable,
        username: Optional[str] = None,
        password: Optional[str] = None,
        proxy_username: Optional[str] = None,
        proxy_password: Optional[str] = None,
    ) -> Iterator[Hashable]:
        """Register credentials for the duration of the ``with`` block."""
        self.set_credentials(caller_id, username, password, proxy_username, proxy_password)
        try:
            yield caller_id
        finally:
            self.clear_credentials(caller_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, caller_id: object) -> bool:
        with self._lock:
            return caller_id in self._entries


class ScopedPasswordManager(urllib.request.HTTPPasswordMgr):
    """
    Password manager answering urllib auth handlers from a CredentialScope.

    The manager is bound to one caller and one challenger. It keeps no state
    of its own: ``add_password`` is ignored and every lookup goes back to
    the scope.
    """

    def __init__(self, scope: CredentialScope, challenger: Challenger, caller_id: Hashable) -> None:
        super().__init__()
        self.scope = scope
        self.challenger = challenger
        self.caller_id = caller_id

    def add_password(self, realm, uri, user, passwd):  # type: ignore[override]
        return None

    def find_user_password(self, realm, authuri):  # type: ignore[override]
        pair = self.scope.resolve(self.caller_id, self.challenger)
        if pair is None:
            logger.debug(f"No {self.challenger.value} credentials for realm {realm!r}, declining")
            return None, None
        return pair


DEFAULT_SCOPE = CredentialScope()
