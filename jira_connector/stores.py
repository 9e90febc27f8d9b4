"""Storage collaborators for instances, connections and request tokens.

Each store is an abstract interface the plugin host implements against its
own key-value storage. The in-memory implementations here back tests and
single-process deployments.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import TYPE_CHECKING, Any

from .connector_logging import get_logger
from .errors import InstanceNotFound

if TYPE_CHECKING:
    from .integrations.instances import JiraInstance
    from .integrations.models import ConnectionRecord, TemporaryCredential

logger = get_logger()


@dataclass(frozen=True)
class LocalUser:
    """A chat-platform user as known to the plugin host."""

    id: str
    username: str
    first_name: str = ""
    last_name: str = ""
    nickname: str = ""

    @property
    def display_name(self) -> str:
        """Nickname, else full name, else username."""
        if self.nickname:
            return self.nickname
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username


class InstanceStore(ABC):
    """Lookup of installed Jira instances."""

    @abstractmethod
    def load_instance(self, instance_id: str) -> JiraInstance:
        """Return the instance, or raise InstanceNotFound."""


class ConnectionStore(ABC):
    """Per-user Jira connections, keyed by (local user, instance)."""

    @abstractmethod
    def save(self, user_id: str, instance_id: str, record: ConnectionRecord) -> None:
        """Persist ``record`` for the user on the instance."""

    @abstractmethod
    def remove(self, user_id: str, instance_id: str) -> ConnectionRecord | None:
        """Delete the user's connection; return it, or None if there was none."""

    @abstractmethod
    def load(self, user_id: str, instance_id: str) -> ConnectionRecord | None:
        """Return the user's connection, if any."""


class TemporaryCredentialStore(ABC):
    """Request tokens awaiting their authorization callback.

    ``consume_once`` must be atomic: of two concurrent calls for the same
    user, exactly one receives the credential.
    """

    @abstractmethod
    def store(self, user_id: str, credential: TemporaryCredential) -> None:
        """Remember ``credential`` as the user's pending request token."""

    @abstractmethod
    def consume_once(self, user_id: str) -> TemporaryCredential | None:
        """Remove and return the user's pending credential."""


class LocalIdentityProvider(ABC):
    """Resolves local users from the ids the plugin host authenticates."""

    @abstractmethod
    def get_user(self, user_id: str) -> LocalUser | None:
        """Return the user, or None when unknown."""


class MemoryInstanceStore(InstanceStore):
    """Dictionary-backed instance store."""

    def __init__(self, instances: list[JiraInstance] | None = None):
        self._instances: dict[str, JiraInstance] = {i.id: i for i in instances or []}

    def add(self, instance: JiraInstance) -> None:
        self._instances[instance.id] = instance

    def load_instance(self, instance_id: str) -> JiraInstance:
        instance = self._instances.get(instance_id)
        if instance is None:
            raise InstanceNotFound(f"Jira instance {instance_id} not found")
        return instance


class MemoryConnectionStore(ConnectionStore):
    """Dictionary-backed connection store."""

    def __init__(self) -> None:
        self._connections: dict[tuple[str, str], ConnectionRecord] = {}
        self._lock = Lock()

    def save(self, user_id: str, instance_id: str, record: ConnectionRecord) -> None:
        with self._lock:
            self._connections[(user_id, instance_id)] = record

    def remove(self, user_id: str, instance_id: str) -> ConnectionRecord | None:
        with self._lock:
            return self._connections.pop((user_id, instance_id), None)

    def load(self, user_id: str, instance_id: str) -> ConnectionRecord | None:
        with self._lock:
            return self._connections.get((user_id, instance_id))


@dataclass
class CredentialEntry:
    """A stored request token with its creation time."""

    credential: TemporaryCredential
    created_at: float


class MemoryTemporaryCredentialStore(TemporaryCredentialStore):
    """TTL-bounded request-token store with atomic consumption.

    Entries expire after ``ttl_seconds``; the oldest entry is evicted once
    ``max_entries`` is reached. All access happens under one lock, which
    makes ``consume_once`` a single check-and-delete.
    """

    def __init__(self, ttl_seconds: float = 900.0, max_entries: int = 1000):
        """Initialize the store.

        Args:
            ttl_seconds: Lifetime of an unconsumed request token
            max_entries: Maximum number of pending tokens before eviction
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: OrderedDict[str, CredentialEntry] = OrderedDict()
        self._lock = Lock()

        # Statistics
        self._consumed = 0
        self._missed = 0

    def _is_expired(self, entry: CredentialEntry) -> bool:
        return time.time() - entry.created_at > self.ttl_seconds

    def _evict_if_needed(self) -> None:
        """Evict oldest entries if the store is full.

        Must be called while holding the lock.
        """
        while len(self._entries) >= self.max_entries:
            user_id, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted pending OAuth1 request token for {user_id}")

    def _prune_expired(self) -> int:
        """Remove all expired entries.

        Must be called while holding the lock.

        Returns:
            Number of entries removed
        """
        expired = [k for k, e in self._entries.items() if self._is_expired(e)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def store(self, user_id: str, credential: TemporaryCredential) -> None:
        with self._lock:
            self._prune_expired()
            # A new handshake replaces any pending one for the same user
            self._entries.pop(user_id, None)
            self._evict_if_needed()
            self._entries[user_id] = CredentialEntry(
                credential=credential, created_at=time.time()
            )

    def consume_once(self, user_id: str) -> TemporaryCredential | None:
        with self._lock:
            entry = self._entries.pop(user_id, None)
            if entry is None or self._is_expired(entry):
                self._missed += 1
                return None
            self._consumed += 1
            return entry.credential

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def stats(self) -> dict[str, Any]:
        """Get store statistics."""
        with self._lock:
            return {
                "pending": len(self._entries),
                "max_entries": self.max_entries,
                "consumed": self._consumed,
                "missed": self._missed,
                "ttl_seconds": self.ttl_seconds,
            }


class StaticIdentityProvider(LocalIdentityProvider):
    """Identity provider over a fixed set of users."""

    def __init__(self, users: list[LocalUser] | None = None):
        self._users = {u.id: u for u in users or []}

    def get_user(self, user_id: str) -> LocalUser | None:
        return self._users.get(user_id)
