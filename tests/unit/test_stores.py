"""Tests for the in-memory stores."""

import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from jira_connector.errors import InstanceNotFound
from jira_connector.integrations.instances import JiraInstance
from jira_connector.integrations.models import (
    ConnectionRecord,
    DeploymentKind,
    JiraUser,
    LongLivedCredential,
    TemporaryCredential,
)
from jira_connector.stores import (
    LocalUser,
    MemoryConnectionStore,
    MemoryInstanceStore,
    MemoryTemporaryCredentialStore,
    StaticIdentityProvider,
)


class TestLocalUser:
    """Test LocalUser display names."""

    def test_nickname_first(self):
        """Test the nickname is preferred."""
        user = LocalUser("u1", "jdoe", "Jane", "Doe", "JD")
        assert user.display_name == "JD"

    def test_full_name(self):
        """Test the full name without a nickname."""
        assert LocalUser("u1", "jdoe", "Jane", "Doe").display_name == "Jane Doe"

    def test_username_fallback(self):
        """Test the username when no names are set."""
        assert LocalUser("u1", "jdoe").display_name == "jdoe"


class TestMemoryInstanceStore:
    """Test MemoryInstanceStore."""

    def test_load(self):
        """Test loading an installed instance."""
        instance = JiraInstance("j1", DeploymentKind.SERVER, "https://j")
        store = MemoryInstanceStore([instance])
        assert store.load_instance("j1") is instance

    def test_add(self):
        """Test adding an instance later."""
        store = MemoryInstanceStore()
        store.add(JiraInstance("j2", DeploymentKind.CLOUD, "https://c"))
        assert store.load_instance("j2").kind == DeploymentKind.CLOUD

    def test_missing(self):
        """Test an unknown id."""
        with pytest.raises(InstanceNotFound, match="j9"):
            MemoryInstanceStore().load_instance("j9")


class TestMemoryConnectionStore:
    """Test MemoryConnectionStore."""

    @pytest.fixture
    def record(self) -> ConnectionRecord:
        """Create a connection record."""
        return ConnectionRecord(
            credential=LongLivedCredential("at", "as"), user=JiraUser(name="jdoe")
        )

    def test_save_and_load(self, record):
        """Test a saved connection can be loaded."""
        store = MemoryConnectionStore()
        store.save("u1", "j1", record)
        assert store.load("u1", "j1") == record
        assert store.load("u1", "j2") is None

    def test_remove(self, record):
        """Test removal returns the record once."""
        store = MemoryConnectionStore()
        store.save("u1", "j1", record)
        assert store.remove("u1", "j1") == record
        assert store.remove("u1", "j1") is None


class TestMemoryTemporaryCredentialStore:
    """Test the request-token store."""

    @pytest.fixture
    def store(self) -> MemoryTemporaryCredentialStore:
        """Create a store for testing."""
        return MemoryTemporaryCredentialStore(ttl_seconds=60, max_entries=3)

    def test_consume_once(self, store):
        """Test a credential is returned exactly once."""
        store.store("u1", TemporaryCredential("rt", "rs"))
        assert store.consume_once("u1") == TemporaryCredential("rt", "rs")
        assert store.consume_once("u1") is None
        assert len(store) == 0

    def test_store_replaces_pending(self, store):
        """Test a new handshake replaces the pending one."""
        store.store("u1", TemporaryCredential("old", "s"))
        store.store("u1", TemporaryCredential("new", "s"))
        assert store.consume_once("u1").token == "new"
        assert len(store) == 0

    def test_expired_entry_is_not_returned(self, store):
        """Test expired credentials are discarded."""
        store.store("u1", TemporaryCredential("rt", "rs"))
        with patch("jira_connector.stores.time.time", return_value=time.time() + 61):
            assert store.consume_once("u1") is None
        assert store.consume_once("u1") is None

    def test_evicts_oldest(self, store):
        """Test the oldest pending token is evicted when full."""
        for i in range(4):
            store.store(f"u{i}", TemporaryCredential(f"t{i}", "s"))
        assert len(store) == 3
        assert store.consume_once("u0") is None
        assert store.consume_once("u3").token == "t3"

    def test_stats(self, store):
        """Test consumption statistics."""
        store.store("u1", TemporaryCredential("rt", "rs"))
        store.consume_once("u1")
        store.consume_once("u1")
        stats = store.stats
        assert stats["consumed"] == 1
        assert stats["missed"] == 1
        assert stats["pending"] == 0

    def test_concurrent_consume_single_winner(self, store):
        """Test only one of many concurrent consumers gets the credential."""
        store.store("u1", TemporaryCredential("rt", "rs"))

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: store.consume_once("u1"), range(32)))

        winners = [r for r in results if r is not None]
        assert winners == [TemporaryCredential("rt", "rs")]


class TestStaticIdentityProvider:
    """Test StaticIdentityProvider."""

    def test_get_user(self):
        """Test known and unknown users."""
        provider = StaticIdentityProvider([LocalUser("u1", "jdoe")])
        assert provider.get_user("u1").username == "jdoe"
        assert provider.get_user("u2") is None
