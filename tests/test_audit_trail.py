"""Tests for the hash-chained audit trail and compliance export."""

from __future__ import annotations

import pytest

from medconsent.exceptions import TokenNotFoundError
from medconsent.registry.audit import AuditTrail
from medconsent.registry.auth import ContextAuthenticator
from medconsent.registry.clock import ManualClock
from medconsent.registry.engine import ConsentRegistry
from medconsent.registry.events import InMemoryEventPublisher
from medconsent.registry.models import HistoryAction
from medconsent.registry.storage import InMemoryRegistryStore, RegistryTransaction, StorageKey


class TestAuditTrail:
    """Audit trail on a bare transaction."""

    def setup_method(self) -> None:
        self.store = InMemoryRegistryStore()
        self.txn = RegistryTransaction(self.store)
        self.trail = AuditTrail(self.txn)

    def test_first_entry_links_to_genesis(self) -> None:
        entry = self.trail.append(7, HistoryAction.ISSUED, 10, "providerA", "ipfs://x")

        assert entry.previous_hash == self.trail.genesis_hash(7)
        assert entry.entry_hash is not None

    def test_entries_chain_together(self) -> None:
        first = self.trail.append(1, HistoryAction.ISSUED, 10, "providerA", "ipfs://x")
        second = self.trail.append(1, HistoryAction.UPDATED, 20, "providerA", "ipfs://y")

        assert second.previous_hash == first.entry_hash
        assert self.trail.verify(1)

    def test_genesis_differs_per_record(self) -> None:
        assert self.trail.genesis_hash(0) != self.trail.genesis_hash(1)

    def test_nothing_persisted_before_commit(self) -> None:
        self.trail.append(1, HistoryAction.ISSUED, 10, "providerA", "ipfs://x")
        assert not self.store.has(StorageKey.history(1))

        self.txn.commit()
        assert self.store.has(StorageKey.history(1))

    def test_empty_history_verifies(self) -> None:
        assert self.trail.entries(5) == []
        assert self.trail.verify(5)

    def test_alternate_algorithm(self) -> None:
        trail = AuditTrail(self.txn, algorithm="sha512")
        entry = trail.append(3, HistoryAction.ISSUED, 10, "providerA", "ipfs://x")

        assert len(entry.entry_hash) == 128
        assert trail.verify(3)


class TestHistoryIntegrity:
    """Tamper detection through the registry."""

    def setup_method(self) -> None:
        self.store = InMemoryRegistryStore()
        self.auth = ContextAuthenticator()
        self.clock = ManualClock(start=50)
        self.registry = ConsentRegistry(
            store=self.store,
            authenticator=self.auth,
            clock=self.clock,
            publisher=InMemoryEventPublisher(),
        )
        with self.auth.authorize("admin"):
            self.registry.initialize("admin")
            self.registry.add_issuer("admin", "providerA")
        with self.auth.authorize("providerA"):
            self.record_id = self.registry.mint_consent("providerA", "ipfs://x", "research", 0)
            self.registry.update_consent(self.record_id, "ipfs://y")
            self.registry.revoke_consent(self.record_id)

    def _tamper(self, mutate) -> None:
        key = StorageKey.history(self.record_id)
        history = self.store.get(key)
        mutate(history)
        self.store.set(key, history)

    def test_untouched_history_verifies(self) -> None:
        assert self.registry.verify_history(self.record_id)

    def test_rewritten_entry_detected(self) -> None:
        self._tamper(lambda history: history[1].update(metadata_uri="ipfs://forged"))
        assert not self.registry.verify_history(self.record_id)

    def test_dropped_entry_detected(self) -> None:
        self._tamper(lambda history: history.pop(1))
        assert not self.registry.verify_history(self.record_id)

    def test_export_record(self) -> None:
        export = self.registry.export_record(self.record_id)

        assert export["record_id"] == self.record_id
        assert export["owner"] == "providerA"
        assert export["revoked"] is True
        assert export["valid"] is False
        assert export["metadata"]["version"] == 2
        assert [entry["action"] for entry in export["history"]] == ["issued", "updated", "revoked"]
        assert export["history_verified"] is True
        assert export["exported_at"] == "1970-01-01T00:00:50+00:00"

    def test_export_timestamp_follows_clock(self) -> None:
        self.clock.set(1_700_000_000)
        export = self.registry.export_record(self.record_id)

        assert export["exported_at"] == "2023-11-14T22:13:20+00:00"

    def test_export_missing_record(self) -> None:
        with pytest.raises(TokenNotFoundError):
            self.registry.export_record(99)
