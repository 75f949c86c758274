"""
Consent registry engine for medconsent
Issuance, update, revocation, transfer and validity of consent records
"""

from contextlib import contextmanager
from datetime import datetime, UTC
from typing import Any, Dict, Iterator, List, Optional, Tuple
import threading
import structlog

from ..config import RegistryConfig, get_registry_config
from ..constants import EventNames
from ..exceptions import (
    AlreadyInitializedError,
    ConsentRevokedError,
    NotAuthorizedError,
    NotInitializedError,
    NotTokenOwnerError,
    TokenNotFoundError,
)
from ..utils.validators import (
    validate_consent_type,
    validate_expiry,
    validate_identity,
    validate_metadata_uri,
    validate_record_id,
)
from .audit import AuditTrail
from .auth import ContextAuthenticator, IdentityAuthenticator
from .clock import Clock, SystemClock
from .events import EventPublisher, LoggingEventPublisher
from .issuers import IssuerAllowlist
from .models import ConsentHistoryEntry, ConsentMetadata, ConsentRecordView, HistoryAction
from .storage import (
    InMemoryRegistryStore,
    RegistryStore,
    RegistryTransaction,
    SQLRegistryStore,
    StorageKey,
)

logger = structlog.get_logger(__name__)


class _Call:
    """State of one registry call: staged writes and events to emit on commit"""

    def __init__(self, txn: RegistryTransaction):
        self.txn = txn
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, name: str, payload: Dict[str, Any]) -> None:
        self.events.append((name, payload))


class ConsentRegistry:
    """Registry of medical-consent records.

    Every mutating call runs against a write overlay and commits in one
    batch once all checks pass, so a failed call leaves no trace. Calls on
    one instance are serialized.
    """

    def __init__(self, store: Optional[RegistryStore] = None,
                 authenticator: Optional[IdentityAuthenticator] = None,
                 clock: Optional[Clock] = None,
                 publisher: Optional[EventPublisher] = None,
                 config: Optional[RegistryConfig] = None):
        self.store = store or InMemoryRegistryStore()
        self.authenticator = authenticator or ContextAuthenticator()
        self.clock = clock or SystemClock()
        self.publisher = publisher or LoggingEventPublisher()
        self.config = config or get_registry_config()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _mutation(self) -> Iterator[_Call]:
        with self._lock:
            call = _Call(RegistryTransaction(self.store))
            yield call
            call.txn.commit()
            for name, payload in call.events:
                self._publish(name, payload)

    @contextmanager
    def _query(self) -> Iterator[RegistryTransaction]:
        with self._lock:
            yield RegistryTransaction(self.store)

    def _publish(self, name: str, payload: Dict[str, Any]) -> None:
        topic = (self.config.event_topic, name)
        try:
            self.publisher.publish(topic, payload)
        except Exception as e:
            # The mutation is already committed; delivery is best effort
            logger.error("Event publishing failed", topic=list(topic), error=str(e))

    def _audit(self, txn: RegistryTransaction) -> AuditTrail:
        return AuditTrail(txn, self.config.history_hash_algorithm)

    def _owner(self, txn: RegistryTransaction, record_id: int) -> str:
        owner = txn.get(StorageKey.owner(record_id), None)
        if owner is None:
            raise TokenNotFoundError(record_id)
        return owner

    def _metadata(self, txn: RegistryTransaction, record_id: int) -> ConsentMetadata:
        raw = txn.get(StorageKey.metadata(record_id), None)
        if raw is None:
            raise TokenNotFoundError(record_id)
        return ConsentMetadata.model_validate(raw)

    def _revoked(self, txn: RegistryTransaction, record_id: int) -> bool:
        return txn.get(StorageKey.revoked(record_id), False)

    def _require_admin(self, txn: RegistryTransaction, admin: str) -> None:
        stored_admin = txn.get(StorageKey.admin(), None)
        if stored_admin is None:
            raise NotInitializedError()
        if admin != stored_admin:
            logger.warning("Admin operation refused", identity=admin)
            raise NotAuthorizedError(admin, required_role="admin")
        self.authenticator.require_auth(admin)

    # ------------------------------------------------------------------
    # Bootstrap and issuer allowlist
    # ------------------------------------------------------------------

    def initialize(self, admin: str) -> None:
        """Set the admin identity; allowed exactly once"""
        validate_identity(admin, "admin")

        with self._mutation() as call:
            if call.txn.has(StorageKey.admin()):
                raise AlreadyInitializedError()

            self.authenticator.require_auth(admin)

            call.txn.set(StorageKey.admin(), admin)
            call.txn.set(StorageKey.counter(), 0)
            IssuerAllowlist(call.txn).reset()

        logger.info("Registry initialized", admin=admin)

    def add_issuer(self, admin: str, issuer: str) -> None:
        """Authorize ``issuer`` to mint records (admin only)"""
        validate_identity(admin, "admin")
        validate_identity(issuer, "issuer")

        with self._mutation() as call:
            self._require_admin(call.txn, admin)
            added = IssuerAllowlist(call.txn).add(issuer)

        logger.info("Issuer added", issuer=issuer, already_present=not added)

    def remove_issuer(self, admin: str, issuer: str) -> None:
        """Withdraw minting rights; removing a non-member is a no-op"""
        validate_identity(admin, "admin")
        validate_identity(issuer, "issuer")

        with self._mutation() as call:
            self._require_admin(call.txn, admin)
            removed = IssuerAllowlist(call.txn).remove(issuer)

        logger.info("Issuer removed", issuer=issuer, was_present=removed)

    def is_issuer(self, identity: str) -> bool:
        with self._query() as txn:
            return IssuerAllowlist(txn).contains(identity)

    def get_issuers(self) -> List[str]:
        with self._query() as txn:
            return IssuerAllowlist(txn).members()

    def get_admin(self) -> str:
        with self._query() as txn:
            admin = txn.get(StorageKey.admin(), None)
        if admin is None:
            raise NotInitializedError()
        return admin

    def record_count(self) -> int:
        """Number of records ever minted (also the next record id)"""
        with self._query() as txn:
            return txn.get(StorageKey.counter(), 0)

    # ------------------------------------------------------------------
    # Consent record lifecycle
    # ------------------------------------------------------------------

    def mint_consent(self, owner: str, metadata_uri: str, consent_type: str,
                     expiry: int = 0) -> int:
        """Mint a consent record to ``owner``, who must be an issuer.

        Returns the new record id.
        """
        validate_identity(owner, "owner")
        validate_metadata_uri(metadata_uri)
        validate_consent_type(consent_type)
        validate_expiry(expiry)

        with self._mutation() as call:
            txn = call.txn
            if not IssuerAllowlist(txn).contains(owner):
                logger.warning("Mint refused for non-issuer", owner=owner)
                raise NotAuthorizedError(owner, required_role="issuer")

            self.authenticator.require_auth(owner)

            record_id = txn.get(StorageKey.counter(), 0)
            now = self.clock.now()

            metadata = ConsentMetadata(
                metadata_uri=metadata_uri,
                consent_type=consent_type,
                issued_timestamp=now,
                expiry_timestamp=expiry,
                issuer=owner,
                version=1,
            )

            txn.set(StorageKey.owner(record_id), owner)
            txn.set(StorageKey.metadata(record_id), metadata.model_dump(mode="json"))
            txn.set(StorageKey.revoked(record_id), False)

            owner_tokens = txn.get(StorageKey.owner_tokens(owner), [])
            owner_tokens.append(record_id)
            txn.set(StorageKey.owner_tokens(owner), owner_tokens)

            self._audit(txn).append(record_id, HistoryAction.ISSUED, now, owner, metadata_uri)
            txn.set(StorageKey.counter(), record_id + 1)

            call.emit(EventNames.ISSUED, {
                "record_id": record_id,
                "owner": owner,
                "consent_type": consent_type,
                "metadata_uri": metadata_uri,
            })

        logger.info("Minted consent record", record_id=record_id, owner=owner,
                   consent_type=consent_type, expiry=expiry)
        return record_id

    def update_consent(self, record_id: int, new_metadata_uri: str) -> ConsentMetadata:
        """Point a live record at new metadata; returns the new metadata version"""
        validate_record_id(record_id)
        validate_metadata_uri(new_metadata_uri, "new_metadata_uri")

        with self._mutation() as call:
            txn = call.txn
            owner = self._owner(txn, record_id)

            if self._revoked(txn, record_id):
                raise ConsentRevokedError(record_id)

            self.authenticator.require_auth(owner)

            metadata = self._metadata(txn, record_id)
            metadata.metadata_uri = new_metadata_uri
            metadata.version += 1
            txn.set(StorageKey.metadata(record_id), metadata.model_dump(mode="json"))

            self._audit(txn).append(
                record_id, HistoryAction.UPDATED, self.clock.now(), owner, new_metadata_uri
            )

            call.emit(EventNames.UPDATED, {
                "record_id": record_id,
                "version": metadata.version,
                "metadata_uri": new_metadata_uri,
            })

        logger.info("Updated consent record", record_id=record_id, version=metadata.version)
        return metadata

    def revoke_consent(self, record_id: int) -> None:
        """Revoke a record. Repeating the call appends another "revoked" entry."""
        validate_record_id(record_id)

        with self._mutation() as call:
            txn = call.txn
            owner = self._owner(txn, record_id)

            self.authenticator.require_auth(owner)

            txn.set(StorageKey.revoked(record_id), True)

            metadata = self._metadata(txn, record_id)
            self._audit(txn).append(
                record_id, HistoryAction.REVOKED, self.clock.now(), owner, metadata.metadata_uri
            )

            call.emit(EventNames.REVOKED, {"record_id": record_id, "owner": owner})

        logger.info("Revoked consent record", record_id=record_id, owner=owner)

    def transfer(self, from_identity: str, to_identity: str, record_id: int) -> None:
        """Move a live record between owners. Leaves the audit trail untouched."""
        validate_identity(from_identity, "from_identity")
        validate_identity(to_identity, "to_identity")
        validate_record_id(record_id)

        with self._mutation() as call:
            txn = call.txn
            self.authenticator.require_auth(from_identity)

            owner = self._owner(txn, record_id)
            if owner != from_identity:
                logger.warning("Transfer refused for non-owner",
                              record_id=record_id, identity=from_identity)
                raise NotTokenOwnerError(record_id, from_identity)

            if self._revoked(txn, record_id):
                raise ConsentRevokedError(record_id)

            txn.set(StorageKey.owner(record_id), to_identity)

            from_tokens = txn.get(StorageKey.owner_tokens(from_identity), [])
            txn.set(
                StorageKey.owner_tokens(from_identity),
                [tid for tid in from_tokens if tid != record_id],
            )

            to_tokens = txn.get(StorageKey.owner_tokens(to_identity), [])
            to_tokens.append(record_id)
            txn.set(StorageKey.owner_tokens(to_identity), to_tokens)

            call.emit(EventNames.TRANSFER, {
                "record_id": record_id,
                "from": from_identity,
                "to": to_identity,
            })

        logger.info("Transferred consent record", record_id=record_id,
                   from_identity=from_identity, to_identity=to_identity)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def owner_of(self, record_id: int) -> str:
        with self._query() as txn:
            return self._owner(txn, record_id)

    def get_metadata(self, record_id: int) -> ConsentMetadata:
        with self._query() as txn:
            return self._metadata(txn, record_id)

    def is_revoked(self, record_id: int) -> bool:
        """Revoked flag; False for unknown records"""
        with self._query() as txn:
            return self._revoked(txn, record_id)

    def get_history(self, record_id: int) -> List[ConsentHistoryEntry]:
        """Audit trail in append order; empty for unknown records"""
        with self._query() as txn:
            return self._audit(txn).entries(record_id)

    def tokens_of_owner(self, owner: str) -> List[int]:
        with self._query() as txn:
            return txn.get(StorageKey.owner_tokens(owner), [])

    def is_valid(self, record_id: int) -> bool:
        """Not revoked and not expired. Unknown records raise TokenNotFoundError."""
        with self._query() as txn:
            if self._revoked(txn, record_id):
                return False

            metadata = self._metadata(txn, record_id)
            return not metadata.is_expired(self.clock.now())

    def verify_history(self, record_id: int) -> bool:
        with self._query() as txn:
            return self._audit(txn).verify(record_id)

    def export_record(self, record_id: int) -> Dict[str, Any]:
        """Export a complete record snapshot for compliance requests"""
        with self._query() as txn:
            owner = self._owner(txn, record_id)
            metadata = self._metadata(txn, record_id)
            revoked = self._revoked(txn, record_id)
            audit = self._audit(txn)

            view = ConsentRecordView(
                record_id=record_id,
                owner=owner,
                metadata=metadata,
                revoked=revoked,
                valid=not revoked and not metadata.is_expired(self.clock.now()),
                history=audit.entries(record_id),
                history_verified=audit.verify(record_id),
            )

        return {
            **view.model_dump(mode="json"),
            "exported_at": datetime.fromtimestamp(self.clock.now(), UTC).isoformat(),
        }


# Global consent registry instance
_consent_registry: Optional[ConsentRegistry] = None


def build_consent_registry(config: Optional[RegistryConfig] = None) -> ConsentRegistry:
    """Create a registry wired from configuration"""
    config = config or get_registry_config()
    if config.database_url:
        store: RegistryStore = SQLRegistryStore(config.database_url)
    else:
        store = InMemoryRegistryStore()
    return ConsentRegistry(store=store, config=config)


def get_consent_registry() -> ConsentRegistry:
    """Get the global consent registry instance"""
    global _consent_registry
    if _consent_registry is None:
        _consent_registry = build_consent_registry()
    return _consent_registry
