"""
Registry storage adapters for medconsent
Key-value persistence for registry state and the per-call write overlay
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import copy
import json
import structlog
from sqlalchemy import create_engine, Column, String, DateTime, Text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..constants import KeyKinds
from ..exceptions import StorageError

logger = structlog.get_logger(__name__)

Base = declarative_base()

_MISSING = object()


@dataclass(frozen=True)
class StorageKey:
    """Composite registry key: a kind plus an optional record id or identity"""
    kind: str
    subject: Optional[Union[int, str]] = None

    def encode(self) -> str:
        """Encode as the string stored by backends"""
        if self.subject is None:
            return self.kind
        return f"{self.kind}:{self.subject}"

    @classmethod
    def admin(cls) -> "StorageKey":
        return cls(KeyKinds.ADMIN)

    @classmethod
    def issuers(cls) -> "StorageKey":
        return cls(KeyKinds.ISSUERS)

    @classmethod
    def counter(cls) -> "StorageKey":
        return cls(KeyKinds.COUNTER)

    @classmethod
    def owner(cls, record_id: int) -> "StorageKey":
        return cls(KeyKinds.OWNER, record_id)

    @classmethod
    def metadata(cls, record_id: int) -> "StorageKey":
        return cls(KeyKinds.METADATA, record_id)

    @classmethod
    def revoked(cls, record_id: int) -> "StorageKey":
        return cls(KeyKinds.REVOKED, record_id)

    @classmethod
    def history(cls, record_id: int) -> "StorageKey":
        return cls(KeyKinds.HISTORY, record_id)

    @classmethod
    def owner_tokens(cls, identity: str) -> "StorageKey":
        return cls(KeyKinds.OWNER_TOKENS, identity)


class RegistryStore:
    """Durable key-value mapping with presence-distinguishing lookups.

    Values are JSON-compatible structures; backends hold them serialized.
    ``get`` raises ``KeyError`` for absent keys so a stored falsy value
    is never confused with absence.
    """

    def get(self, key: StorageKey) -> Any:
        raise NotImplementedError

    def has(self, key: StorageKey) -> bool:
        raise NotImplementedError

    def set(self, key: StorageKey, value: Any) -> None:
        self.write_batch([(key, value)])

    def write_batch(self, items: Iterable[Tuple[StorageKey, Any]]) -> None:
        """Persist all items or none of them"""
        raise NotImplementedError


class RegistryEntryDB(Base):
    """SQLAlchemy model for registry entries"""
    __tablename__ = "registry_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)  # JSON string
    updated_at = Column(DateTime, nullable=False)


class SQLRegistryStore(RegistryStore):
    """Registry store backed by a single SQL table"""

    def __init__(self, database_url: Optional[str] = None):
        # Default to SQLite for development
        self.database_url = database_url or "sqlite:///medconsent.db"
        if self.database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees a fresh database
            self.engine = create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(self.database_url)
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables
        Base.metadata.create_all(bind=self.engine)

    def get(self, key: StorageKey) -> Any:
        encoded = key.encode()
        try:
            with self.SessionLocal() as session:
                entry = session.get(RegistryEntryDB, encoded)
                if entry is None:
                    raise KeyError(encoded)
                return json.loads(entry.value)
        except SQLAlchemyError as e:
            logger.error("Failed to read registry entry", key=encoded, error=str(e))
            raise StorageError("Failed to read registry entry", reason=str(e))

    def has(self, key: StorageKey) -> bool:
        encoded = key.encode()
        try:
            with self.SessionLocal() as session:
                return session.get(RegistryEntryDB, encoded) is not None
        except SQLAlchemyError as e:
            logger.error("Failed to read registry entry", key=encoded, error=str(e))
            raise StorageError("Failed to read registry entry", reason=str(e))

    def write_batch(self, items: Iterable[Tuple[StorageKey, Any]]) -> None:
        items = list(items)
        now = datetime.now(UTC)
        try:
            with self.SessionLocal() as session:
                try:
                    for key, value in items:
                        session.merge(RegistryEntryDB(
                            key=key.encode(),
                            value=json.dumps(value),
                            updated_at=now,
                        ))
                    session.commit()
                except SQLAlchemyError:
                    session.rollback()
                    raise
        except SQLAlchemyError as e:
            logger.error("Failed to commit registry batch", count=len(items), error=str(e))
            raise StorageError("Failed to commit registry batch", reason=str(e))

        logger.debug("Committed registry batch", count=len(items))


class InMemoryRegistryStore(RegistryStore):
    """In-memory storage for testing"""

    def __init__(self):
        self.entries: Dict[str, str] = {}

    def get(self, key: StorageKey) -> Any:
        return json.loads(self.entries[key.encode()])

    def has(self, key: StorageKey) -> bool:
        return key.encode() in self.entries

    def write_batch(self, items: Iterable[Tuple[StorageKey, Any]]) -> None:
        # Serialize everything first so a bad value leaves the mapping untouched
        encoded = [(key.encode(), json.dumps(value)) for key, value in items]
        self.entries.update(encoded)


class RegistryTransaction:
    """Write overlay over a store for one registry call.

    Reads fall through to the store unless the key was written in this
    transaction. Nothing reaches the store until ``commit``.
    """

    def __init__(self, store: RegistryStore):
        self.store = store
        self._writes: Dict[str, Tuple[StorageKey, Any]] = {}

    def get(self, key: StorageKey, default: Any = _MISSING) -> Any:
        encoded = key.encode()
        if encoded in self._writes:
            return copy.deepcopy(self._writes[encoded][1])
        try:
            return self.store.get(key)
        except KeyError:
            if default is _MISSING:
                raise
            return default

    def has(self, key: StorageKey) -> bool:
        return key.encode() in self._writes or self.store.has(key)

    def set(self, key: StorageKey, value: Any) -> None:
        self._writes[key.encode()] = (key, copy.deepcopy(value))

    @property
    def pending(self) -> List[Tuple[StorageKey, Any]]:
        return list(self._writes.values())

    def commit(self) -> None:
        if not self._writes:
            return
        self.store.write_batch(self.pending)
        self._writes.clear()
