"""
Audit trail for consent records
Append-only, hash-chained history per record id
"""

from typing import List
import structlog

from ..constants import HistoryChainDefaults
from ..crypto.hash import HashChain, hash_string
from .models import ConsentHistoryEntry, HistoryAction
from .storage import RegistryTransaction, StorageKey

logger = structlog.get_logger(__name__)


class AuditTrail:
    """Per-record history log.

    Entries are only ever appended. Each entry's hash covers the previous
    entry's hash, so rewriting or dropping an entry breaks verification.
    """

    def __init__(self, txn: RegistryTransaction, algorithm: str = "sha256"):
        self.txn = txn
        self.algorithm = algorithm

    def genesis_hash(self, record_id: int) -> str:
        return hash_string(f"{HistoryChainDefaults.GENESIS_PREFIX}:{record_id}", self.algorithm)

    def entries(self, record_id: int) -> List[ConsentHistoryEntry]:
        raw = self.txn.get(StorageKey.history(record_id), [])
        return [ConsentHistoryEntry.model_validate(item) for item in raw]

    def append(self, record_id: int, action: HistoryAction, timestamp: int,
               actor: str, metadata_uri: str) -> ConsentHistoryEntry:
        """Append an entry and stage the grown log in the transaction"""
        raw = self.txn.get(StorageKey.history(record_id), [])
        previous_hash = raw[-1]["entry_hash"] if raw else self.genesis_hash(record_id)

        entry = ConsentHistoryEntry(
            action=action,
            timestamp=timestamp,
            actor=actor,
            metadata_uri=metadata_uri,
            previous_hash=previous_hash,
        )
        chain = HashChain(previous_hash, self.algorithm)
        entry.entry_hash = chain.add_entry(entry.to_chain_bytes())

        raw.append(entry.model_dump(mode="json"))
        self.txn.set(StorageKey.history(record_id), raw)

        logger.debug("Audit entry staged", record_id=record_id,
                    action=action.value, length=len(raw))
        return entry

    def verify(self, record_id: int) -> bool:
        """Recompute the chain and compare every link"""
        chain = HashChain(self.genesis_hash(record_id), self.algorithm)

        for position, entry in enumerate(self.entries(record_id)):
            if entry.previous_hash != chain.current_hash:
                logger.error("Audit chain link broken", record_id=record_id, position=position)
                return False

            expected_hash = chain.add_entry(entry.to_chain_bytes())
            if entry.entry_hash != expected_hash:
                logger.error("Audit integrity violation",
                           record_id=record_id,
                           position=position,
                           expected_hash=expected_hash,
                           actual_hash=entry.entry_hash)
                return False

        return True
