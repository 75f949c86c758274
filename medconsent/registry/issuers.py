"""
Issuer allowlist for the consent registry
Admin-controlled set of identities permitted to mint records
"""

from typing import List
import structlog

from .storage import RegistryTransaction, StorageKey

logger = structlog.get_logger(__name__)


class IssuerAllowlist:
    """Issuer set stored as an ordered list under a single key.

    Operates on the caller's transaction; authorization of the admin is
    the registry's job.
    """

    def __init__(self, txn: RegistryTransaction):
        self.txn = txn

    def members(self) -> List[str]:
        return self.txn.get(StorageKey.issuers(), [])

    def contains(self, identity: str) -> bool:
        return identity in self.members()

    def reset(self) -> None:
        self.txn.set(StorageKey.issuers(), [])

    def add(self, identity: str) -> bool:
        """Add an issuer; returns False if it was already present"""
        issuers = self.members()
        if identity in issuers:
            return False
        issuers.append(identity)
        self.txn.set(StorageKey.issuers(), issuers)
        return True

    def remove(self, identity: str) -> bool:
        """Rebuild the set without ``identity``; returns False if it was absent"""
        issuers = self.members()
        remaining = [current for current in issuers if current != identity]
        self.txn.set(StorageKey.issuers(), remaining)
        return len(remaining) != len(issuers)
