"""
Consent registry data models
Metadata, audit trail entries and published events
"""

from datetime import datetime, UTC
from enum import Enum
from typing import List, Optional, Dict, Any, Tuple
from pydantic import BaseModel, Field
import json


class HistoryAction(str, Enum):
    """Kinds of audit trail entries"""
    ISSUED = "issued"
    UPDATED = "updated"
    REVOKED = "revoked"


class ConsentMetadata(BaseModel):
    """Metadata held for a consent record"""
    metadata_uri: str = Field(..., description="Opaque pointer to the consent document")
    consent_type: str = Field(..., description="Type of consent (treatment, research, ...)")
    issued_timestamp: int = Field(..., description="When the record was minted")
    expiry_timestamp: int = Field(default=0, description="When consent expires (0 = never)")
    issuer: str = Field(..., description="Identity that minted the record")
    version: int = Field(default=1, description="Incremented on each update")

    def is_expired(self, now: int) -> bool:
        """Check expiry against a clock reading"""
        if self.expiry_timestamp == 0:
            return False
        return now >= self.expiry_timestamp


class ConsentHistoryEntry(BaseModel):
    """Single audit trail entry"""
    action: HistoryAction
    timestamp: int
    actor: str
    metadata_uri: str

    # Integrity
    previous_hash: Optional[str] = None
    entry_hash: Optional[str] = None

    def to_chain_bytes(self) -> bytes:
        """Canonical encoding of the audited fields for hashing"""
        audit_data = {
            "action": self.action.value,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "metadata_uri": self.metadata_uri,
        }
        return json.dumps(audit_data, sort_keys=True, separators=(',', ':')).encode('utf-8')


class ConsentRecordView(BaseModel):
    """Read-only snapshot of a consent record for compliance export"""
    record_id: int
    owner: str
    metadata: ConsentMetadata
    revoked: bool
    valid: bool
    history: List[ConsentHistoryEntry] = Field(default_factory=list)
    history_verified: bool


class RegistryEvent(BaseModel):
    """Notification emitted after a successful mutation"""
    topic: Tuple[str, str]
    payload: Dict[str, Any]
    published_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
