"""
Consent registry for medconsent
Issuer allowlist, consent record state machine and audit trail
"""

from .models import (
    ConsentMetadata, ConsentHistoryEntry, HistoryAction, ConsentRecordView, RegistryEvent
)
from .storage import (
    StorageKey, RegistryStore, InMemoryRegistryStore, SQLRegistryStore, RegistryTransaction
)
from .auth import IdentityAuthenticator, ContextAuthenticator
from .clock import Clock, SystemClock, ManualClock
from .events import EventPublisher, LoggingEventPublisher, InMemoryEventPublisher
from .engine import ConsentRegistry, build_consent_registry, get_consent_registry

__all__ = [
    "ConsentMetadata",
    "ConsentHistoryEntry",
    "HistoryAction",
    "ConsentRecordView",
    "RegistryEvent",
    "StorageKey",
    "RegistryStore",
    "InMemoryRegistryStore",
    "SQLRegistryStore",
    "RegistryTransaction",
    "IdentityAuthenticator",
    "ContextAuthenticator",
    "Clock",
    "SystemClock",
    "ManualClock",
    "EventPublisher",
    "LoggingEventPublisher",
    "InMemoryEventPublisher",
    "ConsentRegistry",
    "build_consent_registry",
    "get_consent_registry",
]
