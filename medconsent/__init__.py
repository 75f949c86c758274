"""
medconsent - Medical Consent Registry
Consent records issued by healthcare providers, held by patients,
with issuer allowlisting and a tamper-evident audit trail
"""

__version__ = "0.1.0"

# Core exports
from .config import RegistryConfig, get_registry_config

# Registry
from .registry import (
    ConsentRegistry, ConsentMetadata, ConsentHistoryEntry, HistoryAction,
    InMemoryRegistryStore, SQLRegistryStore, ContextAuthenticator,
    SystemClock, ManualClock, InMemoryEventPublisher, LoggingEventPublisher,
    get_consent_registry,
)

# Errors
from .exceptions import (
    RegistryError, AuthenticationError, NotAuthorizedError, NotTokenOwnerError,
    TokenNotFoundError, ConsentRevokedError, AlreadyInitializedError,
    NotInitializedError, StorageError, ValidationError,
)

__all__ = [
    # Config
    "RegistryConfig",
    "get_registry_config",

    # Registry
    "ConsentRegistry",
    "ConsentMetadata",
    "ConsentHistoryEntry",
    "HistoryAction",
    "InMemoryRegistryStore",
    "SQLRegistryStore",
    "ContextAuthenticator",
    "SystemClock",
    "ManualClock",
    "InMemoryEventPublisher",
    "LoggingEventPublisher",
    "get_consent_registry",

    # Errors
    "RegistryError",
    "AuthenticationError",
    "NotAuthorizedError",
    "NotTokenOwnerError",
    "TokenNotFoundError",
    "ConsentRevokedError",
    "AlreadyInitializedError",
    "NotInitializedError",
    "StorageError",
    "ValidationError",
]
