"""
Constants for the medconsent registry

Centralized identifiers for storage keys, history actions,
event topics and error codes.
"""

from typing import Final, Tuple

# =============================================================================
# SERVICE IDENTIFICATION
# =============================================================================

SERVICE_NAME: Final[str] = "medconsent-registry"
SERVICE_VERSION: Final[str] = "0.1.0"

# =============================================================================
# STORAGE KEY KINDS
# =============================================================================

class KeyKinds:
    """Composite storage key kinds"""
    # Singletons
    ADMIN: Final[str] = "Admin"
    ISSUERS: Final[str] = "Issuers"
    COUNTER: Final[str] = "Counter"

    # Per-record
    OWNER: Final[str] = "Owner"
    METADATA: Final[str] = "Metadata"
    REVOKED: Final[str] = "Revoked"
    HISTORY: Final[str] = "History"

    # Per-identity
    OWNER_TOKENS: Final[str] = "OwnerTokens"


# =============================================================================
# EVENT TOPICS
# =============================================================================

class EventNames:
    """Second element of published event topics"""
    ISSUED: Final[str] = "issued"
    UPDATED: Final[str] = "updated"
    REVOKED: Final[str] = "revoked"
    TRANSFER: Final[str] = "transfer"


# =============================================================================
# ERROR CODES
# =============================================================================

class ErrorCodes:
    """Standardized error codes for the registry"""
    REGISTRY_ERROR: Final[str] = "REGISTRY_ERROR"
    VALIDATION_ERROR: Final[str] = "VALIDATION_ERROR"
    STORAGE_ERROR: Final[str] = "STORAGE_ERROR"

    # Authorization
    NOT_AUTHENTICATED: Final[str] = "NOT_AUTHENTICATED"
    NOT_AUTHORIZED: Final[str] = "NOT_AUTHORIZED"
    NOT_TOKEN_OWNER: Final[str] = "NOT_TOKEN_OWNER"

    # Record state
    TOKEN_NOT_FOUND: Final[str] = "TOKEN_NOT_FOUND"
    CONSENT_REVOKED: Final[str] = "CONSENT_REVOKED"

    # Bootstrap
    ALREADY_INITIALIZED: Final[str] = "ALREADY_INITIALIZED"
    NOT_INITIALIZED: Final[str] = "NOT_INITIALIZED"


# =============================================================================
# AUDIT CHAIN
# =============================================================================

class HistoryChainDefaults:
    """Per-record history hash chain parameters"""
    GENESIS_PREFIX: Final[str] = "genesis"
    SUPPORTED_ALGORITHMS: Final[Tuple[str, ...]] = ("sha256", "sha512", "blake2b")
