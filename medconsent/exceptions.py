"""
Custom Exceptions for the medconsent registry

Provides a unified exception hierarchy for registry bootstrap,
authorization, consent record state and storage failures.
"""

from typing import Optional, Dict, Any

from .constants import ErrorCodes


class RegistryError(Exception):
    """
    Base exception for all registry errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCodes.REGISTRY_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses"""
        result: Dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================

class AuthenticationError(RegistryError):
    """Raised when the current call cannot act as the claimed identity"""

    def __init__(self, identity: str):
        super().__init__(
            message=f"Call is not authorized to act as identity: {identity}",
            error_code=ErrorCodes.NOT_AUTHENTICATED,
            details={"identity": identity}
        )


class NotAuthorizedError(RegistryError):
    """Raised when an identity lacks the admin or issuer role"""

    def __init__(
        self,
        identity: str,
        required_role: Optional[str] = None
    ):
        details: Dict[str, Any] = {"identity": identity}
        if required_role:
            details["required_role"] = required_role
        super().__init__(
            message=f"Identity not authorized: {identity}",
            error_code=ErrorCodes.NOT_AUTHORIZED,
            details=details
        )


class NotTokenOwnerError(RegistryError):
    """Raised when a transfer is requested by someone other than the owner"""

    def __init__(self, record_id: int, identity: str):
        super().__init__(
            message=f"Identity {identity} does not own consent record {record_id}",
            error_code=ErrorCodes.NOT_TOKEN_OWNER,
            details={"record_id": record_id, "identity": identity}
        )


# =============================================================================
# RECORD STATE ERRORS
# =============================================================================

class TokenNotFoundError(RegistryError):
    """Raised when a consent record does not exist"""

    def __init__(self, record_id: int):
        super().__init__(
            message=f"Consent record not found: {record_id}",
            error_code=ErrorCodes.TOKEN_NOT_FOUND,
            details={"record_id": record_id}
        )


class ConsentRevokedError(RegistryError):
    """Raised when mutating a revoked consent record"""

    def __init__(self, record_id: int):
        super().__init__(
            message=f"Consent record has been revoked: {record_id}",
            error_code=ErrorCodes.CONSENT_REVOKED,
            details={"record_id": record_id}
        )


# =============================================================================
# BOOTSTRAP ERRORS
# =============================================================================

class AlreadyInitializedError(RegistryError):
    """Raised when the registry admin has already been set"""

    def __init__(self):
        super().__init__(
            message="Registry already initialized",
            error_code=ErrorCodes.ALREADY_INITIALIZED
        )


class NotInitializedError(RegistryError):
    """Raised when an admin operation runs before bootstrap"""

    def __init__(self):
        super().__init__(
            message="Registry not initialized",
            error_code=ErrorCodes.NOT_INITIALIZED
        )


# =============================================================================
# STORAGE & VALIDATION ERRORS
# =============================================================================

class StorageError(RegistryError):
    """Raised when the registry store fails"""

    def __init__(
        self,
        message: str = "Registry store operation failed",
        reason: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if reason:
            details["reason"] = reason
        super().__init__(message, ErrorCodes.STORAGE_ERROR, details)


class ValidationError(RegistryError):
    """Raised when input validation fails"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, ErrorCodes.VALIDATION_ERROR, details)
