"""
Input Validators for the medconsent registry

Provides validation utilities for identities, record ids,
metadata pointers, consent types and expiry timestamps.
"""

import re
import logging
from typing import Any

from ..config import get_registry_config
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

# =============================================================================
# REGEX PATTERNS
# =============================================================================

IDENTITY_PATTERN = re.compile(r"^[A-Za-z0-9_.:@-]{1,128}$")

# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_identity(identity: Any, field_name: str = "identity") -> str:
    """
    Validate an identity string.

    Identities are compared exactly, so surrounding whitespace is
    rejected rather than stripped.

    Raises:
        ValidationError: If validation fails
    """
    if identity is None or identity == "":
        raise ValidationError(f"{field_name} is required", field=field_name)

    if not isinstance(identity, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    if not IDENTITY_PATTERN.match(identity):
        raise ValidationError(
            f"{field_name} contains invalid characters",
            field=field_name
        )

    return identity


def validate_record_id(record_id: Any, field_name: str = "record_id") -> int:
    """Validate a consent record id (non-negative integer)"""
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)

    if record_id < 0:
        raise ValidationError(f"{field_name} must be non-negative", field=field_name)

    return record_id


def validate_metadata_uri(uri: Any, field_name: str = "metadata_uri") -> str:
    """
    Validate a metadata pointer.

    The pointer is opaque (a URI, an IPFS CID, a vault reference); only
    presence and length are checked and the document is never fetched.

    Raises:
        ValidationError: If validation fails
    """
    if uri is None or (isinstance(uri, str) and not uri.strip()):
        raise ValidationError(f"{field_name} is required", field=field_name)

    if not isinstance(uri, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    max_length = get_registry_config().max_metadata_uri_length
    if len(uri) > max_length:
        raise ValidationError(
            f"{field_name} exceeds maximum length",
            field=field_name,
            details={"max_length": max_length}
        )

    return uri


def validate_consent_type(consent_type: Any, field_name: str = "consent_type") -> str:
    """Validate a consent type label (free text, bounded length)"""
    if consent_type is None or (isinstance(consent_type, str) and not consent_type.strip()):
        raise ValidationError(f"{field_name} is required", field=field_name)

    if not isinstance(consent_type, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)

    max_length = get_registry_config().max_consent_type_length
    if len(consent_type) > max_length:
        raise ValidationError(
            f"{field_name} exceeds maximum length",
            field=field_name,
            details={"max_length": max_length}
        )

    return consent_type


def validate_expiry(expiry: Any, field_name: str = "expiry") -> int:
    """
    Validate an expiry timestamp.

    Args:
        expiry: Seconds timestamp, 0 for no expiry

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(expiry, bool) or not isinstance(expiry, int):
        raise ValidationError(f"{field_name} must be an integer", field=field_name)

    if expiry < 0:
        logger.warning("Rejected negative expiry: %s", expiry)
        raise ValidationError(f"{field_name} must be non-negative", field=field_name)

    return expiry
