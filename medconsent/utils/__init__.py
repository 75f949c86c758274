"""
Utility functions for the medconsent registry
Input validation helpers
"""

from .validators import (
    validate_identity,
    validate_record_id,
    validate_metadata_uri,
    validate_consent_type,
    validate_expiry,
)

__all__ = [
    "validate_identity",
    "validate_record_id",
    "validate_metadata_uri",
    "validate_consent_type",
    "validate_expiry",
]
