"""
Cryptographic utilities for medconsent
Identity tokens and audit-chain hashing
"""

from .jwt import (
    create_jwt, verify_jwt, create_identity_token, verify_identity_token,
    extract_bearer_token, JWTError, JWTExpiredError, JWTInvalidError,
)
from .hash import secure_hash, hash_string, HashChain, HashError

__all__ = [
    "create_jwt",
    "verify_jwt",
    "create_identity_token",
    "verify_identity_token",
    "extract_bearer_token",
    "JWTError",
    "JWTExpiredError",
    "JWTInvalidError",
    "secure_hash",
    "hash_string",
    "HashChain",
    "HashError",
]
