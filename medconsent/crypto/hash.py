"""
Hashing utilities for medconsent
Secure hashing and the hash chain behind the tamper-evident audit trail
"""

import hashlib
import structlog

logger = structlog.get_logger(__name__)


class HashError(Exception):
    """Base exception for hashing-related errors"""
    pass


def secure_hash(data: bytes, algorithm: str = 'sha256') -> str:
    """
    Create secure hash of data

    Args:
        data: Data to hash
        algorithm: Hash algorithm (sha256, sha512, blake2b)

    Returns:
        Hex-encoded hash string
    """
    if algorithm == 'sha256':
        hasher = hashlib.sha256()
    elif algorithm == 'sha512':
        hasher = hashlib.sha512()
    elif algorithm == 'blake2b':
        hasher = hashlib.blake2b()
    else:
        raise HashError(f"Unsupported hash algorithm: {algorithm}")

    hasher.update(data)
    return hasher.hexdigest()


def hash_string(text: str, algorithm: str = 'sha256') -> str:
    """Hash a string using specified algorithm"""
    return secure_hash(text.encode('utf-8'), algorithm)


class HashChain:
    """Hash chain for tamper-evident logging"""

    def __init__(self, initial_hash: str, algorithm: str = 'sha256'):
        self.current_hash = initial_hash
        self.algorithm = algorithm
        self.chain_length = 0

    def add_entry(self, data: bytes) -> str:
        """Add entry to hash chain"""
        combined = self.current_hash.encode('utf-8') + data
        self.current_hash = secure_hash(combined, self.algorithm)
        self.chain_length += 1

        logger.debug("Added hash chain entry",
                    length=self.chain_length,
                    hash=self.current_hash[:16])

        return self.current_hash

