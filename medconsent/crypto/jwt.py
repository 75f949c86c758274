"""
JWT utilities for medconsent
Identity tokens presented by callers of the HTTP surface
"""

import jwt
from datetime import datetime, timedelta, UTC
from typing import Dict, Any, Optional
import structlog

from ..config import get_registry_config

logger = structlog.get_logger(__name__)


class JWTError(Exception):
    """Base exception for JWT-related errors"""
    pass


class JWTExpiredError(JWTError):
    """Raised when JWT token has expired"""
    pass


class JWTInvalidError(JWTError):
    """Raised when JWT token is invalid"""
    pass


def create_jwt(payload: Dict[str, Any], secret_key: Optional[str] = None,
               algorithm: Optional[str] = None,
               expires_in_minutes: Optional[int] = None) -> str:
    """
    Create a JWT token

    Args:
        payload: Token payload data
        secret_key: Secret key for signing (default from config)
        algorithm: JWT algorithm (default from config)
        expires_in_minutes: Token expiry (default from config)

    Returns:
        Encoded JWT token string
    """
    config = get_registry_config()
    secret_key = secret_key or config.jwt_secret
    algorithm = algorithm or config.jwt_algorithm
    expires_in_minutes = expires_in_minutes or config.jwt_expiry_minutes

    now = datetime.now(UTC)
    token_payload = {
        **payload,
        'iat': now,
        'exp': now + timedelta(minutes=expires_in_minutes),
        'iss': config.jwt_issuer,
    }

    try:
        token = jwt.encode(token_payload, secret_key, algorithm=algorithm)
    except Exception as e:
        logger.error("JWT creation failed", error=str(e))
        raise JWTError(f"Failed to create JWT: {str(e)}")

    logger.info("Created JWT token",
               subject=payload.get('sub'),
               expires_in=expires_in_minutes)
    return token


def verify_jwt(token: str, secret_key: Optional[str] = None,
               algorithm: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify and decode a JWT token

    Raises:
        JWTExpiredError: If token has expired
        JWTInvalidError: If token is invalid
    """
    config = get_registry_config()
    secret_key = secret_key or config.jwt_secret
    algorithm = algorithm or config.jwt_algorithm

    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[algorithm],
            issuer=config.jwt_issuer,
            options={
                'verify_signature': True,
                'verify_exp': True,
                'verify_iat': True,
                'require': ['exp', 'iat', 'sub'],
            }
        )
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token expired")
        raise JWTExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("JWT token invalid", error=str(e))
        raise JWTInvalidError(f"Invalid token: {str(e)}")

    logger.debug("JWT token verified", subject=payload.get('sub'))
    return payload


def create_identity_token(identity: str, secret_key: Optional[str] = None,
                          expires_in_minutes: Optional[int] = None) -> str:
    """Create a token allowing the bearer to act as ``identity``"""
    return create_jwt({'sub': identity, 'type': 'identity'}, secret_key,
                      expires_in_minutes=expires_in_minutes)


def verify_identity_token(token: str, secret_key: Optional[str] = None) -> str:
    """Verify an identity token and return the identity it grants"""
    payload = verify_jwt(token, secret_key)

    if payload.get('type') != 'identity':
        raise JWTInvalidError("Not an identity token")

    return payload['sub']


def extract_bearer_token(authorization_header: Optional[str]) -> str:
    """Extract JWT token from Authorization header"""
    if not authorization_header:
        raise JWTInvalidError("No authorization header")

    if not authorization_header.startswith('Bearer '):
        raise JWTInvalidError("Invalid authorization header format")

    return authorization_header[7:]
