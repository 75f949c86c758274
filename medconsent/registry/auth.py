"""
Identity authentication for registry calls
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import FrozenSet, Iterator
import structlog

from ..exceptions import AuthenticationError

logger = structlog.get_logger(__name__)


class IdentityAuthenticator:
    """Verifies the current call may act as a claimed identity"""

    def require_auth(self, identity: str) -> None:
        """Raise ``AuthenticationError`` unless the call may act as ``identity``"""
        raise NotImplementedError


# Identities the current call context has proven control of
_authorized_identities: ContextVar[FrozenSet[str]] = ContextVar(
    "authorized_identities", default=frozenset()
)


class ContextAuthenticator(IdentityAuthenticator):
    """Authenticator fed by the caller's context.

    An outer layer (HTTP token verification, a test) proves control of
    identities and runs the registry call inside ``authorize``. The grant
    is local to the current thread or task.
    """

    @contextmanager
    def authorize(self, *identities: str) -> Iterator[None]:
        token = _authorized_identities.set(_authorized_identities.get() | frozenset(identities))
        try:
            yield
        finally:
            _authorized_identities.reset(token)

    def require_auth(self, identity: str) -> None:
        if identity not in _authorized_identities.get():
            logger.warning("Authentication refused", identity=identity)
            raise AuthenticationError(identity)
