"""Collaborator protocols the domain services depend on."""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as naive UTC, matching how timestamps are persisted."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class IPasswordHasher(Protocol):
    """Opaque password hashing capability."""

    def hash(self, plain: str) -> str:
        """Compute a digest for a plaintext password."""
        ...

    def verify(self, plain: str, digest: str) -> bool:
        """Check a plaintext password against a stored digest."""
        ...


class ITokenSigner(Protocol):
    """Signs and verifies claim sets.

    ``verify`` only checks the signature and structure; expiry is judged by
    the caller against its own clock.
    """

    def sign(self, claims: dict[str, Any]) -> str:
        """Produce a signed token for the given claims."""
        ...

    def verify(self, token: str) -> dict[str, Any]:
        """Return the claims of a correctly signed token.

        Raises:
            InvalidTokenError: If the token is malformed or the signature is bad.
        """
        ...
