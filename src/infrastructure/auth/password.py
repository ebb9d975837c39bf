"""Password hashing backed by passlib's argon2 scheme."""

import logging

from passlib.context import CryptContext

logger = logging.getLogger(__name__)


class PasslibPasswordHasher:
    """Argon2id hashing with transparent parameter upgrades on verify."""

    def __init__(self, context: CryptContext | None = None) -> None:
        self._context = context or CryptContext(
            schemes=["argon2"],
            deprecated="auto",
            argon2__time_cost=2,
            argon2__memory_cost=19456,
            argon2__parallelism=1,
        )

    def hash(self, plain: str) -> str:
        return self._context.hash(plain)

    def verify(self, plain: str, digest: str) -> bool:
        try:
            return bool(self._context.verify(plain, digest))
        except ValueError:
            # Unrecognised or corrupt digest
            logger.warning("Password digest could not be parsed")
            return False
