"""JWT token signer implementation.

Access token payload structure:
    {
        "sub": "account-uuid",
        "email": "user@example.com",
        "workspace_id": "workspace-uuid" | null,
        "role": "owner" | "admin" | "member" | "guest" | null,
        "sid": "lineage-uuid",
        "iat": 1234567000,
        "exp": 1234567890,
        "type": "access",
        "iss": "warden"
    }
"""

import logging
from typing import Any

from jose import JWTError, jwt

from core.config import settings
from core.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)


class JWTSigner:
    """HS256 signer backed by python-jose.

    ``verify`` checks signature, algorithm and issuer only. Expiry is left to
    the caller so it can be judged against an injected clock.
    """

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        issuer: str = settings.jwt_issuer,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._issuer = issuer

    def sign(self, claims: dict[str, Any]) -> str:
        """
        Sign a claim set.

        Args:
            claims: The token claims; ``iss`` is added.

        Returns:
            The encoded JWT string
        """
        payload = {**claims, "iss": self._issuer}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Decode a JWT and verify its signature.

        Args:
            token: The JWT to verify

        Returns:
            The token claims

        Raises:
            InvalidTokenError: If the token is malformed, signed with another
                key or algorithm, or issued by someone else.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                issuer=self._issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as exc:
            logger.debug("JWT rejected: %s", exc)
            raise InvalidTokenError() from exc
        return payload
