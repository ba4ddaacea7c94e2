"""Signed bearer tokens (JWT) carrying the user id and an expiry."""

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from config import Settings
from domain.model.errors import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


class TokenService:
    """Issue and verify access tokens with a process-wide signing key."""

    def __init__(self, settings: Settings):
        self._secret = settings.jwt_secret_key
        self._algorithm = settings.jwt_algorithm
        self.lifetime = timedelta(days=settings.jwt_expiration_days)

    def issue(self, user_id: str, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "exp": now + self.lifetime,
            "iat": now,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """Return the user id embedded in a token.

        Raises:
            TokenExpiredError: signature is valid but exp has passed
            InvalidTokenError: bad signature, malformed token or no subject
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            raise InvalidTokenError()

        user_id = payload.get("sub")
        if not user_id:
            raise InvalidTokenError()
        return user_id
