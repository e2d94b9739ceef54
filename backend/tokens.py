"""
Session tokens.

Tokens are HS256 JWTs (PyJWT) carrying the identity id as `sub`, the
username, and `iat`/`exp` as integer epoch seconds. `exp` is `now + ttl`
rounded up to the next whole second, so a token never expires early.
They are not stored anywhere; a token is valid while its signature
checks out against the process secret and the clock is before `exp`.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from pydantic import ValidationError as PydanticValidationError

from errors import InvalidToken, TokenExpired
from models import TokenClaims, UserOut

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue and verify signed, time-limited session tokens.

    Expiry is checked here against `clock` rather than inside PyJWT so
    the boundary (`now >= exp` is expired) is exact and testable.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", clock: Clock = utcnow):
        self._secret = secret
        self.algorithm = algorithm
        self.clock = clock

    def issue(self, identity: UserOut, ttl: timedelta) -> str:
        now = self.clock()
        payload = {
            "sub": identity.id,
            "username": identity.username,
            "iat": int(now.timestamp()),
            "exp": math.ceil((now + ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["sub", "exp"]},
            )
            claims = TokenClaims(**payload)
        except (jwt.InvalidTokenError, PydanticValidationError) as e:
            logger.debug("token rejected: %s", e)
            raise InvalidToken() from e

        if self.clock().timestamp() >= claims.exp:
            raise TokenExpired()
        return claims
