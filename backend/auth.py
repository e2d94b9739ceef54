"""
Request authentication.

`AccessGuard` is a FastAPI dependency: it runs before the route handler,
resolves the caller from the `Authorization: <scheme> <token>` header and
hands the claims to the handler (and to `request.state.user`). It only
answers "who is calling"; it does no per-resource authorization.
"""

import logging

from fastapi import Header, Request
from fastapi.security.utils import get_authorization_scheme_param

from context import AppContext
from errors import Forbidden, InvalidToken, TokenExpired, Unauthenticated
from models import TokenClaims

logger = logging.getLogger(__name__)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


class AccessGuard:
    def __call__(
        self, request: Request, authorization: str | None = Header(default=None)
    ) -> TokenClaims:
        if not authorization:
            raise Unauthenticated()

        # the scheme itself is not checked, only that a token follows it
        _, token = get_authorization_scheme_param(authorization)
        if not token:
            raise Forbidden()

        try:
            claims = get_context(request).tokens.verify(token)
        except TokenExpired:
            logger.warning("expired token on %s", request.url.path)
            raise Forbidden("Token expired")
        except InvalidToken:
            logger.warning("invalid token on %s", request.url.path)
            raise Forbidden()

        request.state.user = claims
        return claims


require_user = AccessGuard()
