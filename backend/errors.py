"""
Typed failures raised by the services.

Services never build HTTP responses. They raise one of these and
`main.py` maps the class to a status code, so the same service code can
be driven from tests or scripts without FastAPI in the loop.
"""


class CatalogError(Exception):
    """Base class for every expected failure in this backend."""

    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CatalogError):
    default_message = "Invalid request"


class InvalidQuery(ValidationError):
    default_message = "Invalid query"


class AuthError(CatalogError):
    default_message = "Not authorized"


class Unauthenticated(AuthError):
    default_message = "No token provided"


class Forbidden(AuthError):
    default_message = "Invalid token"


class InvalidCredentials(AuthError):
    default_message = "Invalid credentials"


class InvalidToken(CatalogError):
    default_message = "Invalid token"


class TokenExpired(InvalidToken):
    default_message = "Token expired"


class DuplicateUsername(CatalogError):
    default_message = "Username already exists"


class NotFound(CatalogError):
    default_message = "Not found"


class ServerError(CatalogError):
    """The store failed; the client only ever sees the generic message."""
