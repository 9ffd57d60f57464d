"""Auth and generation error taxonomy.

Token errors are fine-grained and stay inside the service layer; SessionService
turns them into the coarse errors below, which routers map to HTTP responses.
"""


class AuthError(Exception):
    """Base class; ``detail`` is the message safe to show to clients."""

    detail = "Authentication error"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class TokenError(AuthError):
    detail = "Invalid token"


class MalformedToken(TokenError):
    detail = "Malformed token"


class InvalidSignature(TokenError):
    detail = "Invalid token signature"


class TokenExpired(TokenError):
    detail = "Token expired"


class KindMismatch(TokenError):
    detail = "Wrong token type"


class InvalidCredentials(AuthError):
    detail = "Incorrect email or password"


class LogoutFailed(AuthError):
    detail = "Logout failed"


class Unauthorized(AuthError):
    detail = "Please authenticate"


class EmailAlreadyTaken(Exception):
    detail = "Email is already taken"


class ModelOverloaded(Exception):
    detail = "Model overloaded"
