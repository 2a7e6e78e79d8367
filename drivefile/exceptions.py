class AuthenticationError(Exception):
    """Raised when no usable OAuth credential is held."""


class AuthExchangeError(AuthenticationError):
    """Raised when Google rejects an authorization code or refresh token."""


class NoRefreshTokenError(AuthenticationError):
    """Raised when the access token is expired and there is no refresh token."""


class UpstreamError(Exception):
    """Raised when a Drive API call fails with an HTTP status."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message
