class AuthError(Exception):
    """
    Base class for auth failures that map directly to an HTTP response.
    `message` is safe to show to the client.
    """

    status_code = 400
    message = "Bad Request"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(AuthError):
    status_code = 400
    message = "Invalid request"


class InvalidCredentials(AuthError):
    # Same message for unknown identifier and wrong password
    status_code = 401
    message = "Invalid credentials"


class NoPendingLogin(AuthError):
    status_code = 401
    message = "No pending login"


class InvalidCode(AuthError):
    status_code = 401
    message = "Invalid code"


class Unauthorized(AuthError):
    status_code = 401
    message = "Unauthorized"


class CsrfRejected(AuthError):
    status_code = 403
    message = "Invalid CSRF token"


class RateLimited(AuthError):
    status_code = 429
    message = "Too many attempts"
