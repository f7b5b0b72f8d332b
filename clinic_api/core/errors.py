from typing import Dict, Optional


class AppError(Exception):
    """Base for every error the API turns into a JSON response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class ConfigError(AppError):
    status_code = 500
    default_message = "Server is misconfigured"


class ConnectivityError(AppError):
    status_code = 503
    default_message = "Database is unreachable"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Unauthorized(AuthError):
    pass


class InvalidCredentials(AuthError):
    default_message = "Invalid credentials"


class InvalidToken(AuthError):
    default_message = "Invalid token"


class PersistenceError(AppError):
    status_code = 500
    default_message = "Could not store booking"


class NotificationError(AppError):
    """Mail delivery failed. Logged by the dispatcher, never returned to a client."""

    default_message = "Notification failed"


class MethodNotAllowed(AppError):
    status_code = 405
    default_message = "Method Not Allowed"

    def __init__(self, allow: str):
        super().__init__(headers={"Allow": allow})
