"""Tagged application errors. Each carries the HTTP status it maps to."""


class AppError(Exception):
    status_code = 500
    default_message = "An internal server error occurred."

    def __init__(self, message: str = None, status_code: int = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed."


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Unauthorized: Access is denied"


class InvalidCredentials(AppError):
    # Same text for unknown mobile and wrong password.
    status_code = 401
    default_message = "Invalid mobile number or password."


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden."


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found."


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists."


class Internal(AppError):
    status_code = 500


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing."""
