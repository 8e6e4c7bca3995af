class AppError(Exception):
    """Error carrying the HTTP status it should be rendered with."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400

    def __init__(self, message: str = "Validation failed") -> None:
        super().__init__(message)


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AuthorizationError(AppError):
    status_code = 403

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message)


class BadGatewayError(AppError):
    status_code = 502

    def __init__(self, message: str = "Bad gateway") -> None:
        super().__init__(message)


class UpstreamFormatError(BadGatewayError):
    """The model answered, but not with a usable JSON document."""
