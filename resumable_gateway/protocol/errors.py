"""Custom exceptions for the streaming gateway."""

from .messages import ErrorCode


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class InvalidRequestError(GatewayError):
    """Raised when a start request body is malformed."""

    def __init__(self, message: str):
        super().__init__(
            ErrorCode.INVALID_REQUEST,
            message,
        )


class SessionNotFoundError(GatewayError):
    """Raised when session is not found."""

    def __init__(self, session_id: str | None):
        self.session_id = session_id
        super().__init__(
            ErrorCode.SESSION_NOT_FOUND,
            f"Session '{session_id}' not found",
        )


class UpstreamFailureError(GatewayError):
    """Raised when the upstream completion call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(
            ErrorCode.UPSTREAM_FAILURE,
            message,
        )


class MalformedUpstreamFragmentError(GatewayError):
    """Raised when a single upstream fragment cannot be decoded."""

    def __init__(self, fragment: str, reason: str):
        self.fragment = fragment
        super().__init__(
            ErrorCode.MALFORMED_FRAGMENT,
            f"Malformed upstream fragment: {reason}",
        )
