"""
Error vocabulary shared by every SDK component.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes carried by SDKError."""
    UNAUTHORIZED = "unauthorized"
    INVALID_REQUEST = "invalid_request"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    INVALID_FILE = "invalid_file"
    FILE_TOO_LARGE = "file_too_large"
    UPLOAD_FAILED = "upload_failed"
    NOT_FOUND = "not_found"
    UNKNOWN_ERROR = "unknown_error"


class SDKError(Exception):
    """
    Raised for every API, validation and polling failure.

    The message and code are fixed at construction time.
    """

    def __init__(self, message: str, code: ErrorCode):
        self._message = message
        self._code = ErrorCode(code)
        super().__init__(message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def code(self) -> ErrorCode:
        return self._code

    def __str__(self) -> str:
        return f"{self._message} (Code: {self._code.value})"

    def __repr__(self) -> str:
        return f"SDKError(message={self._message!r}, code={self._code.value!r})"


class PollCancelledError(Exception):
    """Raised when a caller-supplied cancellation event stops a poll."""

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Polling cancelled for request {request_id}")
