"""
Custom exception classes
"""
from fastapi import HTTPException


class ValidationError(HTTPException):
    """Raised when input shape, type or length is invalid"""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class AuthenticationError(HTTPException):
    """Raised when the session token is missing or invalid"""
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=401,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDeniedError(HTTPException):
    """Raised when user doesn't own resource or lacks the role"""
    def __init__(self, detail: str = "You don't have permission to access this resource"):
        super().__init__(status_code=403, detail=detail)


class NotFoundError(HTTPException):
    """Raised when a case, attachment or approval doesn't exist"""
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class CaseNotFoundError(NotFoundError):
    def __init__(self, case_id: str):
        super().__init__(detail=f"Case {case_id} not found")


class CaseStateConflictError(HTTPException):
    """Raised when a case is not in the state an operation requires"""
    def __init__(self, case_id: str, current_status: str):
        super().__init__(
            status_code=409,
            detail=f"Case {case_id} cannot be processed from status '{current_status}'",
        )


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)


class PayloadTooLargeError(HTTPException):
    """Raised when a file exceeds the size cap"""
    def __init__(self, filename: str, max_bytes: int):
        super().__init__(
            status_code=413,
            detail=f"File {filename} exceeds the maximum size of {max_bytes // (1024 * 1024)}MB",
        )


class UnsupportedMediaError(HTTPException):
    """Raised when a content type is outside the allow-list"""
    def __init__(self, content_type: str):
        super().__init__(
            status_code=415,
            detail=f"File type {content_type or 'unknown'} is not supported",
        )


class UpstreamProviderError(HTTPException):
    """Raised when every configured AI provider failed"""
    def __init__(self, reason: str = "AI provider unavailable"):
        super().__init__(status_code=502, detail=f"AI provider error: {reason}")


class UploadFailedError(HTTPException):
    """Raised when object storage rejects an upload"""
    def __init__(self, reason: str = "Unknown error"):
        super().__init__(status_code=500, detail=f"Upload failed: {reason}")


class ProviderError(Exception):
    """A single provider attempt failed (network error or non-2xx)."""

    def __init__(self, provider: str, message: str, status_code: int = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code
