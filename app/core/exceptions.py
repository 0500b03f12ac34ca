from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details
        )


class InvalidScopeError(AppException):
    """Raised when a population scope names more than one unit or an unknown review type."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="INVALID_SCOPE",
            details=details
        )


class ReviewRunCancelled(AppException):
    def __init__(self, message: str = "Review run cancelled by caller"):
        super().__init__(
            message=message,
            status_code=409,
            error_code="REVIEW_RUN_CANCELLED"
        )
