from typing import Optional, Any

class GymDeskError(Exception):
    """
    Base exception for GymDesk application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(GymDeskError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class ValidationError(GymDeskError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ConflictError(GymDeskError):
    """
    Raised when a record with the same key already exists.
    """
    def __init__(self, message: str = "Record already exists", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)

class StoreWriteError(GymDeskError):
    """
    Raised when a write to the record store fails.
    """
    def __init__(self, message: str = "Record store write failed", details: Optional[Any] = None):
        super().__init__(message, code="STORE_WRITE_FAILED", status_code=503, details=details)
