"""
Custom Exception Classes for Repurpose
Provides structured error handling with consistent error responses
"""

from typing import Any, Dict, Optional


class RepurposeException(Exception):
    """Base exception class for Repurpose application"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class AuthenticationError(RepurposeException):
    """Raised when authentication fails"""

    pass


class ValidationError(RepurposeException):
    """Raised when input validation fails"""

    pass


class DuplicateResourceError(RepurposeException):
    """Raised when creating a resource that already exists"""

    pass


class ResourceNotFoundError(RepurposeException):
    """Raised when a requested resource is not found"""

    pass


class ConfigurationError(RepurposeException):
    """Raised when application configuration is invalid or missing"""

    pass


class IntegrationNotConfiguredError(ValidationError):
    """Raised when a user has not configured a third-party integration"""

    pass


class ExternalServiceError(RepurposeException):
    """Raised when external service calls fail at the network level"""

    pass


class UpstreamResponseError(RepurposeException):
    """Raised when an external service answers with a non-2xx status"""

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.status_code = status_code


class AnalysisError(UpstreamResponseError):
    """Raised when transcript analysis by the language model fails"""

    pass


class StorageError(RepurposeException):
    """Raised when object storage operations fail"""

    pass


class UploadError(RepurposeException):
    """Raised when a multipart upload cannot be parsed or stored"""

    pass


class UploadTooLargeError(UploadError):
    """Raised when an uploaded file exceeds the configured ceiling"""

    pass


class DatabaseError(RepurposeException):
    """Raised when database operations fail"""

    pass
