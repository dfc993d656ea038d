"""
FastAPI Dependencies - Dependency injection for services and authentication
Provides clean separation of concerns and testable service injection
"""

from fastapi import Depends, HTTPException, Request, status

from core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DuplicateResourceError,
    RepurposeException,
    ResourceNotFoundError,
    UploadTooLargeError,
    UpstreamResponseError,
    ValidationError,
)
from core.logging import get_logger, set_correlation_id
from domain.interfaces import IClipStore, ITranscriptAnalyzer
from domain.schemas import UserProfile
from services.airtable_service import AirtableService
from services.analysis_service import AnalysisService
from services.auth_service import get_current_user
from services.object_storage_service import ObjectStorageService, object_storage_service
from services.settings_service import SettingsService, settings_service
from services.submission_service import SubmissionService
from services.training_service import TrainingVideoService, training_service
from services.upload_relay_service import UploadRelayService

logger = get_logger("dependencies")


# Service Dependencies
def get_settings_service() -> SettingsService:
    return settings_service


def get_training_service() -> TrainingVideoService:
    return training_service


def get_object_storage_service() -> ObjectStorageService:
    return object_storage_service


def get_submission_service() -> SubmissionService:
    return SubmissionService()


def get_upload_relay_service() -> UploadRelayService:
    return UploadRelayService()


class ClipStoreFactory:
    """Builds a clip store for a user's Airtable credentials"""

    def __call__(self, user_id: str, settings: SettingsService) -> IClipStore:
        return AirtableService(settings.get_airtable_credentials(user_id))


class AnalyzerFactory:
    """Builds a transcript analyzer for a user's OpenAI key"""

    def __call__(self, user_id: str, settings: SettingsService) -> ITranscriptAnalyzer:
        return AnalysisService(settings.get_openai_api_key(user_id))


def get_clip_store_factory() -> ClipStoreFactory:
    return ClipStoreFactory()


def get_analyzer_factory() -> AnalyzerFactory:
    return AnalyzerFactory()


# Request Context Dependencies
async def setup_request_context(request: Request) -> str:
    """Set up request context and correlation ID"""
    correlation_id = request.headers.get("X-Correlation-ID")
    if not correlation_id:
        correlation_id = set_correlation_id()
    else:
        set_correlation_id(correlation_id)

    logger.debug(f"Request {request.method} {request.url.path}")

    return correlation_id


# Authentication Dependencies
async def get_authenticated_user(
    current_user: UserProfile = Depends(get_current_user),
) -> UserProfile:
    """Get authenticated user with proper error handling"""
    return current_user


# Error Handler Dependencies
def handle_service_error(e: Exception) -> HTTPException:
    """Convert service exceptions to HTTP exceptions"""
    if isinstance(e, AuthenticationError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    elif isinstance(e, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    elif isinstance(e, ResourceNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    elif isinstance(e, DuplicateResourceError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    elif isinstance(e, UploadTooLargeError):
        return HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=e.message)
    elif isinstance(e, UpstreamResponseError):
        return HTTPException(status_code=e.status_code, detail=e.message)
    elif isinstance(e, ConfigurationError):
        logger.error(f"Configuration error: {e.message}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server is not configured for this operation",
        )
    elif isinstance(e, RepurposeException):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    else:
        logger.error(f"Unhandled exception: {type(e).__name__}: {e}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred",
        )
