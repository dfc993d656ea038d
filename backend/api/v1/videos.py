"""
Video Submission API Endpoints - forward videos to the user's webhook
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.dependencies import (
    get_authenticated_user,
    get_object_storage_service,
    get_settings_service,
    get_submission_service,
    get_upload_relay_service,
    handle_service_error,
    setup_request_context,
)
from core.audit import log_video_submission
from core.exceptions import RepurposeException, StorageError
from core.logging import get_logger
from domain.schemas import (
    StorageVideoRequest,
    SubmissionResponse,
    SubmitVideoRequest,
    UploadUrlRequest,
    UploadUrlResponse,
    UserProfile,
)
from services.object_storage_service import ObjectStorageService
from services.settings_service import SettingsService
from services.submission_service import SubmissionService
from services.upload_relay_service import UploadRelayService

logger = get_logger("videos_api")
router = APIRouter(tags=["Videos"])


@router.post("/submit-video", response_model=SubmissionResponse)
async def submit_video(
    body: SubmitVideoRequest,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> Dict[str, Any]:
    """Submit a YouTube or public video URL"""
    try:
        webhook_url = settings_service.get_webhook_url(current_user.id)
        result = await submission_service.submit_video(webhook_url, body)
    except RepurposeException as e:
        raise handle_service_error(e)

    log_video_submission(current_user.id, str(body.video_type), video_url=body.video_url)
    return result


@router.post("/submit-storage-video", response_model=SubmissionResponse)
async def submit_storage_video(
    body: StorageVideoRequest,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> Dict[str, Any]:
    """Submit a video previously uploaded to object storage"""
    try:
        webhook_url = settings_service.get_webhook_url(current_user.id)
        result = await submission_service.submit_storage_video(webhook_url, body)
    except RepurposeException as e:
        raise handle_service_error(e)

    log_video_submission(current_user.id, "url", video_url=body.video_url, file_name=body.file_name)
    return result


@router.post("/objects/upload-url", response_model=UploadUrlResponse)
async def create_upload_url(
    body: UploadUrlRequest,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    storage: ObjectStorageService = Depends(get_object_storage_service),
) -> UploadUrlResponse:
    """Presigned URLs for uploading a large video straight to object storage"""
    try:
        urls = storage.create_upload_urls(body.filename)
    except StorageError as e:
        logger.error(f"Error getting upload URL: {e.message}", extra={"user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get upload URL",
        )

    return UploadUrlResponse(**urls)


@router.post("/upload-video", response_model=SubmissionResponse)
async def upload_video(
    request: Request,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    relay_service: UploadRelayService = Depends(get_upload_relay_service),
) -> Dict[str, Any]:
    """Stream a video file upload through to the webhook"""
    try:
        webhook_url = settings_service.get_webhook_url(current_user.id)
        result = await relay_service.relay(
            request.headers.get("content-type", ""), request.stream(), webhook_url
        )
    except RepurposeException as e:
        raise handle_service_error(e)
    except Exception as e:
        logger.error(f"Upload error: {type(e).__name__}: {e}", extra={"user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload failed"
        )

    log_video_submission(current_user.id, "mp4")
    return result
