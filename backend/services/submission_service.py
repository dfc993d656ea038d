"""
Submission Service - forwards video URL submissions to the user's webhook as JSON
"""

from typing import Any, Dict, Optional

from core.constants import DEFAULT_FILE_NAME
from core.exceptions import ValidationError
from core.logging import get_logger
from domain.interfaces import IWebhookForwarder
from domain.schemas import StorageVideoRequest, SubmitVideoRequest
from services.webhook_service import WebhookService, success_message

logger = get_logger("submission_service")

URL_VIDEO_TYPES = ("youtube", "url")


def _require_clip_configuration(*values: Any) -> None:
    if not all(values):
        raise ValidationError("Missing clip configuration")


class SubmissionService:
    """Validates URL submissions and posts them to the webhook"""

    def __init__(self, forwarder: Optional[IWebhookForwarder] = None) -> None:
        self.forwarder = forwarder or WebhookService()

    async def submit_video(self, webhook_url: str, request: SubmitVideoRequest) -> Dict[str, Any]:
        """Forward a YouTube or public URL submission unchanged"""
        if not request.video_type:
            raise ValidationError("Missing video_type")

        if request.video_type not in URL_VIDEO_TYPES or not request.video_url:
            raise ValidationError("Use /api/v1/upload-video for file uploads")

        _require_clip_configuration(request.clip_size, request.clip_duration, request.clip_count)

        payload = request.model_dump(exclude_none=True)
        body_text = await self.forwarder.post_json(webhook_url, payload)

        logger.info(f"Submitted {request.video_type} video to webhook")
        return {"success": True, "message": success_message(body_text)}

    async def submit_storage_video(
        self, webhook_url: str, request: StorageVideoRequest
    ) -> Dict[str, Any]:
        """Forward a video previously uploaded to object storage"""
        if not request.video_url:
            raise ValidationError("Missing video URL")

        _require_clip_configuration(request.clip_size, request.clip_duration, request.clip_count)

        payload = {
            "video_type": "url",
            "video_url": request.video_url,
            "file_name": request.file_name or DEFAULT_FILE_NAME,
            "clip_size": request.clip_size,
            "clip_duration": request.clip_duration,
            "clip_count": request.clip_count,
        }
        body_text = await self.forwarder.post_json(webhook_url, payload)

        logger.info("Submitted storage video to webhook")
        return {"success": True, "message": success_message(body_text)}
