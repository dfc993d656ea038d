"""
Clips API Endpoints - generated clips stored in the user's Airtable table
"""

from typing import Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from api.dependencies import (
    AnalyzerFactory,
    ClipStoreFactory,
    get_analyzer_factory,
    get_authenticated_user,
    get_clip_store_factory,
    get_settings_service,
    handle_service_error,
    setup_request_context,
)
from core.audit import log_clip_delete
from core.exceptions import RepurposeException, ValidationError
from core.logging import get_logger
from domain.schemas import AnalysisResult, AnalyzeRequest, Clip, UserProfile
from services.settings_service import SettingsService

logger = get_logger("clips_api")
router = APIRouter(prefix="/clips", tags=["Clips"])


@router.get("", response_model=List[Clip])
async def list_clips(
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    clip_store_factory: ClipStoreFactory = Depends(get_clip_store_factory),
) -> List[Clip]:
    """List the user's clips that have a video"""
    try:
        clip_store = clip_store_factory(current_user.id, settings_service)
        return await clip_store.list_clips()
    except RepurposeException as e:
        raise handle_service_error(e)


@router.get("/{clip_id}/download")
async def download_clip(
    clip_id: str,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    clip_store_factory: ClipStoreFactory = Depends(get_clip_store_factory),
) -> StreamingResponse:
    """Proxy the clip's video so browsers can save it"""
    try:
        clip_store = clip_store_factory(current_user.id, settings_service)
        attachment = await clip_store.get_attachment(clip_id)
        body, headers = await clip_store.stream_attachment(attachment)
    except RepurposeException as e:
        raise handle_service_error(e)

    logger.info(f"Streaming clip {clip_id}", extra={"user_id": current_user.id})
    return StreamingResponse(
        body,
        media_type=headers["Content-Type"],
        headers={"Content-Disposition": headers["Content-Disposition"]},
    )


@router.delete("/{clip_id}")
async def delete_clip(
    clip_id: str,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    clip_store_factory: ClipStoreFactory = Depends(get_clip_store_factory),
) -> Dict[str, bool]:
    """Delete a clip record from Airtable"""
    try:
        clip_store = clip_store_factory(current_user.id, settings_service)
        await clip_store.delete_clip(clip_id)
    except RepurposeException as e:
        raise handle_service_error(e)

    log_clip_delete(current_user.id, clip_id)
    return {"success": True}


@router.post("/{clip_id}/analyze", response_model=AnalysisResult)
async def analyze_clip(
    clip_id: str,
    body: AnalyzeRequest,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
    analyzer_factory: AnalyzerFactory = Depends(get_analyzer_factory),
) -> AnalysisResult:
    """Score the clip transcript and suggest hooks"""
    try:
        if not body.transcript or not body.transcript.strip():
            raise ValidationError("No transcript provided")

        analyzer = analyzer_factory(current_user.id, settings_service)
        result = await analyzer.analyze(body.transcript)
    except RepurposeException as e:
        raise handle_service_error(e)

    logger.info(
        f"Analyzed clip {clip_id}: score {result.virality_score}",
        extra={"user_id": current_user.id},
    )
    return result
