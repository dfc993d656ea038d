"""
Settings API Endpoints - webhook URL and third-party credentials
"""

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_authenticated_user,
    get_settings_service,
    handle_service_error,
    setup_request_context,
)
from core.exceptions import RepurposeException
from core.logging import get_logger
from domain.schemas import SettingsResponse, SettingsUpdate, SuccessResponse, UserProfile
from services.settings_service import SettingsService

logger = get_logger("settings_api")
router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
async def get_settings(
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    """Get the user's settings with API keys masked"""
    return settings_service.get_settings(current_user.id)


@router.post("", response_model=SuccessResponse)
async def save_settings(
    body: SettingsUpdate,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    settings_service: SettingsService = Depends(get_settings_service),
) -> SuccessResponse:
    """Save settings; new API keys are encrypted before storage"""
    try:
        settings_service.save_settings(current_user.id, body)
    except RepurposeException as e:
        raise handle_service_error(e)

    return SuccessResponse()
