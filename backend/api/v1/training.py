"""
Training Videos API Endpoints
"""

from typing import Dict, List

from fastapi import APIRouter, Depends

from api.dependencies import get_authenticated_user, get_training_service, setup_request_context
from domain.schemas import TrainingVideoCreate, TrainingVideoResponse, UserProfile
from services.training_service import TrainingVideoService

router = APIRouter(prefix="/training-videos", tags=["Training"])


@router.get("", response_model=List[TrainingVideoResponse])
async def list_training_videos(
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    training_service: TrainingVideoService = Depends(get_training_service),
) -> List[TrainingVideoResponse]:
    return training_service.list_videos()


@router.post("", response_model=TrainingVideoResponse)
async def create_training_video(
    body: TrainingVideoCreate,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    training_service: TrainingVideoService = Depends(get_training_service),
) -> TrainingVideoResponse:
    return training_service.create_video(current_user.id, body)


@router.delete("/{video_id}")
async def delete_training_video(
    video_id: str,
    _: str = Depends(setup_request_context),
    current_user: UserProfile = Depends(get_authenticated_user),
    training_service: TrainingVideoService = Depends(get_training_service),
) -> Dict[str, bool]:
    training_service.delete_video(current_user.id, video_id)
    return {"success": True}
