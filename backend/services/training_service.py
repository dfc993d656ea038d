"""
Training Service - tutorial videos shown to every user
"""

from typing import List

from core.audit import log_training_video_change
from core.logging import get_logger
from domain.schemas import TrainingVideoCreate, TrainingVideoResponse
from infrastructure.database import get_db_session
from infrastructure.repositories import TrainingVideoRepository

logger = get_logger("training_service")


class TrainingVideoService:
    def list_videos(self) -> List[TrainingVideoResponse]:
        """Newest first"""
        with get_db_session() as db:
            videos = TrainingVideoRepository(db).list_newest_first()
            return [TrainingVideoResponse.model_validate(video) for video in videos]

    def create_video(self, user_id: str, request: TrainingVideoCreate) -> TrainingVideoResponse:
        with get_db_session() as db:
            video = TrainingVideoRepository(db).create(request.model_dump())
            created = TrainingVideoResponse.model_validate(video)

        log_training_video_change(user_id, created.id, "create")
        return created

    def delete_video(self, user_id: str, video_id: str) -> None:
        """Deleting an unknown id is not an error"""
        with get_db_session() as db:
            deleted = TrainingVideoRepository(db).delete(video_id)

        if not deleted:
            logger.info(f"Training video {video_id} already absent")
            return

        log_training_video_change(user_id, video_id, "delete")


training_service = TrainingVideoService()
