"""
Repository pattern implementation for Repurpose
Data access layer for users, integration settings and training videos
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from core.security import SecurityUtils
from infrastructure.database import TrainingVideo, User, UserSettings

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base repository with common operations"""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _sanitize_string_input(self, input_str: Optional[str], max_length: int = 200) -> str:
        """Sanitize string input for database storage"""
        if not input_str:
            return ""
        return SecurityUtils.sanitize_user_input(input_str, max_length)


class UserRepository(BaseRepository):
    """Repository for user operations"""

    def get_by_id(self, user_id: str) -> Optional[User]:
        if not user_id or len(user_id) > 100:
            return None

        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None

        return self.session.query(User).filter(User.email == email.strip().lower()).first()

    def create(
        self,
        email: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        """Create a local account; callers check for duplicates first"""
        email = self._sanitize_string_input(email, 255).lower()
        if not email or not password_hash:
            raise ValueError("Email and password hash are required")

        user = User(
            email=email,
            password_hash=password_hash,
            first_name=self._sanitize_string_input(first_name, 100) or None,
            last_name=self._sanitize_string_input(last_name, 100) or None,
        )
        self.session.add(user)
        self.session.flush()

        logger.info(f"Created user {user.id}")
        return user


class UserSettingsRepository(BaseRepository):
    """Repository for per-user integration settings"""

    def get_for_user(self, user_id: str) -> Optional[UserSettings]:
        return self.session.query(UserSettings).filter(UserSettings.user_id == user_id).first()

    def upsert(self, user_id: str, values: Dict[str, Any]) -> UserSettings:
        """
        Create or update the user's settings row

        Args:
            user_id: Owner of the settings
            values: Column values to write; keys not present are left unchanged

        Returns:
            The persisted settings row
        """
        row = self.get_for_user(user_id)
        if row is None:
            row = UserSettings(user_id=user_id)
            self.session.add(row)
            logger.info(f"Created settings for user {user_id}")

        for column, value in values.items():
            if not hasattr(UserSettings, column):
                raise ValueError(f"Unknown settings column: {column}")
            setattr(row, column, value)

        self.session.flush()
        return row


class TrainingVideoRepository(BaseRepository):
    """Repository for tutorial videos"""

    def list_newest_first(self) -> List[TrainingVideo]:
        return (
            self.session.query(TrainingVideo)
            .order_by(desc(TrainingVideo.created_at), desc(TrainingVideo.sort_order))
            .all()
        )

    def create(self, video_data: Dict[str, Any]) -> TrainingVideo:
        for field in ("title", "video_url"):
            if not video_data.get(field):
                raise ValueError(f"Required field missing: {field}")

        video = TrainingVideo(
            title=self._sanitize_string_input(video_data["title"], 200),
            description=video_data.get("description"),
            video_url=video_data["video_url"],
            thumbnail_url=video_data.get("thumbnail_url"),
            sort_order=video_data.get("sort_order") or 0,
        )
        self.session.add(video)
        self.session.flush()

        logger.info(f"Created training video {video.id}")
        return video

    def delete(self, video_id: str) -> bool:
        video = self.session.get(TrainingVideo, video_id)
        if video is None:
            return False

        self.session.delete(video)
        self.session.flush()
        logger.info(f"Deleted training video {video_id}")
        return True
