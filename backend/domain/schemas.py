"""
Pydantic schemas for input validation and data serialization
"""

import re
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.constants import DEFAULT_FILE_NAME
from core.security import SecurityUtils

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Clip parameters arrive from HTML forms and JSON clients as strings or numbers
ClipValue = Union[str, int, float]


# Authentication Schemas
class RegisterRequest(BaseModel):
    """Local account registration"""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class LoginRequest(BaseModel):
    """Email and password sign in"""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class UserProfile(BaseModel):
    """Public user fields"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class UserResponse(BaseModel):
    """User response wrapper"""

    user: UserProfile


# Settings Schemas
class SettingsResponse(BaseModel):
    """Settings as shown to the client; secrets are masked"""

    webhook_url: str = ""
    airtable_api_key: str = ""
    airtable_base_id: str = ""
    airtable_table_name: str = ""
    openai_api_key: str = ""
    has_api_key: bool = False
    has_openai_key: bool = False


class SettingsUpdate(BaseModel):
    """
    Settings save request

    A secret that is empty or still shows the mask keeps its stored value;
    the clear flags remove the stored value.
    """

    webhook_url: Optional[str] = Field(None, max_length=2048)
    airtable_api_key: Optional[str] = Field(None, max_length=1000)
    airtable_base_id: Optional[str] = Field(None, max_length=100)
    airtable_table_name: Optional[str] = Field(None, max_length=255)
    openai_api_key: Optional[str] = Field(None, max_length=1000)
    clear_api_key: bool = False
    clear_openai_key: bool = False

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if v and not SecurityUtils.is_http_url(v):
            raise ValueError("Webhook URL must be an http(s) URL")
        return v or None


class SuccessResponse(BaseModel):
    success: bool = True


# Clip Schemas
class Clip(BaseModel):
    """A generated clip as stored in Airtable"""

    id: str
    name: str
    transcript: str = ""
    duration: float = 0
    video_url: str
    thumbnail_url: str = ""
    file_name: str = "clip.mp4"
    file_size: int = 0
    created_at: Optional[str] = None


class AnalyzeRequest(BaseModel):
    transcript: Optional[str] = None


class AnalysisResult(BaseModel):
    """Virality analysis of a clip transcript"""

    virality_score: int = Field(..., ge=1, le=100)
    hooks: List[str] = Field(default_factory=list)
    explanation: str = ""


# Video Submission Schemas
class SubmitVideoRequest(BaseModel):
    """
    Video URL submission; forwarded to the webhook as JSON

    Fields are optional here so the route can answer missing values with
    the same 400 messages as the upload form.
    """

    model_config = ConfigDict(extra="allow")

    video_type: Optional[str] = None
    video_url: Optional[str] = None
    clip_size: Optional[ClipValue] = None
    clip_duration: Optional[ClipValue] = None
    clip_count: Optional[ClipValue] = None


class StorageVideoRequest(BaseModel):
    """Submission of a video already uploaded to object storage"""

    model_config = ConfigDict(populate_by_name=True)

    video_url: Optional[str] = Field(None, alias="videoUrl")
    file_name: Optional[str] = Field(None, alias="fileName")
    clip_size: Optional[ClipValue] = Field(None, alias="clipSize")
    clip_duration: Optional[ClipValue] = Field(None, alias="clipDuration")
    clip_count: Optional[ClipValue] = Field(None, alias="clipCount")


class UploadUrlRequest(BaseModel):
    filename: str = Field(default=DEFAULT_FILE_NAME, max_length=255)


class UploadUrlResponse(BaseModel):
    """Presigned URLs for a direct browser upload"""

    upload_url: str
    object_path: str
    download_url: str


class SubmissionResponse(BaseModel):
    success: bool = True
    message: str


# Training Video Schemas
class TrainingVideoCreate(BaseModel):
    """Training video creation request"""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    video_url: str = Field(..., min_length=1, max_length=2048)
    thumbnail_url: Optional[str] = Field(None, max_length=2048)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = SecurityUtils.sanitize_user_input(v, 200)
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return SecurityUtils.sanitize_html_input(v) or None

    @field_validator("video_url", "thumbnail_url")
    @classmethod
    def validate_urls(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not SecurityUtils.is_http_url(v):
            raise ValueError("URL must be an http(s) URL")
        return v


class TrainingVideoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None
    sort_order: int = 0
    created_at: datetime


# Health Schemas
class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    api_version: str
    database: str
