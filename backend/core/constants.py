"""
Application constants for Repurpose
Contains default values that can be overridden by environment variables
"""

# Application Info
APP_NAME = "Repurpose"
APP_VERSION = "1.0.0"

# JWT Settings (algorithms and structure, not secrets)
JWT_ALGORITHM = "HS256"
DEFAULT_JWT_EXPIRY_HOURS = 24 * 7
SESSION_COOKIE_NAME = "repurpose_session"

# Database Defaults
DEFAULT_DATABASE_URL = "sqlite:///static/db/database.db"
DEFAULT_DATABASE_POOL_SIZE = 5

# CORS Defaults
DEFAULT_CORS_ORIGINS = ["http://localhost:5000", "http://127.0.0.1:5000", "http://localhost:8000"]

# Upload relay Defaults
DEFAULT_MAX_UPLOAD_SIZE_MB = 500  # MiB
DEFAULT_UPLOAD_CHUNK_SIZE = 1024 * 1024
MAX_FORM_FIELD_SIZE = 64 * 1024
FORWARDED_VIDEO_TYPE = "mp4"
FORWARDED_CONTENT_TYPE = "video/mp4"
DEFAULT_FILE_NAME = "video.mp4"

# Outbound call Defaults
DEFAULT_WEBHOOK_TIMEOUT = 300.0
DEFAULT_EXTERNAL_API_TIMEOUT = 30.0

# Airtable Defaults
DEFAULT_AIRTABLE_API_URL = "https://api.airtable.com/v0"
DEFAULT_AIRTABLE_MAX_PAGES = 10
AIRTABLE_FINAL_CLIP_FIELD = "Final Clip"
DEFAULT_CLIP_FILE_NAME = "clip.mp4"

# OpenAI Defaults
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_MAX_TOKENS = 500

# Object storage Defaults
DEFAULT_S3_REGION = "auto"
DEFAULT_PRESIGNED_URL_EXPIRY = 900  # seconds
DEFAULT_UPLOAD_PREFIX = "uploads"

# Credential masking
MASKED_SECRET = "••••••••"
MASK_PREFIX = "••"

# Rate Limiting Defaults
DEFAULT_RATE_LIMIT_REQUESTS = 100
DEFAULT_RATE_LIMIT_WINDOW = 3  # seconds

# Server Defaults
DEFAULT_HOST = "0.0.0.0"  # nosec B104 - intentional bind to all interfaces for web server
DEFAULT_PORT = 5000
DEFAULT_SECURE_COOKIES = False  # Set to True in production with HTTPS

# Debug Defaults
DEFAULT_DEBUG = False

# Client-facing error messages
WEBHOOK_NOT_CONFIGURED_MESSAGE = (
    "Webhook URL not configured. Please add your n8n webhook URL in Settings."
)
OPENAI_NOT_CONFIGURED_MESSAGE = (
    "OpenAI API key not configured. Please add your API key in Settings."
)
