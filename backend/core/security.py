"""
Security utilities for Repurpose
Handles filename and input sanitization, URL checks, and password hashing
"""

import re
from typing import Dict, List, Optional
from urllib.parse import urlparse

import bcrypt
import bleach  # type: ignore[import-untyped]

from core.logging import get_logger

logger = get_logger("security")

# bcrypt only considers the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


class SecurityUtils:
    """Utility class for security-related operations"""

    @staticmethod
    def sanitize_filename(filename: str, max_length: int = 255) -> str:
        """
        Sanitize filename so it is safe to use as part of a local path

        Args:
            filename: Original filename
            max_length: Maximum allowed filename length

        Returns:
            Sanitized filename

        Raises:
            ValueError: If nothing usable remains after sanitization
        """
        if not filename:
            raise ValueError("Filename cannot be empty")

        # Drop any client-supplied directory components
        filename = filename.replace("\\", "/").rsplit("/", 1)[-1]

        # Keep alphanumeric, dots, dashes, underscores
        sanitized = re.sub(r"[^\w\-_\.]", "_", filename)

        # Remove multiple consecutive dots/underscores
        sanitized = re.sub(r"[._]{2,}", "_", sanitized)

        # Remove leading/trailing dots and underscores
        sanitized = sanitized.strip("._")

        if not sanitized:
            raise ValueError("Filename becomes empty after sanitization")

        if len(sanitized) > max_length:
            name, ext = sanitized.rsplit(".", 1) if "." in sanitized else (sanitized, "")
            max_name_length = max_length - len(ext) - 1 if ext else max_length
            sanitized = name[:max_name_length] + ("." + ext if ext else "")

        return sanitized

    @staticmethod
    def sanitize_user_input(input_str: Optional[str], max_length: int = 1000) -> str:
        """
        Strip control characters and surrounding whitespace, truncate

        Args:
            input_str: User input string
            max_length: Maximum allowed length

        Returns:
            Sanitized string
        """
        if not input_str:
            return ""

        sanitized = "".join(char for char in input_str if ord(char) >= 32 or char in "\t\n\r")

        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length]

        return sanitized.strip()

    @staticmethod
    def sanitize_html_input(html_input: Optional[str], allowed_tags: Optional[List[str]] = None) -> str:
        """
        Sanitize HTML input to prevent XSS attacks

        Args:
            html_input: HTML string to sanitize
            allowed_tags: List of allowed HTML tags (default: very restrictive)

        Returns:
            Sanitized HTML string
        """
        if not html_input:
            return ""

        if allowed_tags is None:
            allowed_tags = ["b", "i", "em", "strong", "p", "br"]

        allowed_attributes: Dict[str, List[str]] = {}

        sanitized = bleach.clean(
            html_input, tags=allowed_tags, attributes=allowed_attributes, strip=True
        )

        return str(sanitized)

    @staticmethod
    def is_http_url(url: Optional[str]) -> bool:
        """Check that a URL is absolute http(s) with a host"""
        if not url:
            return False

        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    @staticmethod
    def sanitize_log_data(data: Optional[str], max_length: int = 1000) -> str:
        """
        Sanitize data before logging to prevent log injection

        Args:
            data: Data to sanitize
            max_length: Truncation length

        Returns:
            Sanitized data safe for logging
        """
        if not data:
            return ""

        sanitized = "".join(char for char in data if ord(char) >= 32 or char in "\t\n\r")
        sanitized = sanitized.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")

        if len(sanitized) > max_length:
            sanitized = sanitized[: max_length - 3] + "..."

        return sanitized


class PasswordHasher:
    """bcrypt password hashing"""

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]

    @classmethod
    def hash_password(cls, password: str) -> str:
        return bcrypt.hashpw(cls._encode(password), bcrypt.gensalt()).decode("utf-8")

    @classmethod
    def verify_password(cls, password: str, password_hash: Optional[str]) -> bool:
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(cls._encode(password), password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False
