"""
Settings Service - per-user integration settings
Encrypts third-party API keys before they are stored and masks them on read
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from core.audit import log_settings_update
from core.constants import (
    MASK_PREFIX,
    MASKED_SECRET,
    OPENAI_NOT_CONFIGURED_MESSAGE,
    WEBHOOK_NOT_CONFIGURED_MESSAGE,
)
from core.crypto import CredentialCipher, DecryptStatus, get_credential_cipher
from core.exceptions import IntegrationNotConfiguredError, ValidationError
from core.logging import get_logger
from domain.schemas import SettingsResponse, SettingsUpdate
from infrastructure.database import UserSettings, get_db_session
from infrastructure.repositories import UserSettingsRepository

logger = get_logger("settings_service")

# (request field, clear flag, stored column)
SECRET_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("airtable_api_key", "clear_api_key", "airtable_api_key"),
    ("openai_api_key", "clear_openai_key", "openai_api_key"),
)


@dataclass(frozen=True)
class AirtableCredentials:
    api_key: str
    base_id: str
    table_name: str


def mask_secret(stored: Optional[str]) -> str:
    return MASKED_SECRET if stored else ""


class SettingsService:
    """Reads and writes user settings"""

    def __init__(self, cipher: Optional[CredentialCipher] = None) -> None:
        self._cipher = cipher

    @property
    def cipher(self) -> CredentialCipher:
        return self._cipher or get_credential_cipher()

    def _load(self, user_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as db:
            row = UserSettingsRepository(db).get_for_user(user_id)
            return self._row_to_dict(row) if row else None

    @staticmethod
    def _row_to_dict(row: UserSettings) -> Dict[str, Any]:
        return {
            "webhook_url": row.webhook_url,
            "airtable_api_key": row.airtable_api_key,
            "airtable_base_id": row.airtable_base_id,
            "airtable_table_name": row.airtable_table_name,
            "openai_api_key": row.openai_api_key,
        }

    def get_settings(self, user_id: str) -> SettingsResponse:
        """Settings for display; stored secrets are never returned"""
        stored = self._load(user_id)
        if stored is None:
            return SettingsResponse()

        return SettingsResponse(
            webhook_url=stored["webhook_url"] or "",
            airtable_api_key=mask_secret(stored["airtable_api_key"]),
            airtable_base_id=stored["airtable_base_id"] or "",
            airtable_table_name=stored["airtable_table_name"] or "",
            openai_api_key=mask_secret(stored["openai_api_key"]),
            has_api_key=bool(stored["airtable_api_key"]),
            has_openai_key=bool(stored["openai_api_key"]),
        )

    def _resolve_secret(
        self, submitted: Optional[str], clear: bool, existing: Optional[str]
    ) -> Optional[str]:
        """Stored value for a secret after a save request"""
        if clear:
            return None
        if submitted and not submitted.startswith(MASK_PREFIX):
            return self.cipher.encrypt(submitted) or None
        return existing

    def save_settings(self, user_id: str, update: SettingsUpdate) -> None:
        """
        Upsert the user's settings

        Args:
            user_id: Owner of the settings
            update: Submitted values; masked or empty secrets keep their stored value

        Raises:
            ConfigurationError: If a new secret arrives and no encryption key is set
        """
        changed: List[str] = []
        cleared: List[str] = []

        with get_db_session() as db:
            repository = UserSettingsRepository(db)
            row = repository.get_for_user(user_id)
            existing = self._row_to_dict(row) if row else {}

            values: Dict[str, Any] = {"webhook_url": update.webhook_url}
            for column in ("airtable_base_id", "airtable_table_name"):
                if column in update.model_fields_set:
                    values[column] = (getattr(update, column) or "").strip() or None

            for field, clear_flag, column in SECRET_FIELDS:
                previous = existing.get(column)
                clear = bool(getattr(update, clear_flag))
                values[column] = self._resolve_secret(getattr(update, field), clear, previous)

                if clear and previous:
                    cleared.append(column)
                elif values[column] != previous:
                    changed.append(column)

            for column in ("webhook_url", "airtable_base_id", "airtable_table_name"):
                if column in values and values[column] != existing.get(column):
                    changed.append(column)

            repository.upsert(user_id, values)

        logger.info(f"Saved settings for user {user_id}", extra={"user_id": user_id})
        log_settings_update(user_id, changed, cleared)

    def get_webhook_url(self, user_id: str) -> str:
        """
        Raises:
            IntegrationNotConfiguredError: If the user has no webhook URL
        """
        stored = self._load(user_id)
        webhook_url = stored["webhook_url"] if stored else None
        if not webhook_url:
            raise IntegrationNotConfiguredError(WEBHOOK_NOT_CONFIGURED_MESSAGE)
        return str(webhook_url)

    def get_airtable_credentials(self, user_id: str) -> AirtableCredentials:
        """
        Raises:
            IntegrationNotConfiguredError: If any Airtable setting is missing
            ValidationError: If the stored key cannot be decrypted
        """
        stored = self._load(user_id) or {}
        if not (
            stored.get("airtable_api_key")
            and stored.get("airtable_base_id")
            and stored.get("airtable_table_name")
        ):
            raise IntegrationNotConfiguredError("Airtable not configured")

        result = self.cipher.decrypt_result(stored["airtable_api_key"])
        if result.status is not DecryptStatus.OK or not result.plaintext:
            raise ValidationError("Invalid API key configuration")

        return AirtableCredentials(
            api_key=result.plaintext,
            base_id=stored["airtable_base_id"],
            table_name=stored["airtable_table_name"],
        )

    def get_openai_api_key(self, user_id: str) -> str:
        """
        Raises:
            IntegrationNotConfiguredError: If no OpenAI key is stored
            ValidationError: If the stored key cannot be decrypted
        """
        stored = self._load(user_id) or {}
        if not stored.get("openai_api_key"):
            raise IntegrationNotConfiguredError(OPENAI_NOT_CONFIGURED_MESSAGE)

        result = self.cipher.decrypt_result(stored["openai_api_key"])
        if not result.ok or not result.plaintext:
            raise ValidationError("Invalid OpenAI API key configuration")

        return result.plaintext


settings_service = SettingsService()
