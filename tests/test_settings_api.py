from conftest import WEBHOOK_URL, register
from core.constants import MASKED_SECRET
from core.crypto import get_credential_cipher
from infrastructure.database import UserSettings, get_db_session


def stored_settings(email: str = "creator@example.com") -> UserSettings:
    from infrastructure.repositories import UserRepository, UserSettingsRepository

    with get_db_session() as db:
        user = UserRepository(db).get_by_email(email)
        row = UserSettingsRepository(db).get_for_user(user.id)
        db.expunge(row)
        return row


def test_settings_require_authentication(client) -> None:
    assert client.get("/api/v1/settings").status_code == 401
    assert client.post("/api/v1/settings", json={}).status_code == 401


def test_defaults_before_first_save(auth_client) -> None:
    response = auth_client.get("/api/v1/settings")

    assert response.status_code == 200
    assert response.json() == {
        "webhook_url": "",
        "airtable_api_key": "",
        "airtable_base_id": "",
        "airtable_table_name": "",
        "openai_api_key": "",
        "has_api_key": False,
        "has_openai_key": False,
    }


def test_save_encrypts_and_masks_keys(auth_client) -> None:
    response = auth_client.post(
        "/api/v1/settings",
        json={
            "webhook_url": WEBHOOK_URL,
            "airtable_api_key": "keyABC123",
            "airtable_base_id": "appBase",
            "airtable_table_name": "Clips",
            "openai_api_key": "sk-test-123",
        },
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    row = stored_settings()
    assert row.airtable_api_key != "keyABC123"
    assert row.openai_api_key != "sk-test-123"
    assert get_credential_cipher().decrypt(row.airtable_api_key) == "keyABC123"
    assert get_credential_cipher().decrypt(row.openai_api_key) == "sk-test-123"

    body = auth_client.get("/api/v1/settings").json()
    assert body["webhook_url"] == WEBHOOK_URL
    assert body["airtable_api_key"] == MASKED_SECRET
    assert body["openai_api_key"] == MASKED_SECRET
    assert body["airtable_base_id"] == "appBase"
    assert body["airtable_table_name"] == "Clips"
    assert body["has_api_key"] is True
    assert body["has_openai_key"] is True
    assert "keyABC123" not in str(body)


def test_masked_or_empty_keys_keep_stored_value(auth_client) -> None:
    auth_client.post(
        "/api/v1/settings",
        json={"webhook_url": WEBHOOK_URL, "airtable_api_key": "keyABC123", "openai_api_key": "sk-1"},
    )
    before = stored_settings()

    auth_client.post(
        "/api/v1/settings",
        json={"webhook_url": WEBHOOK_URL, "airtable_api_key": MASKED_SECRET, "openai_api_key": ""},
    )
    after = stored_settings()

    assert after.airtable_api_key == before.airtable_api_key
    assert after.openai_api_key == before.openai_api_key


def test_new_key_replaces_stored_value(auth_client) -> None:
    auth_client.post("/api/v1/settings", json={"webhook_url": "", "airtable_api_key": "old-key"})
    auth_client.post("/api/v1/settings", json={"webhook_url": "", "airtable_api_key": "new-key"})

    assert get_credential_cipher().decrypt(stored_settings().airtable_api_key) == "new-key"


def test_clear_flags_remove_keys(auth_client) -> None:
    auth_client.post(
        "/api/v1/settings",
        json={"webhook_url": WEBHOOK_URL, "airtable_api_key": "keyABC123", "openai_api_key": "sk-1"},
    )

    auth_client.post(
        "/api/v1/settings",
        json={"webhook_url": WEBHOOK_URL, "clear_api_key": True, "clear_openai_key": True},
    )

    body = auth_client.get("/api/v1/settings").json()
    assert body["airtable_api_key"] == ""
    assert body["openai_api_key"] == ""
    assert body["has_api_key"] is False
    assert body["has_openai_key"] is False
    assert body["webhook_url"] == WEBHOOK_URL


def test_empty_webhook_url_clears_it(auth_client) -> None:
    auth_client.post("/api/v1/settings", json={"webhook_url": WEBHOOK_URL})
    auth_client.post("/api/v1/settings", json={"webhook_url": "  "})

    assert auth_client.get("/api/v1/settings").json()["webhook_url"] == ""


def test_invalid_webhook_url_is_rejected(auth_client) -> None:
    response = auth_client.post("/api/v1/settings", json={"webhook_url": "ftp://example.com/hook"})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid input")


def test_settings_are_per_user(client) -> None:
    register(client, "first@example.com")
    client.post("/api/v1/settings", json={"webhook_url": WEBHOOK_URL})
    client.post("/api/v1/auth/logout")

    register(client, "second@example.com")

    assert client.get("/api/v1/settings").json()["webhook_url"] == ""
