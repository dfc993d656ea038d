import asyncio
from typing import Any, Dict, List

import httpx
import pytest

from api.dependencies import ClipStoreFactory, get_clip_store_factory
from conftest import register
from core.config import settings
from core.exceptions import ExternalServiceError, ResourceNotFoundError, UpstreamResponseError
from infrastructure.database import get_db_session
from infrastructure.repositories import UserSettingsRepository
from main import app
from services.airtable_service import AirtableService, record_to_clip
from services.settings_service import AirtableCredentials, SettingsService

VIDEO_URL = "https://dl.airtable.com/attachments/clip-one.mp4"


def clip_record(record_id: str, video_url: str = VIDEO_URL, **fields: Any) -> Dict[str, Any]:
    attachment = {
        "url": video_url,
        "filename": f"{record_id}.mp4",
        "size": 2048,
        "type": "video/mp4",
        "thumbnails": {
            "small": {"url": f"https://dl.airtable.com/{record_id}-small.jpg"},
            "large": {"url": f"https://dl.airtable.com/{record_id}-large.jpg"},
        },
    }
    return {
        "id": record_id,
        "createdTime": "2024-05-01T10:00:00.000Z",
        "fields": {"Final Clip": [attachment] if video_url else [], **fields},
    }


class FakeAirtable:
    """Serves a clip table and its attachments through httpx.MockTransport"""

    def __init__(self, pages: List[List[Dict[str, Any]]], status_code: int = 200) -> None:
        self.pages = pages
        self.status_code = status_code
        self.requests: List[httpx.Request] = []
        self.deleted: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "NOT_AUTHORIZED"})

        url = str(request.url)
        if url.startswith(VIDEO_URL):
            return httpx.Response(200, content=b"mp4-bytes" * 10, headers={"content-type": "video/mp4"})

        if request.method == "DELETE":
            self.deleted.append(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(200, json={"deleted": True})

        path = request.url.path
        if path != "/v0/appBase/Clips":
            record_id = path.rsplit("/", 1)[-1]
            for page in self.pages:
                for record in page:
                    if record["id"] == record_id:
                        return httpx.Response(200, json=record)
            return httpx.Response(404, json={"error": "NOT_FOUND"})

        index = int(request.url.params.get("offset", "0"))
        body: Dict[str, Any] = {"records": self.pages[index]}
        if index + 1 < len(self.pages):
            body["offset"] = str(index + 1)
        return httpx.Response(200, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class MockClipStoreFactory(ClipStoreFactory):
    def __init__(self, airtable: FakeAirtable) -> None:
        self.airtable = airtable

    def __call__(self, user_id: str, settings_service: SettingsService) -> AirtableService:
        credentials = settings_service.get_airtable_credentials(user_id)
        return AirtableService(credentials, transport=self.airtable.transport)


@pytest.fixture()
def airtable_client(auth_client):
    response = auth_client.post(
        "/api/v1/settings",
        json={"airtable_api_key": "keyABC123", "airtable_base_id": "appBase", "airtable_table_name": "Clips"},
    )
    assert response.status_code == 200
    return auth_client


def use_airtable(airtable: FakeAirtable) -> None:
    app.dependency_overrides[get_clip_store_factory] = lambda: MockClipStoreFactory(airtable)


def test_record_to_clip_maps_fields() -> None:
    clip = record_to_clip(
        clip_record("rec1", **{"Clip Description": "Big reveal", "Transcript": "hello", "Duration": "12.5"})
    )

    assert clip is not None
    assert clip.id == "rec1"
    assert clip.name == "Big reveal"
    assert clip.transcript == "hello"
    assert clip.duration == 12.5
    assert clip.video_url == VIDEO_URL
    assert clip.thumbnail_url == "https://dl.airtable.com/rec1-large.jpg"
    assert clip.file_name == "rec1.mp4"
    assert clip.file_size == 2048
    assert clip.created_at == "2024-05-01T10:00:00.000Z"


def test_record_to_clip_name_fallbacks() -> None:
    assert record_to_clip(clip_record("r", Name="From Name")).name == "From Name"
    assert record_to_clip(clip_record("r", name="lowercase")).name == "lowercase"
    assert record_to_clip(clip_record("r")).name == "Untitled Clip"


def test_record_without_video_is_skipped() -> None:
    assert record_to_clip(clip_record("r", video_url="")) is None
    assert record_to_clip({"id": "r", "fields": {}}) is None


def test_clips_require_authentication(client) -> None:
    assert client.get("/api/v1/clips").status_code == 401


def test_clips_require_airtable_settings(auth_client) -> None:
    response = auth_client.get("/api/v1/clips")

    assert response.status_code == 400
    assert response.json()["detail"] == "Airtable not configured"


def test_list_clips_follows_pages_and_filters(airtable_client) -> None:
    airtable = FakeAirtable(
        [
            [clip_record("rec1", Name="One"), clip_record("recEmpty", video_url="")],
            [clip_record("rec2", Name="Two")],
        ]
    )
    use_airtable(airtable)

    response = airtable_client.get("/api/v1/clips")

    assert response.status_code == 200
    assert [clip["id"] for clip in response.json()] == ["rec1", "rec2"]
    assert len(airtable.requests) == 2
    assert airtable.requests[0].headers["Authorization"] == "Bearer keyABC123"


def test_list_clips_reports_airtable_status(airtable_client) -> None:
    use_airtable(FakeAirtable([[]], status_code=403))

    response = airtable_client.get("/api/v1/clips")

    assert response.status_code == 403
    assert response.json()["detail"] == "Failed to fetch clips from Airtable"


def test_undecryptable_key_is_rejected(client) -> None:
    user = register(client)
    with get_db_session() as db:
        UserSettingsRepository(db).upsert(
            str(user["id"]),
            {"airtable_api_key": "garbage", "airtable_base_id": "appBase", "airtable_table_name": "Clips"},
        )
    use_airtable(FakeAirtable([[]]))

    response = client.get("/api/v1/clips")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid API key configuration"


def test_download_streams_attachment(airtable_client) -> None:
    use_airtable(FakeAirtable([[clip_record("rec1")]]))

    response = airtable_client.get("/api/v1/clips/rec1/download")

    assert response.status_code == 200
    assert response.content == b"mp4-bytes" * 10
    assert response.headers["content-type"].startswith("video/mp4")
    assert response.headers["content-disposition"] == 'attachment; filename="rec1.mp4"'


def test_download_without_video(airtable_client) -> None:
    use_airtable(FakeAirtable([[clip_record("rec1", video_url="")]]))

    response = airtable_client.get("/api/v1/clips/rec1/download")

    assert response.status_code == 404
    assert response.json()["detail"] == "Video not found"


def test_download_unknown_clip(airtable_client) -> None:
    use_airtable(FakeAirtable([[]]))

    response = airtable_client.get("/api/v1/clips/recMissing/download")

    assert response.status_code == 404
    assert response.json()["detail"] == "Failed to fetch clip"


def test_delete_clip(airtable_client) -> None:
    airtable = FakeAirtable([[clip_record("rec1")]])
    use_airtable(airtable)

    response = airtable_client.delete("/api/v1/clips/rec1")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert airtable.deleted == ["rec1"]


def test_delete_clip_failure(airtable_client) -> None:
    use_airtable(FakeAirtable([[]], status_code=422))

    response = airtable_client.delete("/api/v1/clips/rec1")

    assert response.status_code == 422
    assert response.json()["detail"] == "Failed to delete clip"


class TestAirtableService:
    credentials = AirtableCredentials(api_key="key", base_id="app Base", table_name="My Clips")

    def test_table_url_is_quoted(self) -> None:
        service = AirtableService(self.credentials)

        assert service.table_url == "https://api.airtable.com/v0/app%20Base/My%20Clips"

    def test_page_limit_stops_listing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "airtable_max_pages", 2)
        airtable = FakeAirtable([[clip_record(f"rec{i}")] for i in range(5)])
        service = AirtableService(
            AirtableCredentials("key", "appBase", "Clips"), transport=airtable.transport
        )

        clips = asyncio.run(service.list_clips())

        assert [clip.id for clip in clips] == ["rec0", "rec1"]
        assert len(airtable.requests) == 2

    def test_network_failure(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        service = AirtableService(self.credentials, transport=httpx.MockTransport(refuse))

        with pytest.raises(ExternalServiceError):
            asyncio.run(service.list_clips())

    def test_get_attachment_errors(self) -> None:
        airtable = FakeAirtable([[clip_record("rec1", video_url="")]])
        service = AirtableService(
            AirtableCredentials("key", "appBase", "Clips"), transport=airtable.transport
        )

        with pytest.raises(ResourceNotFoundError):
            asyncio.run(service.get_attachment("rec1"))
        with pytest.raises(UpstreamResponseError) as exc_info:
            asyncio.run(service.get_attachment("recMissing"))
        assert exc_info.value.status_code == 404


def test_stored_key_without_passphrase_is_rejected(
    airtable_client, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "encryption_key", None)
    monkeypatch.setattr(settings, "session_secret", None)
    monkeypatch.setattr("core.crypto._credential_cipher", None)
    use_airtable(FakeAirtable([[]]))

    response = airtable_client.get("/api/v1/clips")

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid API key configuration"
