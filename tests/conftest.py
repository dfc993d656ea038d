"""Test configuration: environment, import paths and shared fixtures."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
BACKEND_ROOT = ROOT / "backend"

_TEST_DIR = Path(tempfile.mkdtemp(prefix="repurpose-tests-"))

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-passphrase")
os.environ["REPURPOSE_DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["REPURPOSE_UPLOAD_TEMP_DIR"] = str(_TEST_DIR / "uploads")
os.environ["REPURPOSE_RATE_LIMIT_REQUESTS"] = "100000"
os.environ["REPURPOSE_DEBUG"] = "true"

backend_path = str(BACKEND_ROOT)
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

import httpx  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from infrastructure.database import Base, db_config  # noqa: E402
from main import app  # noqa: E402

WEBHOOK_URL = "https://hooks.example.com/webhook/repurpose"


@pytest.fixture(autouse=True)
def fresh_database() -> Iterator[None]:
    """Every test starts from empty tables."""

    Base.metadata.drop_all(bind=db_config.engine)
    Base.metadata.create_all(bind=db_config.engine)
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """Unauthenticated client; dependency overrides are reset afterwards."""

    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


def register(client: TestClient, email: str = "creator@example.com") -> Dict[str, object]:
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": "correct-horse-battery", "first_name": "Casey"},
    )
    assert response.status_code == 201, response.text
    return response.json()["user"]


@pytest.fixture()
def auth_client(client: TestClient) -> TestClient:
    """Client holding a session cookie for a freshly registered user."""

    register(client)
    return client


@pytest.fixture()
def webhook_client(auth_client: TestClient) -> TestClient:
    """Signed-in client whose settings point at the test webhook."""

    response = auth_client.post("/api/v1/settings", json={"webhook_url": WEBHOOK_URL})
    assert response.status_code == 200, response.text
    return auth_client


class RecordingHandler:
    """httpx MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code: int = 200, text: str = "ok", json_body: object = None) -> None:
        self.status_code = status_code
        self.text = text
        self.json_body = json_body
        self.requests: List[httpx.Request] = []
        self.bodies: List[bytes] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.read())
        if self.json_body is not None:
            return httpx.Response(self.status_code, json=self.json_body)
        return httpx.Response(self.status_code, text=self.text)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture()
def recording_handler() -> Callable[..., RecordingHandler]:
    return RecordingHandler


def multipart_body(
    fields: Dict[str, str],
    files: Tuple[Tuple[str, bytes], ...] = (),
) -> Tuple[bytes, str]:
    """Encode a multipart/form-data body with httpx.

    Plain fields go in as file tuples without a filename, so a body with no
    file part is still multipart rather than urlencoded.
    """

    parts: List[Tuple[str, Tuple[object, ...]]] = [
        (name, (None, value)) for name, value in fields.items()
    ]
    parts.extend(("file", (filename, content, "video/mp4")) for filename, content in files)

    request = httpx.Request("POST", WEBHOOK_URL, files=parts)
    return request.read(), request.headers["Content-Type"]
