import asyncio
import json
from typing import Any, Dict, List

import httpx
import pytest

from api.dependencies import AnalyzerFactory, get_analyzer_factory
from core.constants import OPENAI_NOT_CONFIGURED_MESSAGE
from core.exceptions import AnalysisError
from main import app
from services.analysis_service import AnalysisService, parse_analysis
from services.settings_service import SettingsService

ANALYSIS_REPLY = {
    "virality_score": 87,
    "hooks": ["Wait for it", "Nobody expected this", "Watch twice"],
    "explanation": "Strong hook.",
}


def completion(content: str) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
    }


class FakeOpenAI:
    def __init__(self, status_code: int = 200, body: Any = None) -> None:
        self.status_code = status_code
        self.body = body if body is not None else completion(json.dumps(ANALYSIS_REPLY))
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)

    def service(self, api_key: str = "sk-test") -> AnalysisService:
        return AnalysisService(api_key, http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)))


def api_error(status_code: int, code: str) -> FakeOpenAI:
    return FakeOpenAI(status_code, {"error": {"message": "upstream says no", "type": "error", "code": code}})


def test_analyze_returns_score_and_hooks() -> None:
    fake = FakeOpenAI()

    result = asyncio.run(fake.service().analyze("A cat learns to skateboard"))

    assert result.virality_score == 87
    assert result.hooks == ANALYSIS_REPLY["hooks"]
    assert result.explanation == "Strong hook."

    request = fake.requests[0]
    assert request.url.path.endswith("/chat/completions")
    assert request.headers["Authorization"] == "Bearer sk-test"
    sent = json.loads(request.content)
    assert sent["response_format"] == {"type": "json_object"}
    assert "A cat learns to skateboard" in sent["messages"][-1]["content"]


@pytest.mark.parametrize(
    "status_code, code, expected",
    [
        (401, "invalid_api_key", 401),
        (429, "insufficient_quota", 402),
        (429, "rate_limit_exceeded", 429),
        (500, "server_error", 500),
        (400, "bad_request", 500),
    ],
)
def test_openai_errors_are_mapped(status_code: int, code: str, expected: int) -> None:
    fake = api_error(status_code, code)

    with pytest.raises(AnalysisError) as exc_info:
        asyncio.run(fake.service().analyze("transcript"))

    assert exc_info.value.status_code == expected
    # Single attempt, no retries
    assert len(fake.requests) == 1


def test_parse_analysis_accepts_camel_case_and_clamps() -> None:
    result = parse_analysis(json.dumps({"viralityScore": 250, "hooks": ["a", "b", "c", "d"]}))

    assert result.virality_score == 100
    assert result.hooks == ["a", "b", "c"]
    assert result.explanation == ""

    assert parse_analysis('{"virality_score": 0}').virality_score == 1


@pytest.mark.parametrize("content", [None, "", "not json", "[1, 2]", '{"hooks": []}'])
def test_parse_analysis_rejects_unusable_replies(content: str) -> None:
    with pytest.raises(AnalysisError) as exc_info:
        parse_analysis(content)

    assert exc_info.value.status_code == 500


class MockAnalyzerFactory(AnalyzerFactory):
    def __init__(self, fake: FakeOpenAI) -> None:
        self.fake = fake

    def __call__(self, user_id: str, settings_service: SettingsService) -> AnalysisService:
        return self.fake.service(settings_service.get_openai_api_key(user_id))


class TestAnalyzeEndpoint:
    def test_requires_openai_key(self, auth_client) -> None:
        response = auth_client.post("/api/v1/clips/rec1/analyze", json={"transcript": "hi"})

        assert response.status_code == 400
        assert response.json()["detail"] == OPENAI_NOT_CONFIGURED_MESSAGE

    def test_requires_transcript(self, auth_client) -> None:
        auth_client.post("/api/v1/settings", json={"openai_api_key": "sk-user"})

        response = auth_client.post("/api/v1/clips/rec1/analyze", json={"transcript": "   "})

        assert response.status_code == 400
        assert response.json()["detail"] == "No transcript provided"

    def test_analyze_with_stored_key(self, auth_client) -> None:
        auth_client.post("/api/v1/settings", json={"openai_api_key": "sk-user"})
        fake = FakeOpenAI()
        app.dependency_overrides[get_analyzer_factory] = lambda: MockAnalyzerFactory(fake)

        response = auth_client.post("/api/v1/clips/rec1/analyze", json={"transcript": "hello world"})

        assert response.status_code == 200
        assert response.json()["virality_score"] == 87
        assert fake.requests[0].headers["Authorization"] == "Bearer sk-user"

    def test_invalid_key_is_reported(self, auth_client) -> None:
        auth_client.post("/api/v1/settings", json={"openai_api_key": "sk-user"})
        app.dependency_overrides[get_analyzer_factory] = lambda: MockAnalyzerFactory(
            api_error(401, "invalid_api_key")
        )

        response = auth_client.post("/api/v1/clips/rec1/analyze", json={"transcript": "hello"})

        assert response.status_code == 401
        assert "Invalid OpenAI API key" in response.json()["detail"]
