from datetime import datetime, timedelta, timezone

from infrastructure.database import TrainingVideo, get_db_session

VIDEO = {
    "title": "Getting started",
    "description": "How to submit your first video",
    "video_url": "https://videos.example.com/getting-started.mp4",
    "thumbnail_url": "https://videos.example.com/getting-started.jpg",
}


def test_create_and_list(auth_client) -> None:
    created = auth_client.post("/api/v1/training-videos", json=VIDEO)

    assert created.status_code == 200
    body = created.json()
    assert body["id"]
    assert body["title"] == "Getting started"
    assert body["sort_order"] == 0

    listed = auth_client.get("/api/v1/training-videos").json()
    assert [video["id"] for video in listed] == [body["id"]]


def test_list_is_newest_first(auth_client) -> None:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    with get_db_session() as db:
        for title, age in (("Old", 2), ("New", 0), ("Middle", 1)):
            db.add(
                TrainingVideo(
                    title=title,
                    video_url=f"https://v.example.com/{title.lower()}",
                    created_at=now - timedelta(days=age),
                )
            )

    titles = [video["title"] for video in auth_client.get("/api/v1/training-videos").json()]

    assert titles == ["New", "Middle", "Old"]


def test_description_is_sanitized(auth_client) -> None:
    response = auth_client.post(
        "/api/v1/training-videos",
        json={**VIDEO, "description": "<script>alert(1)</script>Watch this"},
    )

    assert response.status_code == 200
    assert "<script>" not in response.json()["description"]


def test_invalid_video_is_rejected(auth_client) -> None:
    for payload in (
        {**VIDEO, "title": "   "},
        {**VIDEO, "video_url": "javascript:alert(1)"},
        {"title": "No URL"},
    ):
        response = auth_client.post("/api/v1/training-videos", json=payload)

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Invalid input")


def test_delete_is_idempotent(auth_client) -> None:
    video_id = auth_client.post("/api/v1/training-videos", json=VIDEO).json()["id"]

    first = auth_client.delete(f"/api/v1/training-videos/{video_id}")
    second = auth_client.delete(f"/api/v1/training-videos/{video_id}")

    assert first.json() == {"success": True}
    assert second.status_code == 200
    assert second.json() == {"success": True}
    assert auth_client.get("/api/v1/training-videos").json() == []
