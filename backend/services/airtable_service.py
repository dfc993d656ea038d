"""
Airtable Service - reads and deletes generated clips stored in an Airtable table
Implements IClipStore
"""

from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from core.config import settings
from core.constants import AIRTABLE_FINAL_CLIP_FIELD, DEFAULT_CLIP_FILE_NAME, FORWARDED_CONTENT_TYPE
from core.exceptions import ExternalServiceError, ResourceNotFoundError, UpstreamResponseError
from core.logging import get_logger, performance_logger
from core.security import SecurityUtils
from domain.interfaces import IClipStore
from domain.schemas import Clip
from services.settings_service import AirtableCredentials

logger = get_logger("airtable_service")

NAME_FIELDS = ("Clip Description", "Name", "name")


def _video_attachment(fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    final_clip = fields.get(AIRTABLE_FINAL_CLIP_FIELD)
    if isinstance(final_clip, list) and final_clip and isinstance(final_clip[0], dict):
        return final_clip[0]
    return None


def _as_number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0


def record_to_clip(record: Dict[str, Any]) -> Optional[Clip]:
    """Map an Airtable record to a Clip; None when it has no video"""
    fields = record.get("fields") or {}
    attachment = _video_attachment(fields) or {}

    video_url = attachment.get("url") or ""
    if not video_url:
        return None

    thumbnails = attachment.get("thumbnails") or {}
    thumbnail_url = (thumbnails.get("large") or {}).get("url") or (
        thumbnails.get("small") or {}
    ).get("url")

    name = next((fields[key] for key in NAME_FIELDS if fields.get(key)), "Untitled Clip")

    return Clip(
        id=record["id"],
        name=str(name),
        transcript=fields.get("Transcript") or "",
        duration=_as_number(fields.get("Duration")),
        video_url=video_url,
        thumbnail_url=thumbnail_url or "",
        file_name=attachment.get("filename") or DEFAULT_CLIP_FILE_NAME,
        file_size=int(_as_number(attachment.get("size"))),
        created_at=record.get("createdTime"),
    )


class AirtableService(IClipStore):
    """Clip table access for one user's Airtable credentials"""

    def __init__(
        self,
        credentials: AirtableCredentials,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials = credentials
        self.transport = transport
        self.timeout = settings.external_api_timeout
        self.table_url = (
            f"{settings.airtable_api_url}/{quote(credentials.base_id, safe='')}"
            f"/{quote(credentials.table_name, safe='')}"
        )

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport, **kwargs)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.credentials.api_key}"}

    def _record_url(self, clip_id: str) -> str:
        return f"{self.table_url}/{quote(clip_id, safe='')}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        start_time = datetime.now()
        try:
            async with self._client() as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException:
            logger.error(f"Timeout calling Airtable ({method})")
            raise ExternalServiceError("Airtable request timed out")
        except httpx.RequestError as e:
            logger.error(f"Network error calling Airtable: {type(e).__name__}")
            raise ExternalServiceError(f"Failed to reach Airtable: {type(e).__name__}")

        duration = (datetime.now() - start_time).total_seconds() * 1000
        performance_logger.log_request_duration("airtable", method, duration, response.status_code)
        return response

    async def list_clips(self) -> List[Clip]:
        """List clips across pages, skipping records without a video"""
        clips: List[Clip] = []
        offset: Optional[str] = None

        for _ in range(settings.airtable_max_pages):
            params = {"offset": offset} if offset else None
            response = await self._request("GET", self.table_url, params=params)

            if not response.is_success:
                logger.error(
                    f"Airtable list failed with status {response.status_code}",
                    extra={"status_code": response.status_code},
                )
                raise UpstreamResponseError(
                    "Failed to fetch clips from Airtable", status_code=response.status_code
                )

            data = response.json()
            for record in data.get("records", []):
                clip = record_to_clip(record)
                if clip is not None:
                    clips.append(clip)

            offset = data.get("offset")
            if not offset:
                break
        else:
            logger.warning(f"Stopped listing clips after {settings.airtable_max_pages} pages")

        logger.info(f"Clips found: {len(clips)}")
        return clips

    async def get_attachment(self, clip_id: str) -> Dict[str, Any]:
        response = await self._request("GET", self._record_url(clip_id))
        if not response.is_success:
            raise UpstreamResponseError("Failed to fetch clip", status_code=response.status_code)

        attachment = _video_attachment(response.json().get("fields") or {})
        if not attachment or not attachment.get("url"):
            raise ResourceNotFoundError("Video not found")

        return attachment

    async def stream_attachment(
        self, attachment: Dict[str, Any]
    ) -> Tuple[AsyncIterator[bytes], Dict[str, str]]:
        """
        Open the attachment download

        Returns:
            Body chunk iterator and the response headers for the client;
            the iterator closes the connection when exhausted
        """
        client = self._client(follow_redirects=True)
        try:
            response = await client.send(client.build_request("GET", attachment["url"]), stream=True)
        except httpx.RequestError as e:
            await client.aclose()
            logger.error(f"Network error downloading clip: {type(e).__name__}")
            raise ExternalServiceError("Failed to download video")

        if not response.is_success:
            await response.aclose()
            await client.aclose()
            logger.error(f"Clip download failed with status {response.status_code}")
            raise ExternalServiceError("Failed to download video")

        async def body() -> AsyncIterator[bytes]:
            try:
                async for chunk in response.aiter_bytes():
                    yield chunk
            finally:
                await response.aclose()
                await client.aclose()

        try:
            file_name = SecurityUtils.sanitize_filename(
                attachment.get("filename") or DEFAULT_CLIP_FILE_NAME
            )
        except ValueError:
            file_name = DEFAULT_CLIP_FILE_NAME
        # Header values must be latin-1
        file_name = file_name.encode("ascii", "ignore").decode("ascii") or DEFAULT_CLIP_FILE_NAME
        headers = {
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "Content-Type": attachment.get("type") or FORWARDED_CONTENT_TYPE,
        }
        return body(), headers

    async def delete_clip(self, clip_id: str) -> None:
        response = await self._request("DELETE", self._record_url(clip_id))
        if not response.is_success:
            logger.error(
                f"Airtable delete failed with status {response.status_code}",
                extra={"status_code": response.status_code},
            )
            raise UpstreamResponseError("Failed to delete clip", status_code=response.status_code)

        logger.info(f"Deleted clip {clip_id}")
