"""
Webhook Service - delivers video submissions to the user's automation webhook
Implements IWebhookForwarder with a single attempt per submission
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import httpx
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.constants import FORWARDED_CONTENT_TYPE
from core.exceptions import ExternalServiceError, UpstreamResponseError
from core.logging import get_logger, performance_logger
from domain.interfaces import IWebhookForwarder

DEFAULT_SUCCESS_MESSAGE = "Video submitted successfully"


def success_message(body_text: str) -> str:
    """Message returned to the client after a 2xx webhook response"""
    return body_text or DEFAULT_SUCCESS_MESSAGE


class WebhookService(IWebhookForwarder):
    """Forwards submissions to an n8n-style webhook"""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None,
    ) -> None:
        """
        Args:
            timeout: Seconds per attempt; defaults to REPURPOSE_WEBHOOK_TIMEOUT
            transport: Shared by the async JSON client and the sync upload
                client, so it must serve both (httpx.MockTransport does)
        """
        self.timeout = timeout if timeout is not None else settings.webhook_timeout
        self.transport = transport
        self.logger = get_logger("webhook_service")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _send_file(
        self, webhook_url: str, fields: Dict[str, str], file_name: str, file_path: Path
    ) -> httpx.Response:
        with open(file_path, "rb") as file_obj, httpx.Client(
            timeout=self.timeout, transport=self.transport
        ) as client:
            response = client.post(
                webhook_url,
                data=fields,
                files={"file": (file_name, file_obj, FORWARDED_CONTENT_TYPE)},
            )
        return response

    def _check_response(self, response: httpx.Response) -> str:
        """Return the response text, raising for non-2xx statuses"""
        body_text = response.text

        if not response.is_success:
            self.logger.warning(
                f"Webhook returned status {response.status_code}",
                extra={"status_code": response.status_code},
            )
            raise UpstreamResponseError(
                body_text or f"Webhook returned status {response.status_code}",
                status_code=response.status_code,
            )

        return body_text

    async def post_json(self, webhook_url: str, payload: Dict[str, Any]) -> str:
        start_time = datetime.now()

        try:
            async with self._client() as client:
                response = await client.post(webhook_url, json=payload)

        except httpx.TimeoutException:
            self.logger.error("Timeout posting submission to webhook")
            raise ExternalServiceError("Webhook request timed out")
        except httpx.RequestError as e:
            self.logger.error(f"Network error posting to webhook: {type(e).__name__}")
            raise ExternalServiceError(f"Failed to reach webhook: {type(e).__name__}")

        duration = (datetime.now() - start_time).total_seconds() * 1000
        performance_logger.log_request_duration("webhook", "POST", duration, response.status_code)

        return self._check_response(response)

    async def post_file(
        self,
        webhook_url: str,
        fields: Mapping[str, str],
        file_name: str,
        file_path: Path,
    ) -> str:
        """
        Post a multipart submission, streaming the file from disk

        The request runs on a worker thread with a sync client, so reading
        the file never blocks the event loop.

        Args:
            webhook_url: Destination URL
            fields: Scalar form fields
            file_name: Name reported for the file part
            file_path: Transient file holding the upload

        Returns:
            The destination's response text

        Raises:
            UpstreamResponseError: If the destination answers non-2xx
            ExternalServiceError: If the destination cannot be reached
        """
        start_time = datetime.now()

        try:
            response = await run_in_threadpool(
                self._send_file, webhook_url, dict(fields), file_name, file_path
            )

        except httpx.TimeoutException:
            self.logger.error("Timeout forwarding upload to webhook")
            raise ExternalServiceError("Webhook request timed out")
        except httpx.RequestError as e:
            self.logger.error(f"Network error forwarding upload: {type(e).__name__}")
            raise ExternalServiceError(f"Failed to reach webhook: {type(e).__name__}")

        duration = (datetime.now() - start_time).total_seconds() * 1000
        performance_logger.log_request_duration(
            "webhook_upload", "POST", duration, response.status_code
        )

        return self._check_response(response)
