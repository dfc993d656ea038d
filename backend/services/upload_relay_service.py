"""
Upload Relay Service - streams a multipart video upload to a transient file
and re-posts it to the user's webhook

The transient file lives only for the duration of one request: it is created
when the file part begins and removed on every exit path.
"""

import re
import secrets
import time
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Dict, List, Optional

from python_multipart import MultipartParser
from python_multipart.exceptions import FormParserError
from python_multipart.multipart import parse_options_header
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.constants import (
    DEFAULT_FILE_NAME,
    FORWARDED_VIDEO_TYPE,
    MAX_FORM_FIELD_SIZE,
    WEBHOOK_NOT_CONFIGURED_MESSAGE,
)
from core.exceptions import (
    IntegrationNotConfiguredError,
    UploadError,
    UploadTooLargeError,
    ValidationError,
)
from core.logging import get_logger, performance_logger
from core.security import SecurityUtils
from domain.interfaces import IWebhookForwarder
from services.webhook_service import WebhookService, success_message

logger = get_logger("upload_relay")

CLIP_FIELDS = ("clip_size", "clip_duration", "clip_count")
LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


def parse_clip_count(value: Optional[str]) -> int:
    """Leading-integer parse; anything unparseable or below 1 becomes 1"""
    match = LEADING_INTEGER.match(value or "")
    if not match:
        return 1
    count = int(match.group(1))
    return count if count >= 1 else 1


def transient_file_name(original_name: str) -> str:
    try:
        safe_name = SecurityUtils.sanitize_filename(original_name, max_length=100)
    except ValueError:
        safe_name = DEFAULT_FILE_NAME
    return f"upload-{int(time.time() * 1000)}-{secrets.token_hex(4)}-{safe_name}"


class UploadSession:
    """
    Request-scoped state of one upload

    Used as a context manager; leaving the block removes the transient file
    whether the relay succeeded or not.
    """

    def __init__(self, temp_dir: Path, max_bytes: int) -> None:
        self.temp_dir = temp_dir
        self.max_bytes = max_bytes
        self.fields: Dict[str, str] = {}
        self.file_name: Optional[str] = None
        self.file_path: Optional[Path] = None
        self.bytes_written = 0
        self._file: Optional[BinaryIO] = None

    def __enter__(self) -> "UploadSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()

    @property
    def has_file(self) -> bool:
        return self.file_name is not None

    def open_file(self, original_name: str) -> None:
        self.file_name = original_name or DEFAULT_FILE_NAME
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.file_path = self.temp_dir / transient_file_name(self.file_name)
        # Exclusive create so concurrent uploads never share a file
        self._file = open(self.file_path, "xb")
        logger.debug(f"Receiving upload into {self.file_path.name}")

    def write(self, data: bytes) -> None:
        """Append a chunk, enforcing the size ceiling"""
        if self._file is None:
            raise UploadError("File part is not open")

        if self.bytes_written + len(data) > self.max_bytes:
            logger.warning(
                "Upload exceeded size limit",
                extra={"file_size": self.bytes_written + len(data)},
            )
            self.cleanup()
            raise UploadTooLargeError(
                f"File exceeds maximum size of {self.max_bytes // (1024 * 1024)}MB"
            )

        self._file.write(data)
        self.bytes_written += len(data)

    def close_file(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def cleanup(self) -> None:
        """Close and delete the transient file; safe to call more than once"""
        try:
            self.close_file()
        except OSError as e:
            logger.error(f"Failed to close transient upload file: {e}")

        if self.file_path is None:
            return

        try:
            self.file_path.unlink(missing_ok=True)
            logger.debug(f"Removed transient upload file {self.file_path.name}")
        except OSError as e:
            logger.error(f"Failed to remove transient upload file {self.file_path.name}: {e}")
        finally:
            self.file_path = None


class MultipartUploadParser:
    """Feeds a request body stream through python-multipart into an UploadSession"""

    def __init__(self, content_type: str, session: UploadSession) -> None:
        media_type, params = parse_options_header(content_type or "")
        if media_type != b"multipart/form-data":
            raise ValidationError("Expected a multipart/form-data request")

        boundary = params.get(b"boundary")
        if not boundary:
            raise ValidationError("Missing boundary in multipart request")

        self.boundary = boundary
        self.session = session
        self._header_name = b""
        self._header_value = b""
        self._disposition = b""
        self._field_name: Optional[str] = None
        self._field_data = bytearray()
        self._in_file_part = False
        self._pending_chunks: List[bytes] = []
        self._file_finished = False

    def on_part_begin(self) -> None:
        self._disposition = b""
        self._field_name = None
        self._field_data = bytearray()
        self._in_file_part = False

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        if self._header_name.lower() == b"content-disposition":
            self._disposition = self._header_value
        self._header_name = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self._disposition)
        if b"name" not in options:
            raise UploadError('Content-Disposition header is missing "name"')
        self._field_name = options[b"name"].decode("utf-8", errors="replace")

        if b"filename" in options:
            if self.session.has_file:
                raise ValidationError("Only one file may be uploaded")
            self._in_file_part = True
            self.session.open_file(options[b"filename"].decode("utf-8", errors="replace"))

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._in_file_part:
            self._pending_chunks.append(data[start:end])
            return

        if len(self._field_data) + (end - start) > MAX_FORM_FIELD_SIZE:
            raise ValidationError(f"Form field {self._field_name} is too large")
        self._field_data.extend(data[start:end])

    def on_part_end(self) -> None:
        if self._in_file_part:
            self._file_finished = True
        elif self._field_name in CLIP_FIELDS:
            self.session.fields[self._field_name] = self._field_data.decode(
                "utf-8", errors="replace"
            )

    def on_end(self) -> None:
        pass

    async def _flush(self) -> None:
        """Write queued file data in the threadpool"""
        for chunk in self._pending_chunks:
            await run_in_threadpool(self.session.write, chunk)
        self._pending_chunks.clear()

        if self._file_finished:
            await run_in_threadpool(self.session.close_file)
            self._file_finished = False

    async def parse(self, stream: AsyncIterator[bytes]) -> None:
        callbacks = {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_end": self.on_end,
        }
        parser = MultipartParser(self.boundary, callbacks)

        try:
            async for chunk in stream:
                parser.write(chunk)
                await self._flush()

            parser.finalize()
            await self._flush()
            await run_in_threadpool(self.session.close_file)

        except FormParserError as e:
            logger.error(f"Malformed multipart upload: {e}")
            raise UploadError("Upload failed") from e
        except OSError as e:
            logger.error(f"Failed to write transient upload file: {e}")
            raise UploadError("Upload failed") from e


class UploadRelayService:
    """Receives an upload and forwards it to the user's webhook"""

    def __init__(
        self,
        forwarder: Optional[IWebhookForwarder] = None,
        temp_dir: Optional[Path] = None,
        max_upload_bytes: Optional[int] = None,
    ) -> None:
        self.forwarder = forwarder or WebhookService()
        self.temp_dir = temp_dir or settings.absolute_upload_temp_dir
        self.max_upload_bytes = max_upload_bytes or settings.max_upload_size_bytes

    def _forward_fields(self, session: UploadSession) -> Dict[str, str]:
        """Validate received fields and build the outbound form"""
        if not session.has_file:
            raise ValidationError("No file uploaded")

        clip_size = session.fields.get("clip_size")
        clip_duration = session.fields.get("clip_duration")
        if not clip_size or not clip_duration:
            raise ValidationError("Missing clip configuration")

        return {
            "video_type": FORWARDED_VIDEO_TYPE,
            "file_name": session.file_name or DEFAULT_FILE_NAME,
            "clip_size": clip_size,
            "clip_duration": clip_duration,
            "clip_count": str(parse_clip_count(session.fields.get("clip_count"))),
        }

    async def relay(
        self,
        content_type: str,
        stream: AsyncIterator[bytes],
        webhook_url: Optional[str],
    ) -> Dict[str, object]:
        """
        Receive, validate and forward one upload

        Args:
            content_type: Request Content-Type header
            stream: Request body chunks
            webhook_url: Destination URL from the user's settings

        Returns:
            Success payload with the destination's message

        Raises:
            IntegrationNotConfiguredError: If no destination is configured
            ValidationError: For malformed requests or missing fields
            UploadTooLargeError: If the file exceeds the ceiling
            UploadError: If the multipart body cannot be parsed or stored
            UpstreamResponseError: If the destination answers non-2xx
            ExternalServiceError: If the destination cannot be reached
        """
        if not webhook_url:
            raise IntegrationNotConfiguredError(WEBHOOK_NOT_CONFIGURED_MESSAGE)

        with UploadSession(self.temp_dir, self.max_upload_bytes) as session:
            parser = MultipartUploadParser(content_type, session)

            start = time.monotonic()
            await parser.parse(stream)
            size_mb = session.bytes_written / (1024 * 1024)
            performance_logger.log_upload_relay_duration(
                "receive", size_mb, (time.monotonic() - start) * 1000
            )

            fields = self._forward_fields(session)

            start = time.monotonic()
            body_text = await self.forwarder.post_file(
                webhook_url, fields, fields["file_name"], session.file_path  # type: ignore[arg-type]
            )
            performance_logger.log_upload_relay_duration(
                "forward", size_mb, (time.monotonic() - start) * 1000
            )

            logger.info(
                "Upload relayed to webhook",
                extra={"file_size": session.bytes_written},
            )

        return {"success": True, "message": success_message(body_text)}
