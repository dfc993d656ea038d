"""
Request validation middleware for Repurpose
Handles request size limits and JSON structure validation
"""

import json
import logging
from typing import Any, FrozenSet, Iterable, Optional

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from api.middleware import get_client_ip

logger = logging.getLogger(__name__)


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for validating incoming requests"""

    def __init__(
        self,
        app: Any,
        max_request_size: Optional[int] = None,
        max_json_depth: int = 10,
        exempt_paths: Iterable[str] = (),
    ):
        super().__init__(app)
        self.max_request_size = max_request_size or (10 * 1024 * 1024)
        self.max_json_depth = max_json_depth
        self.exempt_paths: FrozenSet[str] = frozenset(exempt_paths)

        logger.info(
            f"Request validation initialized: max_size={self.max_request_size}B, "
            f"max_json_depth={self.max_json_depth}, exempt={sorted(self.exempt_paths)}"
        )

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        """Validate incoming requests"""
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        # Check request size
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                logger.warning(
                    f"Invalid content-length header: {content_length}",
                    extra={"endpoint": request.url.path},
                )
                size = 0

            if size > self.max_request_size:
                logger.warning(
                    f"Request size too large: {size} bytes (max: {self.max_request_size})",
                    extra={"endpoint": request.url.path, "file_size": size},
                )
                return JSONResponse(
                    status_code=413,
                    content={
                        "detail": "Request too large",
                        "max_size": self.max_request_size,
                    },
                )

        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                await self._validate_json_request(request)
            except HTTPException as e:
                return JSONResponse(
                    status_code=e.status_code,
                    content={"detail": e.detail, "type": "validation_error"},
                )

        response: Response = await call_next(request)
        return response

    async def _validate_json_request(self, request: Request) -> None:
        """Validate JSON request content"""
        body = await request.body()
        if not body:
            return  # Empty body is fine

        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(
                f"Invalid JSON in request: {e}",
                extra={"endpoint": request.url.path, "client_ip": get_client_ip(request)},
            )
            raise HTTPException(status_code=400, detail="Invalid JSON format")

        self._check_json_depth(data, current_depth=0)

    def _check_json_depth(self, obj: Any, current_depth: int) -> None:
        """Recursively check JSON nesting depth"""
        if current_depth > self.max_json_depth:
            raise HTTPException(
                status_code=400,
                detail=f"JSON nesting too deep (max depth: {self.max_json_depth})",
            )

        if isinstance(obj, dict):
            for value in obj.values():
                self._check_json_depth(value, current_depth + 1)
        elif isinstance(obj, list):
            for item in obj:
                self._check_json_depth(item, current_depth + 1)
