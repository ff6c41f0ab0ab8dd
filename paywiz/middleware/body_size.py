from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

DEFAULT_MAX_BODY_BYTES = 1_048_576  # 1 MiB


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests whose declared body exceeds ``max_bytes``."""

    def __init__(self, app, max_bytes: int = DEFAULT_MAX_BODY_BYTES):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            if not content_length.isdigit():
                return JSONResponse(
                    {"detail": "Invalid Content-Length"}, status_code=400
                )
            if int(content_length) > self.max_bytes:
                return JSONResponse({"detail": "Payload too large"}, status_code=413)
        return await call_next(request)


async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, raising 413 as soon as it exceeds ``max_bytes``."""
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise HTTPException(status_code=413, detail="Payload too large")
        chunks.append(chunk)
    return b"".join(chunks)
