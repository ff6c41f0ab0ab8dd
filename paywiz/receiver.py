import logging

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status

from paywiz.core.config import Settings, get_settings
from paywiz.middleware.body_size import (
    DEFAULT_MAX_BODY_BYTES,
    BodySizeLimitMiddleware,
    read_limited_body,
)
from paywiz.schemas.webhook import VerifiedEvent
from paywiz.services.webhook_handler import (
    StaticRequestSource,
    WebhookHandler,
    WebhookRouter,
)
from paywiz.services.webhook_verify import Clock, WebhookVerificationError

logger = logging.getLogger(__name__)

DEFAULT_WEBHOOK_PATH = "/webhooks/paywiz"


# ---------- dependency ----------
def verified_event_dependency(
    handler: WebhookHandler, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
):
    """FastAPI dependency yielding the authenticated event of the current request.

    Every rejection kind maps to the same 401 so callers cannot tell which
    check failed; the kind itself is logged by the handler. The body is counted
    while it streams in, so chunked requests without a Content-Length are held
    to the same limit as the middleware applies to declared lengths.
    """

    async def verified_event(request: Request) -> VerifiedEvent:
        raw = await read_limited_body(request, max_body_bytes)
        source = StaticRequestSource(raw, request.headers)
        try:
            return handler.handle_request(source)
        except WebhookVerificationError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid webhook",
            )

    return verified_event


# ---------- router ----------
def create_webhook_router(
    handler: WebhookHandler,
    events: WebhookRouter | None = None,
    path: str = DEFAULT_WEBHOOK_PATH,
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
) -> APIRouter:
    if events is None:
        events = WebhookRouter()
    router = APIRouter()

    verified_event = verified_event_dependency(handler, max_body_bytes)

    @router.post(path)
    def receive_webhook(event: VerifiedEvent = Depends(verified_event)):
        events.dispatch(event)
        return {"status": "received", "type": event.type}

    return router


# ---------- app ----------
def create_app(
    settings: Settings | None = None,
    events: WebhookRouter | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    handler = WebhookHandler.from_settings(settings, clock=clock)

    app = FastAPI(
        title="PAYwiz Webhook Receiver",
        description="Receives and authenticates PAYwiz webhook events",
    )
    app.add_middleware(
        BodySizeLimitMiddleware, max_bytes=settings.max_webhook_body_bytes
    )
    app.include_router(
        create_webhook_router(
            handler, events, max_body_bytes=settings.max_webhook_body_bytes
        )
    )
    logger.info(f"Webhook receiver listening on {DEFAULT_WEBHOOK_PATH}")
    return app
