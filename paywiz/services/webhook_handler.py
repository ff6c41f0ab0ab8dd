import logging
from typing import Any, Callable, Mapping, Protocol

from paywiz.core.config import Settings
from paywiz.schemas.webhook import VerifiedEvent
from paywiz.services.webhook_verify import (
    Clock,
    InboundWebhookRequest,
    WebhookVerificationError,
    WebhookVerifier,
)

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_HEADER = "X-PAYwiz-Signature"
DEFAULT_TIMESTAMP_HEADER = "X-PAYwiz-Timestamp"


class WebhookRequestSource(Protocol):
    """Access to the current inbound request, supplied by the host framework."""

    def body(self) -> bytes: ...

    def header(self, name: str) -> str | None: ...


class StaticRequestSource:
    """A request source over an already-read body and its headers."""

    def __init__(self, body: bytes, headers: Mapping[str, str]):
        self._body = body
        self._headers = {key.lower(): value for key, value in headers.items()}

    def body(self) -> bytes:
        return self._body

    def header(self, name: str) -> str | None:
        return self._headers.get(name.lower())


class WebhookHandler:
    """
    Reads a webhook from the current request and authenticates it.

    Usage:
        handler = WebhookHandler(WebhookVerifier(secret="whsec_..."))
        event = handler.handle_request(StaticRequestSource(body, headers))
    """

    def __init__(
        self,
        verifier: WebhookVerifier,
        signature_header: str = DEFAULT_SIGNATURE_HEADER,
        timestamp_header: str = DEFAULT_TIMESTAMP_HEADER,
    ):
        self.verifier = verifier
        self.signature_header = signature_header
        self.timestamp_header = timestamp_header

    @classmethod
    def from_settings(
        cls, settings: Settings, clock: Clock | None = None
    ) -> "WebhookHandler":
        verifier = WebhookVerifier(
            settings.webhook_secret,
            tolerance=settings.webhook_tolerance,
            clock=clock,
            encoding=settings.webhook_signature_encoding,
        )
        return cls(
            verifier,
            signature_header=settings.webhook_signature_header,
            timestamp_header=settings.webhook_timestamp_header,
        )

    def handle_request(self, source: WebhookRequestSource) -> VerifiedEvent:
        request = InboundWebhookRequest(
            body=source.body(),
            signature_header=source.header(self.signature_header),
            timestamp_header=source.header(self.timestamp_header),
        )
        try:
            event = self.verifier.verify(request)
        except WebhookVerificationError as exc:
            logger.warning(f"Rejected webhook: {exc.kind.value}")
            raise
        logger.info(f"Accepted webhook event {event.type}")
        return event


EventCallback = Callable[[VerifiedEvent], Any]


class WebhookRouter:
    """
    Routes verified events to callbacks by event type.

    Types with no registered callback are ignored, so new event types
    added by the platform never break a receiver.
    """

    def __init__(self):
        self._callbacks: dict[str, list[EventCallback]] = {}

    def on(self, event_type: str):
        def decorator(func: EventCallback) -> EventCallback:
            self.register(event_type, func)
            return func

        return decorator

    def register(self, event_type: str, func: EventCallback) -> None:
        self._callbacks.setdefault(_type_value(event_type), []).append(func)

    def dispatch(self, event: VerifiedEvent) -> list[Any]:
        callbacks = self._callbacks.get(event.type, [])
        if not callbacks:
            logger.debug(f"No handler registered for event {event.type}")
        return [func(event) for func in callbacks]


def _type_value(event_type) -> str:
    # Accept EventType members as well as plain strings
    return getattr(event_type, "value", event_type)
