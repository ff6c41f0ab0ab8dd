import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from paywiz.core.config import Settings
from paywiz.receiver import (
    DEFAULT_WEBHOOK_PATH,
    create_app,
    create_webhook_router,
    verified_event_dependency,
)
from paywiz.services.webhook_handler import WebhookHandler, WebhookRouter
from paywiz.services.webhook_verify import WebhookVerifier


@pytest.fixture
def events() -> WebhookRouter:
    return WebhookRouter()


@pytest.fixture
def client(clock, events):
    settings = Settings(webhook_secret="whsec_test", max_webhook_body_bytes=1024)
    app = create_app(settings, events=events, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


def test_valid_webhook_is_dispatched(client, events, body, signed_headers):
    received = []
    events.register("account.approved", received.append)

    response = client.post(
        DEFAULT_WEBHOOK_PATH, content=body, headers=signed_headers(body)
    )

    assert response.status_code == 200
    assert response.json() == {"status": "received", "type": "account.approved"}
    assert [event.data for event in received] == [{"accountId": 123}]


def test_unknown_event_type_is_acknowledged(client, signed_headers):
    payload = b'{"type":"account.archived","data":{}}'
    response = client.post(
        DEFAULT_WEBHOOK_PATH, content=payload, headers=signed_headers(payload)
    )
    assert response.status_code == 200
    assert response.json()["type"] == "account.archived"


@pytest.mark.parametrize(
    "case",
    ["missing_headers", "stale", "bad_signature_header", "tampered", "bad_json"],
)
def test_every_rejection_is_the_same_401(
    client, events, body, now, signed_headers, case
):
    received = []
    events.register("account.approved", received.append)

    payload = body
    headers = signed_headers(body)
    if case == "missing_headers":
        headers = {}
    elif case == "stale":
        headers = signed_headers(body, timestamp=now - 600)
    elif case == "bad_signature_header":
        headers["X-PAYwiz-Signature"] = "not-a-signature"
    elif case == "tampered":
        payload = body.replace(b"123", b"999")
    elif case == "bad_json":
        payload = b"{invalid json}"
        headers = signed_headers(payload)

    response = client.post(DEFAULT_WEBHOOK_PATH, content=payload, headers=headers)

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid webhook"}
    assert received == []


def test_payload_too_large(client, signed_headers):
    payload = b'{"type":"account.updated","data":{"note":"' + b"x" * 2048 + b'"}}'
    response = client.post(
        DEFAULT_WEBHOOK_PATH, content=payload, headers=signed_headers(payload)
    )
    assert response.status_code == 413
    assert response.json() == {"detail": "Payload too large"}


def test_chunked_payload_too_large(client, events, signed_headers):
    received = []
    events.register("account.updated", received.append)
    payload = b'{"type":"account.updated","data":{"note":"' + b"x" * 2048 + b'"}}'

    def chunks():
        for start in range(0, len(payload), 256):
            yield payload[start : start + 256]

    response = client.post(
        DEFAULT_WEBHOOK_PATH, content=chunks(), headers=signed_headers(payload)
    )

    assert response.status_code == 413
    assert response.json() == {"detail": "Payload too large"}
    assert received == []


def test_chunked_payload_within_limit(client, body, signed_headers):
    response = client.post(
        DEFAULT_WEBHOOK_PATH,
        content=iter([body[:10], body[10:]]),
        headers=signed_headers(body),
    )
    assert response.status_code == 200


def test_invalid_content_length(client, body, signed_headers):
    headers = signed_headers(body)
    headers["Content-Length"] = "abc"
    response = client.post(DEFAULT_WEBHOOK_PATH, content=body, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid Content-Length"}


def test_overlong_timestamp_is_the_same_401(client, body, signed_headers):
    headers = signed_headers(body)
    headers["X-PAYwiz-Timestamp"] = "9" * 5000
    response = client.post(DEFAULT_WEBHOOK_PATH, content=body, headers=headers)
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid webhook"}


def test_router_on_custom_path(secret, clock, body, signed_headers):
    handler = WebhookHandler(WebhookVerifier(secret, clock=clock))
    app = FastAPI()
    app.include_router(create_webhook_router(handler, path="/hooks/in"))

    with TestClient(app) as test_client:
        response = test_client.post(
            "/hooks/in", content=body, headers=signed_headers(body)
        )
    assert response.status_code == 200


def test_dependency_in_own_route(secret, clock, body, signed_headers):
    handler = WebhookHandler(WebhookVerifier(secret, clock=clock))
    app = FastAPI()

    @app.post("/custom")
    def custom(event=Depends(verified_event_dependency(handler))):
        return {"account": event.data["accountId"]}

    with TestClient(app) as test_client:
        ok = test_client.post("/custom", content=body, headers=signed_headers(body))
        rejected = test_client.post("/custom", content=body)

    assert ok.json() == {"account": 123}
    assert rejected.status_code == 401
