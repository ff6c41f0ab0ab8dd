"""
Webhook authentication: freshness guard, signature check and event parsing.

An inbound webhook carries the raw body plus two headers: a decimal
seconds-since-epoch timestamp and an HMAC-SHA256 tag computed over
``body + b"." + timestamp``. Checks always run in this order:

1. timestamp header well-formed
2. timestamp within tolerance of the injected clock
3. signature header well-formed
4. signature matches
5. body is a JSON object with ``type`` and ``data``

Nothing here performs I/O or keeps state between calls.
"""
import base64
import binascii
import enum
import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Callable, Literal

from pydantic import SecretStr, ValidationError

from paywiz.schemas.webhook import VerifiedEvent

DEFAULT_TOLERANCE = 300  # seconds
MAX_TIMESTAMP_DIGITS = 12
SEPARATOR = b"."
DIGEST = hashlib.sha256
DIGEST_SIZE = DIGEST().digest_size

Encoding = Literal["hex", "base64"]
ENCODINGS = ("hex", "base64")
Clock = Callable[[], float]
Secret = bytes | str | SecretStr


class RejectionKind(str, enum.Enum):
    MALFORMED_HEADER = "malformed_header"
    STALE_OR_FUTURE_TIMESTAMP = "stale_or_future_timestamp"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED_PAYLOAD = "malformed_payload"


class WebhookVerificationError(Exception):
    """Base class for every webhook rejection. ``kind`` names the failed check."""

    kind: RejectionKind


class MalformedHeader(WebhookVerificationError):
    kind = RejectionKind.MALFORMED_HEADER


class StaleOrFutureTimestamp(WebhookVerificationError):
    kind = RejectionKind.STALE_OR_FUTURE_TIMESTAMP


class InvalidSignature(WebhookVerificationError):
    kind = RejectionKind.INVALID_SIGNATURE


class MalformedPayload(WebhookVerificationError):
    kind = RejectionKind.MALFORMED_PAYLOAD


@dataclass(frozen=True)
class InboundWebhookRequest:
    body: bytes
    signature_header: str | None
    timestamp_header: str | None


def wall_clock() -> float:
    return time.time()


def secret_bytes(secret: Secret) -> bytes:
    if isinstance(secret, SecretStr):
        secret = secret.get_secret_value()
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if not secret:
        raise ValueError("webhook secret is required")
    return bytes(secret)


def _check_encoding(encoding: str) -> None:
    if encoding not in ENCODINGS:
        raise ValueError(f"unsupported signature encoding: {encoding!r}")


# ---------- freshness ----------
def parse_timestamp(value: str | None) -> int:
    """Parse a decimal seconds-since-epoch header value."""
    if not value or not (value.isascii() and value.isdigit()):
        raise MalformedHeader("missing or non-numeric timestamp header")
    if len(value) > MAX_TIMESTAMP_DIGITS:
        raise MalformedHeader("timestamp header too long")
    return int(value)


class FreshnessGuard:
    """Accepts timestamps with ``abs(now - timestamp) <= tolerance``."""

    def __init__(
        self, tolerance: int = DEFAULT_TOLERANCE, clock: Clock | None = None
    ):
        if tolerance < 0:
            raise ValueError("tolerance must not be negative")
        self.tolerance = tolerance
        self.clock = clock or wall_clock

    def check(self, timestamp_header: str | None) -> int:
        timestamp = parse_timestamp(timestamp_header)
        if abs(self.clock() - timestamp) > self.tolerance:
            raise StaleOrFutureTimestamp(
                f"timestamp outside tolerance of {self.tolerance}s"
            )
        return timestamp


# ---------- signature ----------
def compute_signature(secret: Secret, body: bytes, timestamp: str | int) -> bytes:
    message = bytes(body) + SEPARATOR + str(timestamp).encode("ascii")
    return hmac.new(secret_bytes(secret), message, DIGEST).digest()


def encode_signature(digest: bytes, encoding: Encoding = "hex") -> str:
    _check_encoding(encoding)
    if encoding == "hex":
        return digest.hex()
    return base64.b64encode(digest).decode("ascii")


def decode_signature(value: str | None, encoding: Encoding = "hex") -> bytes:
    _check_encoding(encoding)
    if not value:
        raise MalformedHeader("missing signature header")
    try:
        if encoding == "hex":
            raw = binascii.unhexlify(value)
        else:
            raw = base64.b64decode(value, validate=True)
    except ValueError as exc:
        raise MalformedHeader(f"signature header is not valid {encoding}") from exc
    if len(raw) != DIGEST_SIZE:
        raise MalformedHeader(f"signature header is not valid {encoding}")
    return raw


def sign_payload(
    secret: Secret, body: bytes, timestamp: str | int, encoding: Encoding = "hex"
) -> str:
    """Header value the platform would send for ``body`` at ``timestamp``."""
    return encode_signature(compute_signature(secret, body, timestamp), encoding)


def verify_signature(
    secret: Secret,
    body: bytes,
    timestamp: str,
    signature_header: str | None,
    encoding: Encoding = "hex",
) -> None:
    supplied = decode_signature(signature_header, encoding)
    expected = compute_signature(secret, body, timestamp)
    if not hmac.compare_digest(expected, supplied):
        raise InvalidSignature("signature mismatch")


# ---------- parsing ----------
def _parse_event(body: bytes) -> VerifiedEvent:
    # Only reachable after verification
    try:
        return VerifiedEvent.model_validate_json(body)
    except ValidationError as exc:
        raise MalformedPayload("verified body is not a valid event") from exc


# ---------- orchestration ----------
class WebhookVerifier:
    """Verification settings bound once and reused across requests."""

    def __init__(
        self,
        secret: Secret,
        *,
        tolerance: int = DEFAULT_TOLERANCE,
        clock: Clock | None = None,
        encoding: Encoding = "hex",
    ):
        _check_encoding(encoding)
        self._secret = secret_bytes(secret)
        self.guard = FreshnessGuard(tolerance, clock)
        self.encoding = encoding

    def __repr__(self) -> str:
        return (
            f"WebhookVerifier(secret='**********', "
            f"tolerance={self.guard.tolerance}, encoding={self.encoding!r})"
        )

    def verify(self, request: InboundWebhookRequest) -> VerifiedEvent:
        if not isinstance(request.body, (bytes, bytearray, memoryview)):
            raise TypeError("webhook body must be the raw request bytes")
        body = bytes(request.body)
        self.guard.check(request.timestamp_header)
        verify_signature(
            self._secret,
            body,
            request.timestamp_header,
            request.signature_header,
            self.encoding,
        )
        return _parse_event(body)


def verify_and_parse(
    secret: Secret,
    body: bytes,
    signature_header: str | None,
    timestamp_header: str | None,
    *,
    tolerance: int = DEFAULT_TOLERANCE,
    clock: Clock | None = None,
    encoding: Encoding = "hex",
) -> VerifiedEvent:
    """
    Authenticate a webhook and return its event.

    Raises a WebhookVerificationError subclass for the first failed check.
    """
    verifier = WebhookVerifier(
        secret, tolerance=tolerance, clock=clock, encoding=encoding
    )
    return verifier.verify(
        InboundWebhookRequest(
            body=body,
            signature_header=signature_header,
            timestamp_header=timestamp_header,
        )
    )
