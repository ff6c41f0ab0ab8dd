"""
PAYwiz Payments API client.

Covers merchant onboarding, transactions, refunds and stores.

Example usage:
    with PaywizClient(api_key="...", environment="sandbox") as client:
        result = client.create_merchant({"companyName": "Coffee House LLC", ...})
        approved = client.is_merchant_approved(result["data"]["account"]["id"])
"""
import logging
from typing import Any

import httpx

from paywiz.core.config import PRODUCTION_URL, SANDBOX_URL, Settings
from paywiz.schemas.merchant import Merchant

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    """Raised for failed API calls and for requests rejected before sending."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        errors: Any = None,
        response_body: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}
        self.response_body = response_body

    def is_validation_error(self) -> bool:
        return self.status_code == 400 and bool(self.errors)

    def is_not_found(self) -> bool:
        return self.status_code == 404

    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)


class PaywizClient:
    def __init__(
        self,
        api_key: str,
        environment: str = "sandbox",
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        if base_url:
            self._base_url = base_url.rstrip("/")
        elif environment == "production":
            self._base_url = PRODUCTION_URL
        else:
            self._base_url = SANDBOX_URL

        self._http = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-API-Key": api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaywizClient":
        return cls(
            settings.api_key.get_secret_value(),
            environment=settings.environment,
            base_url=settings.base_url,
            timeout=settings.timeout,
        )

    def __enter__(self) -> "PaywizClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_timeout(self, seconds: float) -> None:
        self._http.timeout = httpx.Timeout(seconds)

    # ---------- onboarding ----------
    def create_merchant(
        self, merchant_data: dict[str, Any] | Merchant, mode: str | None = None
    ) -> dict[str, Any]:
        """
        Onboard a new merchant account.

        Args:
            merchant_data: Merchant fields, as a dict or a Merchant model
            mode: Optional processing mode, e.g. "async"

        Returns:
            Response containing accountId, onboardingUrl, etc.
        """
        if isinstance(merchant_data, Merchant):
            merchant_data = merchant_data.to_request()
        params = {"mode": mode} if mode is not None else None
        return self._post("/api/v1/onboarding/accounts", merchant_data, params=params)

    def get_merchant_status(self, account_id: int) -> dict[str, Any]:
        return self._get(f"/api/v1/onboarding/accounts/{account_id}/status")

    def regenerate_onboarding_url(
        self,
        account_holder_id: str,
        redirect_url: str | None = None,
        theme_id: str | None = None,
    ) -> dict[str, Any]:
        """Issue a new onboarding URL; the previous one expires after an hour."""
        data = {}
        if redirect_url is not None:
            data["redirectUrl"] = redirect_url
        if theme_id is not None:
            data["themeId"] = theme_id
        return self._post(
            f"/api/v1/onboarding/accounts/{account_holder_id}/onboarding-url", data
        )

    def is_merchant_approved(self, account_id: int) -> bool:
        status = self.get_merchant_status(account_id)
        payment_setup = (status.get("data") or {}).get("paymentSetup") or {}
        return payment_setup.get("status") == "complete"

    # ---------- transactions ----------
    def get_transactions(
        self, filters: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return self._get("/api/v1/transactions", params=filters or None)

    def get_transaction_by_psp_reference(
        self, psp_reference: str
    ) -> dict[str, Any] | None:
        transactions = self.get_transactions({"pspReference": psp_reference})
        items = transactions.get("data") or []
        return items[0] if items else None

    # ---------- refunds ----------
    def process_refund(
        self,
        psp_reference: str,
        amount: int | None = None,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """
        Refund a transaction, fully or partially.

        Args:
            psp_reference: PSP reference of the original transaction
            amount: Amount in cents; omit for a full refund
            reason: Optional reason for the refund
        """
        data: dict[str, Any] = {}
        if amount is not None:
            if amount <= 0:
                raise ApiError(
                    "Refund amount must be greater than 0",
                    400,
                    {"amount": "Amount must be a positive number"},
                )
            data["amount"] = amount
        if reason is not None:
            data["reason"] = reason
        return self._post(f"/api/v1/transactions/{psp_reference}/refund", data)

    # ---------- stores ----------
    def create_store(
        self, account_holder_id: str, store_data: dict[str, Any]
    ) -> dict[str, Any]:
        if not store_data.get("description"):
            raise ApiError(
                "description (store name) is required",
                400,
                {"description": "Store description/name is required"},
            )
        return self._post(
            f"/api/v1/stores/by-account-holder/{account_holder_id}", store_data
        )

    # ---------- http ----------
    def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("GET", path, params=params)

    def _post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return self._request("POST", path, json=data or {}, params=params)

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            response = self._http.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._api_error(exc) from exc
        except httpx.RequestError as exc:
            logger.error(f"{method} {path} failed: {exc}")
            raise ApiError(str(exc), 500) from exc
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.warning(f"{method} {path} returned a non-JSON body")
            raise ApiError(
                "Invalid JSON in response",
                response.status_code,
                response_body=response.text,
            ) from exc

    @staticmethod
    def _api_error(exc: httpx.HTTPStatusError) -> ApiError:
        response = exc.response
        logger.warning(
            f"{exc.request.method} {exc.request.url.path} "
            f"returned {response.status_code}"
        )
        message = str(exc)
        errors: Any = {}
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or message
            errors = body.get("errors") or {}
        return ApiError(message, response.status_code, errors, body)
