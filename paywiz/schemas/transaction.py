from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from paywiz.schemas.base import ApiModel, blank_to_none

SUCCESSFUL_REFUND_STATUSES = ("received", "completed", "success")


class Transaction(ApiModel):
    id: int | None = None
    psp_reference: str | None = Field(
        default=None, validation_alias=AliasChoices("pspReference", "psp_reference")
    )
    merchant_reference: str | None = Field(
        default=None,
        validation_alias=AliasChoices("merchantReference", "merchant_reference"),
    )
    amount: float | None = Field(default=None, validation_alias="amountValue")
    currency: str | None = Field(
        default=None, validation_alias=AliasChoices("amountCurrency", "currency")
    )
    status: str | None = None
    payment_method: str | None = Field(
        default=None, validation_alias=AliasChoices("paymentMethod", "payment_method")
    )
    card_brand: str | None = None
    card_summary: str | None = None
    shopper_email: str | None = None
    shopper_reference: str | None = None
    account_id: int | None = Field(
        default=None, validation_alias=AliasChoices("accountId", "account_id")
    )
    account_name: str | None = None
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("createdAt", "created_at")
    )
    captured_at: datetime | None = None

    @field_validator("created_at", "captured_at", mode="before")
    @classmethod
    def blank_dates(cls, value):
        return blank_to_none(value)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "Transaction":
        # Wire keys only, so a bare "amount" key does not stand in for amountValue
        return cls.model_validate(data, by_name=False)

    @classmethod
    def from_response_collection(
        cls, response: dict[str, Any] | list[dict[str, Any]]
    ) -> list["Transaction"]:
        """Map a transaction listing, either wrapped in ``data`` or bare."""
        items = response.get("data", []) if isinstance(response, dict) else response
        return [cls.from_response(item) for item in items]

    def is_captured(self) -> bool:
        return self.status == "captured"

    def can_refund(self) -> bool:
        return self.is_captured() and (self.amount or 0) > 0


class Refund(ApiModel):
    psp_reference: str | None = None
    original_psp_reference: str | None = None
    amount: float | None = None
    currency: str = "USD"
    status: str | None = None
    reason: str | None = None
    created_at: datetime | None = None

    @field_validator("created_at", mode="before")
    @classmethod
    def blank_dates(cls, value):
        return blank_to_none(value)

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "Refund":
        data = response.get("data", response)
        if not data.get("currency"):
            data = {**data, "currency": "USD"}
        return cls.model_validate(data)

    def is_successful(self) -> bool:
        return self.status in SUCCESSFUL_REFUND_STATUSES
