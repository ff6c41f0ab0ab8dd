from typing import Any

from paywiz.schemas.base import ApiModel

REQUEST_FIELDS = {
    "company_name",
    "email",
    "phone",
    "contact_name",
    "website",
    "industry",
    "business_type",
    "organization_type",
    "dba",
    "tax_id",
    "reference_id",
    "settlement_delay_days",
    "shopper_statement",
    "estimated_monthly_volume",
    "estimated_average_ticket",
    "address",
}

PENDING_STATUSES = ("pending", "inReview")


class Address(ApiModel):
    street: str
    street2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str = "US"

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Merchant(ApiModel):
    """A merchant account on the platform.

    Request fields are sent on onboarding; response fields are only
    populated from API responses and never sent back.
    """

    company_name: str
    email: str
    phone: str
    contact_name: str | None = None
    website: str | None = None
    industry: str | None = None
    business_type: str = "organization"
    organization_type: str | None = None
    dba: str | None = None
    tax_id: str | None = None
    reference_id: str | None = None
    settlement_delay_days: int | None = None
    shopper_statement: str | None = None
    estimated_monthly_volume: str | None = None
    estimated_average_ticket: str | None = None
    address: Address | None = None

    # Response fields
    id: int | None = None
    onboarding_url: str | None = None
    status: str | None = None
    verification_status: str | None = None
    balance_account_id: str | None = None
    legal_entity_id: str | None = None
    account_holder_id: str | None = None

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(
            by_alias=True, exclude_none=True, include=REQUEST_FIELDS
        )

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "Merchant":
        """Build a merchant from the onboarding endpoint's response body."""
        data = response.get("data") or {}
        account = data.get("account") or {}
        adyen = data.get("adyen") or {}
        return cls(
            id=account.get("id"),
            company_name=account.get("companyName") or "",
            email=account.get("email") or "",
            phone=account.get("phone") or "",
            reference_id=account.get("referenceId"),
            onboarding_url=data.get("onboardingUrl"),
            legal_entity_id=adyen.get("legalEntityId"),
            account_holder_id=adyen.get("accountHolderId"),
            balance_account_id=adyen.get("balanceAccountId"),
        )

    def is_approved(self) -> bool:
        return self.status == "complete"

    def is_pending(self) -> bool:
        return self.verification_status in PENDING_STATUSES
