from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from replyo.defaults import LEGACY_PLANS, PRICING_TIERS

ACCEPTED_PLANS = sorted(set(PRICING_TIERS) | set(LEGACY_PLANS))


class OnboardRequest(BaseModel):
    stripe_customer_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("stripe_customer_id", "stripeCustomerId"),
    )
    stripe_subscription_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("stripe_subscription_id", "stripeSubscriptionId"),
    )
    plan: str
    email: Optional[str] = None

    @field_validator("plan", mode="before")
    @classmethod
    def validate_plan(cls, value: object) -> str:
        plan = str(value or "").strip().lower()
        if plan not in ACCEPTED_PLANS:
            raise ValueError(f"Plan must be one of: {', '.join(ACCEPTED_PLANS)}")
        return plan


class IgUsernameRequest(BaseModel):
    ig_username: str = Field(min_length=1, validation_alias=AliasChoices("ig_username", "igUsername"))
