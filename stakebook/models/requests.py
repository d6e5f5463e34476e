"""
Validated request payloads.

These are the shapes the outer layer hands to the core. Limits that
operators may tune come from settings.market.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import settings
from stakebook.models.market import utcnow

Odds = Annotated[Decimal, Field(ge=Decimal("1.01"), decimal_places=2)]


class StakeRequest(BaseModel):
    """A bettor's request to stake credits on an option at a quoted price."""

    model_config = ConfigDict(frozen=True)

    option_id: str = Field(min_length=1)
    expected_odds: Decimal
    credits: int = Field(ge=1)


class BetCreateRequest(BaseModel):
    """A creator's new proposition, with the opening odds for each option."""

    title: str
    description: str = Field(min_length=2, max_length=255)
    end_time: datetime
    expiration_time: datetime
    option_labels: list[str]
    option_odds: list[Odds]
    fee: Decimal = Field(ge=0, decimal_places=2)
    loss_cap: int = Field(ge=1)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Title must contain at least 2 characters.")
        if len(v) > settings.market.max_title_length:
            raise ValueError(
                f"Title must contain at most {settings.market.max_title_length} characters."
            )
        return v

    @field_validator("end_time", "expiration_time")
    @classmethod
    def validate_future(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("Times must be timezone-aware.")
        if v <= utcnow():
            raise ValueError("Time must be in the future.")
        return v

    @field_validator("option_labels")
    @classmethod
    def validate_labels(cls, v: list[str]) -> list[str]:
        if len(v) < settings.market.min_options:
            raise ValueError(
                f"You must provide at least {settings.market.min_options} options."
            )
        for label in v:
            if not label:
                raise ValueError("Option cannot be empty.")
            if len(label) > settings.market.max_label_length:
                raise ValueError(f"Option '{label}' is too long.")
        if len(set(v)) != len(v):
            raise ValueError("All options must be unique.")
        return v

    @field_validator("option_odds")
    @classmethod
    def validate_odds(cls, v: list[Decimal]) -> list[Decimal]:
        ceiling = Decimal(str(settings.market.max_initial_odds))
        for odds in v:
            if odds > ceiling:
                raise ValueError(f"Odds must be at most {ceiling}.")
        return v

    @field_validator("fee")
    @classmethod
    def validate_fee(cls, v: Decimal) -> Decimal:
        ceiling = Decimal(str(settings.market.max_fee))
        if v > ceiling:
            raise ValueError(f"Fee must be at most {ceiling:.0%}.")
        return v

    @model_validator(mode="after")
    def check_consistency(self) -> "BetCreateRequest":
        if len(self.option_odds) != len(self.option_labels):
            raise ValueError("Provide exactly one opening price per option.")
        if self.expiration_time < self.end_time:
            raise ValueError("Expiration must not precede the end of betting.")
        return self
