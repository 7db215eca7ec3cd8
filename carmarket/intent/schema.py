"""Parsed-filter JSON schema (Pydantic models).

This schema is the contract between the natural-language parsers (rules/LLM) and the client filter
state. All parser output must validate against these models; otherwise the request is treated as
not understood.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ParseSource = Literal["llm", "rules"]

# Keys of `parsed_filters` on the wire, in the order they are documented.
FILTER_KEYS: tuple[str, ...] = (
    "make",
    "model",
    "body_type",
    "fuel_type",
    "transmission",
    "condition",
    "year_min",
    "year_max",
    "price_min",
    "price_max",
    "mileage_min",
    "mileage_max",
)

_RANGE_PAIRS: tuple[tuple[str, str], ...] = (
    ("year_min", "year_max"),
    ("price_min", "price_max"),
    ("mileage_min", "mileage_max"),
)


class ParsedFilters(BaseModel):
    """A partial filter set; only the fields that were recognized are set."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    make: str | None = Field(default=None, min_length=1)
    model: str | None = Field(default=None, min_length=1)
    body_type: str | None = Field(default=None, min_length=1)
    fuel_type: str | None = Field(default=None, min_length=1)
    transmission: str | None = Field(default=None, min_length=1)
    condition: Literal["new", "used"] | None = None
    year_min: int | None = Field(default=None, ge=1900, le=2100)
    year_max: int | None = Field(default=None, ge=1900, le=2100)
    price_min: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    price_max: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    mileage_min: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    mileage_max: float | None = Field(default=None, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def order_ranges(self) -> ParsedFilters:
        """Swap inverted bounds ("between 30k and 20k" means 20k..30k)."""

        for lower_name, upper_name in _RANGE_PAIRS:
            lower = getattr(self, lower_name)
            upper = getattr(self, upper_name)
            if lower is not None and upper is not None and lower > upper:
                setattr(self, lower_name, upper)
                setattr(self, upper_name, lower)
        return self

    def present(self) -> dict[str, Any]:
        """Return only the recognized fields."""

        return self.model_dump(exclude_none=True)


class LLMOutput(BaseModel):
    """The JSON object the LLM is instructed to return."""

    model_config = ConfigDict(extra="ignore")

    parsed_filters: ParsedFilters
    confidence: float = Field(ge=0.0, le=1.0)


class IntentRequest(BaseModel):
    """Body of `POST /api/ai-intent`."""

    model_config = ConfigDict(populate_by_name=True)

    user_input: str = Field(alias="userInput", max_length=500)


class IntentReply(BaseModel):
    """Successful body of `POST /api/ai-intent`."""

    success: bool = True
    parsed_filters: ParsedFilters
    confidence: float = Field(ge=0.0, le=1.0)
    source: ParseSource | None = None


def llm_output_from_obj(obj: Any) -> LLMOutput:
    """Validate and parse LLM output from an arbitrary decoded JSON object."""

    return LLMOutput.model_validate(obj)
