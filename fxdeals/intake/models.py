from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEAL_ID_MAX_LENGTH = 100
AMOUNT_MAX_INTEGER_DIGITS = 15
AMOUNT_MAX_FRACTION_DIGITS = 4
CURRENCY_CODE_PATTERN = r"^[A-Z]{3}$"


class DealRecord(BaseModel):
    """Raw deal submission. Field shape is validated on ingestion."""

    deal_id: str = Field(
        max_length=DEAL_ID_MAX_LENGTH,
        description="Caller-supplied unique identifier for the deal",
        examples=["DEAL-001"],
    )
    from_currency: str = Field(
        pattern=CURRENCY_CODE_PATTERN,
        description="Source currency ISO 4217 code (3 uppercase letters)",
        examples=["USD"],
    )
    to_currency: str = Field(
        pattern=CURRENCY_CODE_PATTERN,
        description="Target currency ISO 4217 code (3 uppercase letters)",
        examples=["EUR"],
    )
    timestamp: datetime = Field(
        description="When the deal was executed", examples=["2024-11-13T10:30:00"]
    )
    amount: Decimal = Field(
        description="Deal amount in the source currency", examples=["1000000.50"]
    )

    @field_validator("deal_id")
    @classmethod
    def deal_id_not_blank(cls, v: str) -> str:
        if v.strip() == "":
            raise ValueError("deal_id must not be blank")
        return v

    @field_validator("amount")
    @classmethod
    def amount_within_precision(cls, v: Decimal) -> Decimal:
        _, digits, exponent = v.normalize().as_tuple()
        fraction_digits = max(-exponent, 0)
        integer_digits = max(len(digits) + exponent, 0)
        if (
            integer_digits > AMOUNT_MAX_INTEGER_DIGITS
            or fraction_digits > AMOUNT_MAX_FRACTION_DIGITS
        ):
            raise ValueError(
                f"amount must have at most {AMOUNT_MAX_INTEGER_DIGITS} integer digits "
                f"and {AMOUNT_MAX_FRACTION_DIGITS} decimal places"
            )
        return v


class Deal(BaseModel):
    """Immutable persisted deal."""

    id: int
    deal_id: str
    from_currency: str
    to_currency: str
    timestamp: datetime
    amount: Decimal
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class FieldError(BaseModel):
    field: str
    message: str
    type: str


class ImportOutcome(BaseModel):
    """Disposition of one record in a batch import."""

    deal_id: Optional[str] = None
    success: bool
    message: str
    data: Optional[Deal] = None
    error_type: Optional[str] = None
    errors: Optional[list[FieldError]] = None

    @classmethod
    def succeeded(cls, deal: Deal) -> ImportOutcome:
        return cls(
            deal_id=deal.deal_id,
            success=True,
            message="Deal imported successfully",
            data=deal,
        )

    @classmethod
    def failed(
        cls,
        deal_id: Optional[str],
        error_type: str,
        message: str,
        errors: Optional[list[FieldError]] = None,
    ) -> ImportOutcome:
        return cls(
            deal_id=deal_id,
            success=False,
            message=message,
            error_type=error_type,
            errors=errors,
        )


class BatchImportResult(BaseModel):
    total_received: int
    success_count: int
    failure_count: int
    results: list[ImportOutcome]

    @classmethod
    def from_outcomes(cls, outcomes: list[ImportOutcome]) -> BatchImportResult:
        success_count = sum(1 for o in outcomes if o.success)
        return cls(
            total_received=len(outcomes),
            success_count=success_count,
            failure_count=len(outcomes) - success_count,
            results=outcomes,
        )


class DealPage(BaseModel):
    items: list[Deal]
    page: int
    size: int
    total_elements: int
    total_pages: int
    sort_by: str
    sort_dir: str


def field_errors_from(errors: list[dict[str, Any]]) -> list[FieldError]:
    """Flatten pydantic error dicts into FieldError entries."""
    result = []
    for err in errors:
        loc = " -> ".join(str(l) for l in err["loc"] if l != "body")
        result.append(
            FieldError(field=loc or "record", message=err["msg"], type=err["type"])
        )
    return result
