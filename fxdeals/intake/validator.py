from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ValidationError

from fxdeals.currency.registry import is_known_currency
from fxdeals.importer.errors import BusinessRuleError, DealValidationError
from fxdeals.intake.models import DealRecord, field_errors_from


class RuleViolation(BaseModel):
    """A single business rule a deal record failed."""

    rule_id: str
    message: str


def _check_known_currencies(record: DealRecord, _now: datetime) -> Optional[RuleViolation]:
    if is_known_currency(record.from_currency) and is_known_currency(record.to_currency):
        return None
    return RuleViolation(
        rule_id="INVALID_CURRENCY_CODE",
        message="Invalid ISO currency code provided",
    )


def _check_distinct_currencies(record: DealRecord, _now: datetime) -> Optional[RuleViolation]:
    if record.from_currency != record.to_currency:
        return None
    return RuleViolation(
        rule_id="SAME_CURRENCY_PAIR",
        message="From and To currencies must be different for an FX deal",
    )


def _check_positive_amount(record: DealRecord, _now: datetime) -> Optional[RuleViolation]:
    if record.amount > 0:
        return None
    return RuleViolation(
        rule_id="NON_POSITIVE_AMOUNT",
        message=f"Deal amount must be greater than 0, got {record.amount}",
    )


def _check_not_future(record: DealRecord, now: datetime) -> Optional[RuleViolation]:
    if as_utc(record.timestamp) <= now:
        return None
    return RuleViolation(
        rule_id="FUTURE_TIMESTAMP",
        message="Deal timestamp cannot be in the future",
    )


# Evaluated in order; the first violation wins.
_BUSINESS_RULES: list[Callable[[DealRecord, datetime], Optional[RuleViolation]]] = [
    _check_known_currencies,
    _check_distinct_currencies,
    _check_positive_amount,
    _check_not_future,
]


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_record(raw: DealRecord | Mapping[str, Any]) -> DealRecord:
    """Check field shape, reporting every malformed field together."""
    if isinstance(raw, DealRecord):
        return raw
    try:
        return DealRecord.model_validate(raw)
    except ValidationError as exc:
        deal_id = raw.get("deal_id") if isinstance(raw, Mapping) else None
        raise DealValidationError(
            field_errors_from(exc.errors()),
            deal_id=str(deal_id) if deal_id is not None else None,
        ) from exc


def check_deal(record: DealRecord, now: Optional[datetime] = None) -> Optional[RuleViolation]:
    """Return the first business rule the record violates, or None. Pure."""
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    for rule in _BUSINESS_RULES:
        violation = rule(record, now)
        if violation is not None:
            return violation
    return None


def validate_deal(record: DealRecord, now: Optional[datetime] = None) -> DealRecord:
    """Raise BusinessRuleError for the first violated rule; return the record otherwise."""
    violation = check_deal(record, now)
    if violation is not None:
        raise BusinessRuleError(violation.rule_id, violation.message, record.deal_id)
    return record
