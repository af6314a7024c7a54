from __future__ import annotations

from typing import Optional

from fxdeals.intake.models import FieldError


class DealImportError(Exception):
    """Base class for client-caused import and retrieval failures."""

    error_type = "error"
    status_code = 400
    title = "Invalid Deal"

    def __init__(self, message: str, deal_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.deal_id = deal_id

    @property
    def problem_type(self) -> str:
        return f"urn:fxdeals:error:{self.error_type.replace('_', '-')}"


class DealValidationError(DealImportError):
    """Structurally malformed record. Carries every field error at once."""

    error_type = "validation"
    title = "Validation Failed"

    def __init__(
        self,
        errors: list[FieldError],
        deal_id: Optional[str] = None,
        message: str = "Invalid input data",
    ) -> None:
        super().__init__(message, deal_id)
        self.errors = errors


class BusinessRuleError(DealImportError):
    """Well-formed record rejected by a business rule."""

    error_type = "business_rule"
    title = "Invalid Deal"

    def __init__(self, rule_id: str, message: str, deal_id: Optional[str] = None) -> None:
        super().__init__(message, deal_id)
        self.rule_id = rule_id


class DuplicateDealError(DealImportError):
    error_type = "duplicate"
    status_code = 409
    title = "Duplicate Deal"

    def __init__(self, deal_id: str) -> None:
        super().__init__(f"Deal with ID '{deal_id}' already exists in the system", deal_id)


class DealNotFoundError(DealImportError):
    error_type = "not_found"
    status_code = 404
    title = "Deal Not Found"

    def __init__(self, deal_id: str) -> None:
        super().__init__(f"Deal with ID '{deal_id}' not found", deal_id)
