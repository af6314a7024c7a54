"""Deal import orchestration: single import, batch import and retrieval.

Holds no in-process state; the deal store is the single source of truth.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from fxdeals.config import load_settings
from fxdeals.db.database import (
    MAX_SQL_INTEGER,
    SORT_COLUMNS,
    DuplicateKeyError,
    StorageUnavailableError,
    deal_exists,
    get_deal,
    get_deals_page,
    insert_deal,
)
from fxdeals.importer.errors import (
    DealImportError,
    DealNotFoundError,
    DealValidationError,
    DuplicateDealError,
)
from fxdeals.intake.models import (
    BatchImportResult,
    Deal,
    DealPage,
    DealRecord,
    FieldError,
    ImportOutcome,
)
from fxdeals.intake.validator import parse_record, validate_deal

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Unexpected error while importing deal"
STORAGE_UNAVAILABLE_MESSAGE = "Deal store temporarily unavailable, retry later"


def import_one(
    record: DealRecord | Mapping[str, Any],
    db_path: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> Deal:
    """Import a single deal.

    Raises DealValidationError, DuplicateDealError or BusinessRuleError for
    client-caused rejections.
    """
    deal = parse_record(record)
    logger.info("Attempting to import deal with ID: %s", deal.deal_id)

    # Fast path. The UNIQUE constraint in insert_deal is authoritative.
    if deal_exists(deal.deal_id, db_path):
        logger.warning("Duplicate deal detected: %s", deal.deal_id)
        raise DuplicateDealError(deal.deal_id)

    validate_deal(deal, now)

    try:
        saved = insert_deal(deal, db_path)
    except DuplicateKeyError as exc:
        logger.warning("Duplicate deal detected at write time: %s", deal.deal_id)
        raise DuplicateDealError(deal.deal_id) from exc

    logger.info(
        "Successfully imported deal with ID: %s and database ID: %s",
        saved.deal_id,
        saved.id,
    )
    return saved


def _raw_deal_id(record: Any) -> Optional[str]:
    if isinstance(record, DealRecord):
        return record.deal_id
    if isinstance(record, Mapping) and record.get("deal_id") is not None:
        return str(record["deal_id"])
    return None


def _import_outcome(
    record: Any, db_path: Optional[Path], now: Optional[datetime]
) -> ImportOutcome:
    deal_id = _raw_deal_id(record)
    try:
        return ImportOutcome.succeeded(import_one(record, db_path, now))
    except DealValidationError as exc:
        logger.warning("Failed to import deal %s: %s", deal_id, exc.message)
        return ImportOutcome.failed(deal_id, exc.error_type, exc.message, exc.errors)
    except DealImportError as exc:
        logger.warning("Failed to import deal %s: %s", deal_id, exc.message)
        return ImportOutcome.failed(deal_id, exc.error_type, exc.message)
    except StorageUnavailableError:
        logger.exception("Deal store unavailable while importing deal %s", deal_id)
        return ImportOutcome.failed(
            deal_id, "storage_unavailable", STORAGE_UNAVAILABLE_MESSAGE
        )
    except Exception:
        logger.exception("Unexpected error importing deal %s", deal_id)
        return ImportOutcome.failed(deal_id, "unexpected", UNEXPECTED_ERROR_MESSAGE)


def import_many(
    records: Iterable[Any],
    db_path: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> BatchImportResult:
    """Import each record independently, in input order.

    Every record is its own transaction: a failed item never undoes or blocks
    any other item.
    """
    records = list(records)
    logger.info("Starting batch import of %d deals", len(records))
    outcomes = [_import_outcome(r, db_path, now) for r in records]
    result = BatchImportResult.from_outcomes(outcomes)
    logger.info(
        "Batch import completed: %d successful, %d failed",
        result.success_count,
        result.failure_count,
    )
    return result


def get_by_id(deal_id: str, db_path: Optional[Path] = None) -> Deal:
    logger.debug("Fetching deal with ID: %s", deal_id)
    deal = get_deal(deal_id, db_path)
    if deal is None:
        raise DealNotFoundError(deal_id)
    return deal


def list_paged(
    page: int = 0,
    size: Optional[int] = None,
    sort_field: str = "created_at",
    sort_direction: str = "desc",
    db_path: Optional[Path] = None,
) -> DealPage:
    settings = load_settings()
    if size is None:
        size = settings.default_page_size

    errors = []
    if page < 0:
        errors.append(
            FieldError(field="page", message="page must be >= 0", type="greater_than_equal")
        )
    if size < 1 or size > settings.max_page_size:
        errors.append(
            FieldError(
                field="size",
                message=f"size must be between 1 and {settings.max_page_size}",
                type="out_of_range",
            )
        )
    elif page >= 0 and page * size > MAX_SQL_INTEGER:
        errors.append(
            FieldError(
                field="page",
                message=f"page must be at most {MAX_SQL_INTEGER // size}",
                type="out_of_range",
            )
        )
    if sort_field not in SORT_COLUMNS:
        errors.append(
            FieldError(
                field="sort_by",
                message=f"sort_by must be one of: {', '.join(SORT_COLUMNS)}",
                type="enum",
            )
        )
    if errors:
        raise DealValidationError(errors, message="Invalid paging parameters")

    sort_dir = "asc" if sort_direction.lower() == "asc" else "desc"
    logger.debug(
        "Fetching deals - page: %d, size: %d, sort_by: %s, sort_dir: %s",
        page,
        size,
        sort_field,
        sort_dir,
    )
    items, total = get_deals_page(page, size, sort_field, sort_dir, db_path)
    return DealPage(
        items=items,
        page=page,
        size=size,
        total_elements=total,
        total_pages=math.ceil(total / size),
        sort_by=sort_field,
        sort_dir=sort_dir,
    )
