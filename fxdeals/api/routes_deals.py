from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Query

from fxdeals.db.database import init_db
from fxdeals.importer.service import get_by_id, import_many, import_one, list_paged
from fxdeals.intake.models import BatchImportResult, Deal, DealPage, DealRecord

router = APIRouter(prefix="/fx-deals", tags=["fx-deals"])


@router.post("", response_model=Deal, status_code=201)
def import_deal(deal: DealRecord) -> Deal:
    """Import a single FX deal with validation and duplicate detection."""
    init_db()
    return import_one(deal)


@router.post("/batch", response_model=BatchImportResult, status_code=207)
def import_deals(records: list[Any] = Body(...)) -> BatchImportResult:
    """Import many FX deals. Each item is validated and persisted independently."""
    init_db()
    return import_many(records)


@router.get("", response_model=DealPage, status_code=200)
def list_deals(
    page: int = Query(default=0, description="Page number (0-based)"),
    size: Optional[int] = Query(default=None, description="Number of items per page"),
    sort_by: str = Query(default="created_at", description="Field to sort by"),
    sort_dir: str = Query(default="desc", description="Sort direction (asc/desc)"),
) -> DealPage:
    init_db()
    return list_paged(page, size, sort_by, sort_dir)


@router.get("/{deal_id}", response_model=Deal, status_code=200)
def get_deal_by_id(deal_id: str) -> Deal:
    init_db()
    return get_by_id(deal_id)
