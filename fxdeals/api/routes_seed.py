from __future__ import annotations

from fastapi import APIRouter

from fxdeals.db.database import init_db
from fxdeals.importer.seed import seed_sample_deals
from fxdeals.intake.models import BatchImportResult

router = APIRouter(tags=["seed"])


@router.post("/seed", response_model=BatchImportResult, status_code=201)
def seed_data() -> BatchImportResult:
    """Import the bundled sample deals for demo purposes."""
    init_db()
    return seed_sample_deals()
