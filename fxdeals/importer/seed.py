from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from fxdeals.importer.service import import_many
from fxdeals.intake.models import BatchImportResult

SAMPLE_DEALS: list[dict[str, Any]] = [
    {
        "deal_id": "SAMPLE-001",
        "from_currency": "USD",
        "to_currency": "EUR",
        "timestamp": "2024-01-15T10:30:00",
        "amount": "10000.0000",
    },
    {
        "deal_id": "SAMPLE-002",
        "from_currency": "GBP",
        "to_currency": "USD",
        "timestamp": "2024-01-15T11:45:00",
        "amount": "5000.0000",
    },
    {
        "deal_id": "SAMPLE-003",
        "from_currency": "EUR",
        "to_currency": "JPY",
        "timestamp": "2024-01-15T14:20:00",
        "amount": "7500.5000",
    },
    {
        "deal_id": "SAMPLE-004",
        "from_currency": "USD",
        "to_currency": "CAD",
        "timestamp": "2024-01-16T09:15:00",
        "amount": "12000.0000",
    },
    {
        "deal_id": "SAMPLE-005",
        "from_currency": "JPY",
        "to_currency": "USD",
        "timestamp": "2024-01-16T13:30:00",
        "amount": "1000000.0000",
    },
]


def seed_sample_deals(db_path: Optional[Path] = None) -> BatchImportResult:
    """Import the bundled sample deals. Already-present samples come back as duplicates."""
    return import_many(SAMPLE_DEALS, db_path)
