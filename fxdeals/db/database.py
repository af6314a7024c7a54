from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Generator

from fxdeals.config import load_settings
from fxdeals.intake.models import Deal, DealRecord

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 30.0
AMOUNT_SCALE = Decimal("0.0001")
# SQLite integers are signed 64-bit; LIMIT/OFFSET values must fit.
MAX_SQL_INTEGER = 2**63 - 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS fx_deals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    deal_id TEXT NOT NULL UNIQUE CHECK (length(deal_id) <= 100),
    from_currency TEXT NOT NULL CHECK (length(from_currency) = 3),
    to_currency TEXT NOT NULL CHECK (length(to_currency) = 3),
    deal_timestamp TEXT NOT NULL,
    amount TEXT NOT NULL,
    amount_sort TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_fx_deals_timestamp ON fx_deals (deal_timestamp);
"""

# Public sort field -> SQL expression
SORT_COLUMNS = {
    "id": "id",
    "deal_id": "deal_id",
    "from_currency": "from_currency",
    "to_currency": "to_currency",
    "timestamp": "deal_timestamp",
    "amount": "amount_sort",
    "created_at": "created_at",
}


class StorageUnavailableError(Exception):
    """The deal store could not be reached or was locked. Retryable."""


class DuplicateKeyError(Exception):
    """An insert violated the deal_id uniqueness constraint."""

    def __init__(self, deal_id: str) -> None:
        super().__init__(f"deal_id '{deal_id}' violates uniqueness constraint")
        self.deal_id = deal_id


def _db_path() -> Path:
    return load_settings().db_path


@contextmanager
def get_conn(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    path = db_path or _db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        conn = sqlite3.connect(str(path), timeout=CONNECT_TIMEOUT_SECONDS)
    except sqlite3.OperationalError as exc:
        raise StorageUnavailableError(f"Cannot open deal store at {path}") from exc
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except sqlite3.OperationalError as exc:
        conn.rollback()
        raise StorageUnavailableError(str(exc)) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(db_path: Path | None = None) -> None:
    with get_conn(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(SCHEMA)
        _add_amount_sort_column(conn)


def _add_amount_sort_column(conn: sqlite3.Connection) -> None:
    """Backfill the amount sort key on stores created before it existed."""
    columns = {row["name"] for row in conn.execute("PRAGMA table_info(fx_deals)")}
    if "amount_sort" in columns:
        return
    logger.info("Adding amount_sort column to fx_deals")
    conn.execute("ALTER TABLE fx_deals ADD COLUMN amount_sort TEXT NOT NULL DEFAULT ''")
    rows = conn.execute("SELECT id, amount FROM fx_deals").fetchall()
    conn.executemany(
        "UPDATE fx_deals SET amount_sort = ? WHERE id = ?",
        [(amount_sort_key(Decimal(r["amount"])), r["id"]) for r in rows],
    )


def amount_sort_key(amount: Decimal) -> str:
    """Fixed-width text that orders like the exact decimal amount.

    Stored amounts are positive with at most 15 integer and 4 fraction digits,
    so zero-padding to 20 characters makes text order equal numeric order.
    """
    return f"{amount.quantize(AMOUNT_SCALE):020.4f}"


# ---------------------------------------------------------------------------
# Deal persistence
# ---------------------------------------------------------------------------


def deal_exists(deal_id: str, db_path: Path | None = None) -> bool:
    with get_conn(db_path) as conn:
        row = conn.execute(
            "SELECT 1 FROM fx_deals WHERE deal_id = ?", (deal_id,)
        ).fetchone()
        return row is not None


def insert_deal(record: DealRecord, db_path: Path | None = None) -> Deal:
    """Insert one deal in its own transaction and stamp created_at.

    The UNIQUE constraint on deal_id is the final guard against concurrent
    submissions of the same deal; a violation raises DuplicateKeyError.
    """
    created_at = datetime.now(timezone.utc)
    amount = record.amount.quantize(AMOUNT_SCALE)
    timestamp = record.timestamp
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)

    try:
        with get_conn(db_path) as conn:
            cursor = conn.execute(
                """INSERT INTO fx_deals
                   (deal_id, from_currency, to_currency, deal_timestamp,
                    amount, amount_sort, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.deal_id,
                    record.from_currency,
                    record.to_currency,
                    timestamp.isoformat(),
                    str(amount),
                    amount_sort_key(amount),
                    created_at.isoformat(),
                ),
            )
            row_id = cursor.lastrowid
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" not in str(exc):
            raise
        logger.warning("Uniqueness constraint rejected deal %s", record.deal_id)
        raise DuplicateKeyError(record.deal_id) from exc

    return Deal(
        id=row_id,
        deal_id=record.deal_id,
        from_currency=record.from_currency,
        to_currency=record.to_currency,
        timestamp=timestamp,
        amount=amount,
        created_at=created_at,
    )


def get_deal(deal_id: str, db_path: Path | None = None) -> Deal | None:
    with get_conn(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM fx_deals WHERE deal_id = ?", (deal_id,)
        ).fetchone()
        if row is None:
            return None
        return _row_to_deal(row)


def get_deals_page(
    page: int,
    size: int,
    sort_field: str = "created_at",
    sort_direction: str = "desc",
    db_path: Path | None = None,
) -> tuple[list[Deal], int]:
    """Return one page of deals and the total number of stored deals."""
    column = SORT_COLUMNS[sort_field]
    direction = "ASC" if sort_direction.lower() == "asc" else "DESC"
    with get_conn(db_path) as conn:
        total = conn.execute("SELECT COUNT(*) FROM fx_deals").fetchone()[0]
        rows = conn.execute(
            f"SELECT * FROM fx_deals ORDER BY {column} {direction}, id {direction} "
            "LIMIT ? OFFSET ?",
            (size, page * size),
        ).fetchall()
        return [_row_to_deal(r) for r in rows], total


def count_deals(db_path: Path | None = None) -> int:
    with get_conn(db_path) as conn:
        return conn.execute("SELECT COUNT(*) FROM fx_deals").fetchone()[0]


def reset_db(db_path: Path | None = None) -> None:
    """Delete every stored deal. Test and seed support only."""
    with get_conn(db_path) as conn:
        conn.execute("DELETE FROM fx_deals")
    logger.info("Deal store reset")


def _row_to_deal(row: sqlite3.Row) -> Deal:
    return Deal(
        id=row["id"],
        deal_id=row["deal_id"],
        from_currency=row["from_currency"],
        to_currency=row["to_currency"],
        timestamp=datetime.fromisoformat(row["deal_timestamp"]),
        amount=Decimal(row["amount"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )
