"""Thin HTTP client for the FX deals service."""

from __future__ import annotations

import os
from typing import Any, Optional

import httpx

BASE_URL = os.environ.get("FXDEALS_API_URL", "http://localhost:8000")


def _url(path: str) -> str:
    return f"{BASE_URL}{path}"


def _headers() -> dict[str, str]:
    key = os.environ.get("FXDEALS_API_KEY")
    if key:
        return {"X-API-Key": key}
    return {}


def import_deal(payload: dict[str, Any]) -> dict[str, Any]:
    resp = httpx.post(_url("/fx-deals"), json=payload, headers=_headers(), timeout=10)
    resp.raise_for_status()
    return resp.json()


def import_deals(payloads: list[dict[str, Any]]) -> dict[str, Any]:
    """Batch import. The service answers 207 with one outcome per record."""
    resp = httpx.post(
        _url("/fx-deals/batch"), json=payloads, headers=_headers(), timeout=30
    )
    resp.raise_for_status()
    return resp.json()


def get_deal(deal_id: str) -> Optional[dict[str, Any]]:
    resp = httpx.get(_url(f"/fx-deals/{deal_id}"), headers=_headers(), timeout=10)
    if resp.status_code == 404:
        return None
    resp.raise_for_status()
    return resp.json()


def list_deals(
    page: int = 0,
    size: Optional[int] = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict[str, Any]:
    params: dict[str, Any] = {"page": page, "sort_by": sort_by, "sort_dir": sort_dir}
    if size is not None:
        params["size"] = size
    resp = httpx.get(_url("/fx-deals"), params=params, headers=_headers(), timeout=10)
    resp.raise_for_status()
    return resp.json()


def seed_sample_deals() -> dict[str, Any]:
    resp = httpx.post(_url("/seed"), headers=_headers(), timeout=30)
    resp.raise_for_status()
    return resp.json()


def health() -> dict[str, Any]:
    resp = httpx.get(_url("/health"), timeout=5)
    resp.raise_for_status()
    return resp.json()
