from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_SETTINGS_PATH = PROJECT_ROOT / "config" / "settings.json"
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "fxdeals.db"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "FXDEALS_DB_PATH": "db_path",
    "FXDEALS_LOG_LEVEL": "log_level",
    "FXDEALS_DEFAULT_PAGE_SIZE": "default_page_size",
    "FXDEALS_MAX_PAGE_SIZE": "max_page_size",
}


class ServiceSettings(BaseModel):
    """Runtime settings for the deal import service."""

    service_name: str = "FX Deals Warehouse"
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "INFO"
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)


def load_settings(path: Optional[str | Path] = None) -> ServiceSettings:
    """Load settings from a JSON file, then apply FXDEALS_* environment overrides.

    A missing file falls back to built-in defaults.
    """
    if path is None:
        path = DEFAULT_SETTINGS_PATH
    else:
        path = Path(path)

    raw: dict = {}
    if path.exists():
        with open(path) as f:
            raw = json.load(f)

    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            raw[field_name] = value

    return ServiceSettings(**raw)
