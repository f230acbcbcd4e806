"""Mini README: Centralised configuration models and helpers for tenderbooks.

Structure:
    * TenderbooksSettings - Pydantic model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Import ``get_settings`` to read environment variables (``TENDERBOOKS_*``),
    choose the storage backend, and override the MFS tariff. The configuration
    is cached so validation runs only once per process; tests clear the cache
    with ``get_settings.cache_clear()`` after patching the environment.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class TenderbooksSettings(BaseSettings):
    """Runtime configuration for the tenderbooks service."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    log_level: str = Field("INFO", description="Root logging level name.")
    data_directory: Path = Field(
        Path("data"),
        description="Directory holding file-backed ledgers and exports.",
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the web service to bind to.",
    )
    interface_port: int = Field(
        8000,
        description="Default port the web service exposes.",
        ge=1,
        le=65535,
    )
    storage_backend: str = Field(
        "memory",
        description="Identifier of the registered storage backend (memory, json, plugins).",
    )
    mfs_percentage_rate: Decimal = Field(
        Decimal("0.0185"),
        description="Proportional mobile financial service fee (1.85% by default).",
        ge=0,
    )
    mfs_fixed_fee: Decimal = Field(
        Decimal("10"),
        description="Flat fee added to every MFS transfer, in taka.",
        ge=0,
    )
    mfs_match_tolerance: Decimal = Field(
        Decimal("1"),
        description=(
            "Largest difference (exclusive) between a recorded and an expected MFS"
            " charge that still counts as the same charge when dates agree."
        ),
        gt=0,
    )
    currency_symbol: str = Field("৳", description="Glyph prefixed to formatted amounts.")

    class Config:
        env_prefix = "TENDERBOOKS_"
        env_file = ".env"
        case_sensitive = False

    @validator("data_directory", pre=True)
    def _expand_path(cls, value: Optional[str | Path]) -> Path:
        """Ensure configured paths expand user directories and exist."""

        path = Path(value).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> TenderbooksSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return TenderbooksSettings()
