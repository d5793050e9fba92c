from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

DEFAULT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass(frozen=True)
class OccupancyThresholds:
    attention_rate: float = 95.0
    well_utilized_min: float = 60.0
    well_utilized_max: float = 90.0


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    reconcile_debounce: float = 1.0
    auto_reconcile: bool = True
    thresholds: OccupancyThresholds = field(default_factory=OccupancyThresholds)


def _load_thresholds(path: Path) -> OccupancyThresholds:
    if not path.exists():
        return OccupancyThresholds()
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    occupancy = data.get("occupancy") or {}
    defaults = OccupancyThresholds()
    return OccupancyThresholds(
        attention_rate=float(occupancy.get("attention_rate", defaults.attention_rate)),
        well_utilized_min=float(occupancy.get("well_utilized_min", defaults.well_utilized_min)),
        well_utilized_max=float(occupancy.get("well_utilized_max", defaults.well_utilized_max)),
    )


def load_settings() -> Settings:
    """Build settings from the environment and the optional YAML thresholds file."""

    origins_env = os.getenv("FERMES_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

    config_path = os.getenv("FERMES_CONFIG")
    path = Path(config_path).expanduser() if config_path else CONFIG_DIR / "occupancy.yaml"

    try:
        debounce = float(os.getenv("FERMES_RECONCILE_DEBOUNCE", "1.0"))
    except ValueError:
        debounce = 1.0

    return Settings(
        log_level=os.getenv("FERMES_LOG_LEVEL", "INFO").upper(),
        cors_origins=origins or list(DEFAULT_ORIGINS),
        reconcile_debounce=max(debounce, 0.0),
        auto_reconcile=os.getenv("FERMES_AUTO_RECONCILE", "1").lower() not in {"0", "false", "no"},
        thresholds=_load_thresholds(path),
    )
