"""Configuration loading utilities for staffeval."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional

import yaml

STORE_BACKENDS = ("workbook", "sqlite")
DEVELOPMENT_MODES = ("full", "sample")

DEFAULT_CONFIG = {
    "store": "workbook",
    "workbook_path": "data/evaluations.xlsx",
    "database_path": "data/database.sqlite",
    "report_path": "reports",
    "log_path": "logs/staffeval.log",
    "log_level": "INFO",
    "log_levels": {},
    "timezone": "Europe/Berlin",
    "store_timeout": 30,
    "lookback_months": 12,
    "development_mode": "full",
    "development_seed": None,
    "top_performers_limit": 5,
    "improvement_limit": 5,
    "trend_limit": 3,
    "word_cloud_limit": 20,
    "min_word_length": 4,
    "csv_export": False,
    "json_export": False,
}


@dataclass(frozen=True)
class AppConfig:
    """Typed configuration container with default fallbacks."""

    store: str
    workbook_path: Path
    database_path: Path
    report_path: Path
    log_path: Path
    log_level: str
    timezone: tzinfo
    log_levels: Mapping[str, str] = field(default_factory=dict)
    store_timeout: float = 30.0
    lookback_months: int = 12
    development_mode: str = "full"
    development_seed: Optional[int] = None
    top_performers_limit: int = 5
    improvement_limit: int = 5
    trend_limit: int = 3
    word_cloud_limit: int = 20
    min_word_length: int = 4
    csv_export: bool = False
    json_export: bool = False

    extra: Mapping[str, object] = field(default_factory=dict)


def _parse_timezone(name: str) -> tzinfo:
    try:
        from zoneinfo import ZoneInfo

        return ZoneInfo(name)
    except Exception as exc:  # pragma: no cover - ZoneInfo may be missing
        raise ValueError(f"Unknown timezone '{name}'") from exc


def _load_file(path: Path) -> MutableMapping[str, object]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif path.suffix.lower() == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config format: {path.suffix}")
    if not isinstance(data, MutableMapping):
        raise ValueError("Config root must be a mapping")
    return data


def _positive_int(merged: Mapping[str, object], key: str) -> int:
    value = merged.get(key, DEFAULT_CONFIG[key])
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be an integer") from exc
    if number <= 0:
        raise ValueError(f"{key} must be > 0")
    return number


def _log_levels(merged: Mapping[str, object]) -> Dict[str, str]:
    value = merged.get("log_levels") or {}
    if not isinstance(value, Mapping):
        raise ValueError("log_levels must map module names to levels")
    levels: Dict[str, str] = {}
    for module, level in value.items():
        name = str(level).upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"log_levels.{module}: unknown level '{level}'")
        levels[str(module)] = name
    return levels


def _path(merged: Mapping[str, object], key: str) -> Path:
    return Path(str(merged.get(key, DEFAULT_CONFIG[key]))).expanduser()


def load_config(path: Optional[str | Path] = None, overrides: Optional[Mapping[str, object]] = None) -> AppConfig:
    """Load application configuration merging defaults, a config file and overrides."""

    merged: MutableMapping[str, object] = dict(DEFAULT_CONFIG)
    if path:
        merged.update(_load_file(Path(path)))
    if overrides:
        merged.update(overrides)

    store = str(merged.get("store", DEFAULT_CONFIG["store"])).lower()
    if store not in STORE_BACKENDS:
        raise ValueError(f"store must be one of {', '.join(STORE_BACKENDS)}")

    tz = _parse_timezone(str(merged.get("timezone", DEFAULT_CONFIG["timezone"])))

    store_timeout_value = merged.get("store_timeout", DEFAULT_CONFIG["store_timeout"])
    try:
        store_timeout = float(store_timeout_value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError("store_timeout must be numeric") from exc
    if store_timeout <= 0:
        raise ValueError("store_timeout must be > 0")

    development_mode = str(merged.get("development_mode", DEFAULT_CONFIG["development_mode"])).lower()
    if development_mode not in DEVELOPMENT_MODES:
        raise ValueError(f"development_mode must be one of {', '.join(DEVELOPMENT_MODES)}")

    seed_value = merged.get("development_seed")
    if seed_value is not None:
        try:
            seed_value = int(seed_value)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError("development_seed must be int or null") from exc

    return AppConfig(
        store=store,
        workbook_path=_path(merged, "workbook_path"),
        database_path=_path(merged, "database_path"),
        report_path=_path(merged, "report_path"),
        log_path=_path(merged, "log_path"),
        log_level=str(merged.get("log_level", DEFAULT_CONFIG["log_level"])).upper(),
        timezone=tz,
        log_levels=_log_levels(merged),
        store_timeout=store_timeout,
        lookback_months=_positive_int(merged, "lookback_months"),
        development_mode=development_mode,
        development_seed=seed_value,
        top_performers_limit=_positive_int(merged, "top_performers_limit"),
        improvement_limit=_positive_int(merged, "improvement_limit"),
        trend_limit=_positive_int(merged, "trend_limit"),
        word_cloud_limit=_positive_int(merged, "word_cloud_limit"),
        min_word_length=_positive_int(merged, "min_word_length"),
        csv_export=bool(merged.get("csv_export", DEFAULT_CONFIG["csv_export"])),
        json_export=bool(merged.get("json_export", DEFAULT_CONFIG["json_export"])),
        extra={k: v for k, v in merged.items() if k not in DEFAULT_CONFIG},
    )


__all__ = ["AppConfig", "DEFAULT_CONFIG", "DEVELOPMENT_MODES", "STORE_BACKENDS", "load_config"]
