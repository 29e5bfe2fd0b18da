# File: rate_agents/config.py
"""
config.py
Environment-driven settings (.env is read first) and the per-stage
log-file setup every agent uses.

    RATES_DATA_DIR    where rates.csv and the YYYY-MM.csv archives live
    RATES_OUTPUT_DIR  charts + summaries
    RATES_LOG_DIR     <stage>_<date>.log files
    OKX_CCY           currency to track (USDT)
    OKX_TIMEOUT       HTTP timeout in seconds
    OKX_PAUSE         pause between historical day requests, seconds

Relative directories are resolved against the project root.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# ── Paths relative to the project root ───────────────────────────
ROOT = Path(__file__).resolve().parent.parent


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    output_dir: Path
    log_dir: Path
    ccy: str = "USDT"
    timeout: float = 30.0
    pause: float = 1.0


def _env_path(name: str, default: Path) -> Path:
    """Relative values are taken from the project root, not the cwd."""
    value = os.getenv(name)
    if not value:
        return default
    path = Path(value).expanduser()
    return path if path.is_absolute() else ROOT / path


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        number = float(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e
    if number < 0:
        raise ConfigError(f"{name} must not be negative, got {value!r}")
    return number


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        data_dir=_env_path("RATES_DATA_DIR", ROOT / "data"),
        output_dir=_env_path("RATES_OUTPUT_DIR", ROOT / "output"),
        log_dir=_env_path("RATES_LOG_DIR", ROOT / "logs"),
        ccy=(os.getenv("OKX_CCY") or "USDT").strip().upper(),
        timeout=_env_float("OKX_TIMEOUT", 30.0),
        pause=_env_float("OKX_PAUSE", 1.0),
    )


def configure_logging(stage: str, log_dir: Path) -> Path:
    """Send the root logger to logs/<stage>_<YYYY-MM-DD>.log."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{stage}_{dt.date.today():%Y-%m-%d}.log"
    logging.basicConfig(
        filename=log_file,
        level=logging.INFO,
        format="%(asctime)s  %(levelname)s  %(message)s",
    )
    return log_file
