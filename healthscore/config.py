"""
Baseline Score — Configuration
===============================
Centralised settings for the scoring service.
Loads overrides from the project-level .env file.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from healthscore import __version__
from healthscore.utils import get_logger

logger = get_logger(__name__)

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

# Used by the body-fat → BMI substitution when no live BMI is available.
DEFAULT_BMI_FALLBACK = 21.36

_DISABLED_VALUES = {"", "none", "off", "disabled"}


def parse_bmi_fallback(raw: Optional[str]) -> Optional[float]:
    """
    Interpret the BMI_FALLBACK environment value.

    ``None`` (unset) means the default constant; an explicit empty string,
    ``none`` or ``off`` disables the fallback entirely.
    """
    if raw is None:
        return DEFAULT_BMI_FALLBACK
    text = raw.strip().lower()
    if text in _DISABLED_VALUES:
        return None
    try:
        value = float(text)
    except ValueError:
        value = float("nan")
    if math.isnan(value) or math.isinf(value) or value <= 0:
        logger.warning(f"Ignoring invalid BMI_FALLBACK={raw!r}, using {DEFAULT_BMI_FALLBACK}")
        return DEFAULT_BMI_FALLBACK
    return value


@dataclass
class Settings:
    """Process-wide settings, read once at import."""
    bmi_fallback: Optional[float] = field(
        default_factory=lambda: parse_bmi_fallback(os.getenv("BMI_FALLBACK"))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE") or None)
    service_version: str = field(default_factory=lambda: os.getenv("SERVICE_VERSION", __version__))


settings = Settings()
