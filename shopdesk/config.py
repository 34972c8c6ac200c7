from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as ModelValidationError

logger = logging.getLogger(__name__)

# --- Chemins de base ---
ROOT_DIR = Path(__file__).resolve().parents[1]


def data_dir() -> Path:
    env = os.environ.get("SHOPDESK_DATA_DIR")
    if env and env.strip():
        return Path(env.strip().strip('"').strip("'"))
    return ROOT_DIR / "data"


def settings_path() -> Path:
    return data_dir() / "settings.json"


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _load_json(path: os.PathLike | str) -> Any:
    p = Path(path)
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Unreadable settings file %s (%s), using defaults", p, e)
        return None


class EstimateSettings(BaseModel):
    validity_days: int = Field(default=30, ge=0)
    default_terms: str = "Valid for 30 days from the date of issue"
    number_prefix: str = Field(default="EST", min_length=1)
    default_tax_pct: Decimal = Field(default=Decimal("0"), ge=0)
    # remise > sous-total : arithmétique brute par défaut
    clamp_discount: bool = False


def load_settings(path: Optional[os.PathLike | str] = None) -> EstimateSettings:
    """
    Lit la section "estimates" de data/settings.json.
    - fichier absent ou illisible -> valeurs par défaut
    - SHOPDESK_CLAMP_DISCOUNT surcharge clamp_discount
    - valeur invalide -> ValueError
    """
    raw = _load_json(path or settings_path()) or {}
    section: Dict[str, Any] = {}
    if isinstance(raw, dict) and isinstance(raw.get("estimates"), dict):
        section = dict(raw["estimates"])

    env_clamp = os.environ.get("SHOPDESK_CLAMP_DISCOUNT")
    if env_clamp is not None:
        section["clamp_discount"] = _parse_bool(env_clamp)

    try:
        return EstimateSettings.model_validate(section)
    except ModelValidationError as e:
        raise ValueError(f"Invalid estimate settings: {e}") from e


def configure_logging(level: Optional[str] = None) -> None:
    lvl = (level or os.environ.get("SHOPDESK_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(lvl)
