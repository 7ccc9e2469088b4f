"""
stock_platform/config.py
========================
YAML-backed valuation settings. Missing file or missing keys fall back to
the ValuationOptions defaults.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import ValuationOptions

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent
CONFIG_PATH = ROOT / "config.yaml"

_DEFAULTS = ValuationOptions()


class ValuationConfig(BaseModel):
    """Schema for the ``valuation`` section of config.yaml."""
    model_config = ConfigDict(extra="forbid")

    default_sector_multiple: float = Field(_DEFAULTS.default_sector_multiple, gt=0)
    price_floor_ratio: float = Field(_DEFAULTS.price_floor_ratio, gt=0)
    profitability_floor: float = Field(_DEFAULTS.profitability_floor, gt=0)
    profitability_cap: float = Field(_DEFAULTS.profitability_cap, gt=0)
    growth_window: int = Field(_DEFAULTS.growth_window, ge=1, le=3)
    upside_neutral_band: float = Field(_DEFAULTS.upside_neutral_band, ge=0)
    upside_intensity_cap: float = Field(_DEFAULTS.upside_intensity_cap, gt=0)
    page_size: int = Field(_DEFAULTS.page_size, ge=1)

    @model_validator(mode="after")
    def floor_below_cap(self) -> "ValuationConfig":
        if self.profitability_floor > self.profitability_cap:
            raise ValueError("profitability_floor must not exceed profitability_cap")
        return self

    def to_options(self) -> ValuationOptions:
        return ValuationOptions(**self.model_dump())


def load_options(path: Optional[Union[str, Path]] = None) -> ValuationOptions:
    """Read the ``valuation`` section of a YAML file into ValuationOptions."""
    cfg_path = Path(path) if path is not None else CONFIG_PATH
    if not cfg_path.exists():
        logger.debug("no config at %s, using defaults", cfg_path)
        return ValuationOptions()
    with open(cfg_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    section = raw.get("valuation") or {}
    return ValuationConfig(**section).to_options()
