"""Pricing policy model, defaults and provider.

A stored policy may be partial, empty or written with camelCase keys. It is
always deep-merged over the complete defaults before the calculator sees it,
so every field of :class:`PricingPolicy` is guaranteed to be populated.
"""

import copy
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from quote_pipeline.core.config import PricingSettings, settings
from quote_pipeline.repositories.settings_repository import SettingsRepository
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_TIER_KEY = "default"
COMPLEXITY_LEVELS = ("Easy", "Medium", "Hard")


class ExtraLanguageMode(str, Enum):
    """How the per-extra-language uplift accumulates."""

    LINEAR = "linear"  # 1 + pct * extra
    COMPOUND = "compound"  # (1 + pct) ** extra


DEFAULT_EXTRA_LANGUAGE_MODE = ExtraLanguageMode.LINEAR


class TaxTable(BaseModel):
    hst: Dict[str, float] = Field(default_factory=dict)
    gst_only: Dict[str, float] = Field(default_factory=dict)
    default_gst: float = 0.05


class RushEligibility(BaseModel):
    doc_type: str
    country_of_issue: str
    preset_base: Optional[float] = None


class RushTierConfig(BaseModel):
    enabled: bool = False
    percent: float = 0.0
    basis: Literal["calculated", "preset"] = "calculated"
    apply_to: Literal["labor", "subtotal"] = "subtotal"
    doc_type_overrides: Dict[str, float] = Field(default_factory=dict)
    country_overrides: Dict[str, float] = Field(default_factory=dict)
    min_subtotal: Optional[float] = None
    cutoff_local_time: Optional[str] = None
    timezone: Optional[str] = None
    max_pages: Optional[float] = None
    eligibility: List[RushEligibility] = Field(default_factory=list)


class PricingPolicy(BaseModel):
    """Complete pricing policy. All percentages are fractions (0.30 == 30%)."""

    currency: str = "CAD"
    page_word_divisor: float = 225
    rounding_threshold: float = 0.20
    base_rates: Dict[str, float]
    tiers: Dict[str, float]
    language_tier_map: Dict[str, str]
    extra_language_pct: float = 0.05
    extra_language_mode: ExtraLanguageMode = DEFAULT_EXTRA_LANGUAGE_MODE
    complexity: Dict[str, float]
    certifications: Dict[str, float]
    shipping: Dict[str, float]
    tax: TaxTable
    rush: Dict[str, RushTierConfig]

    @field_validator("page_word_divisor")
    @classmethod
    def _positive_divisor(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("page_word_divisor must be positive")
        return value

    @field_validator("complexity")
    @classmethod
    def _all_complexity_levels(cls, value: Dict[str, float]) -> Dict[str, float]:
        missing = [level for level in COMPLEXITY_LEVELS if level not in value]
        if missing:
            raise ValueError(f"complexity multipliers missing: {missing}")
        return value


def default_policy(pricing_settings: Optional[PricingSettings] = None) -> Dict[str, Any]:
    """Complete default policy document, with env overrides applied."""
    ps = pricing_settings or settings.pricing
    return {
        "currency": "CAD",
        "page_word_divisor": ps.page_word_divisor,
        "rounding_threshold": ps.rounding_threshold,
        "base_rates": {
            "general": ps.base_rate_cad,
            "legal": 80,
            "immigration": 75,
            "academic": 70,
            "insurance": 70,
        },
        "tiers": {"A": 1.20, "B": 1.35, "C": 1.10, "D": 1.05, DEFAULT_TIER_KEY: 1.00},
        "language_tier_map": {
            "Punjabi": "A", "Hindi": "A", "Marathi": "A",
            "Arabic": "B", "Chinese": "B", "Thai": "B",
            "French": "C", "German": "C", "Italian": "C", "Greek": "C",
            "Norwegian": "D", "Swedish": "D", "Finnish": "D", "Dutch": "D",
            "English": DEFAULT_TIER_KEY,
        },
        "extra_language_pct": 0.05,
        "extra_language_mode": DEFAULT_EXTRA_LANGUAGE_MODE.value,
        "complexity": {"Easy": 1.00, "Medium": 1.15, "Hard": 1.30},
        "certifications": {"Standard": 0, "PPTC Document": 35, "Notarization": 50},
        "shipping": {"online": 0, "canadapost": 5, "pickup_calg": 0, "express_post": 25},
        "tax": {
            "hst": {"NB": 0.15, "NL": 0.15, "NS": 0.14, "ON": 0.13, "PE": 0.15},
            "gst_only": {"AB": 0.05, "NT": 0.05, "NU": 0.05, "YT": 0.05},
            "default_gst": 0.05,
        },
        "rush": {
            "rush_1bd": {
                "enabled": True,
                "percent": 0.30,
                "basis": "calculated",
                "apply_to": "subtotal",
            },
            "same_day": {
                "enabled": True,
                "percent": 0.50,
                "basis": "preset",
                "apply_to": "subtotal",
                "cutoff_local_time": "13:00",
                "timezone": "America/Edmonton",
                "max_pages": 1,
                "eligibility": [
                    {"doc_type": "Driver License", "country_of_issue": "IN", "preset_base": 65},
                    {"doc_type": "Driver License", "country_of_issue": "CL", "preset_base": 65},
                    {"doc_type": "Driver License", "country_of_issue": "FR", "preset_base": 65},
                ],
            },
        },
    }


# Stored documents use camelCase at the structural levels only; data keys
# (language names, region codes, certification names) are never rewritten.
_POLICY_ALIASES = {
    "pageWordDivisor": "page_word_divisor",
    "roundingThreshold": "rounding_threshold",
    "baseRates": "base_rates",
    "languageTierMap": "language_tier_map",
    "extraLanguagePct": "extra_language_pct",
    "extraLanguageMode": "extra_language_mode",
}
_TAX_ALIASES = {"gstOnly": "gst_only", "defaultGST": "default_gst", "defaultGst": "default_gst"}
_RUSH_ALIASES = {
    "applyTo": "apply_to",
    "docTypeOverrides": "doc_type_overrides",
    "countryOverrides": "country_overrides",
    "minSubtotal": "min_subtotal",
    "cutoffLocalTime": "cutoff_local_time",
    "maxPages": "max_pages",
}
_ELIGIBILITY_ALIASES = {
    "docType": "doc_type",
    "countryOfIssue": "country_of_issue",
    "presetBase": "preset_base",
}


def _rename(data: Mapping[str, Any], aliases: Mapping[str, str]) -> Dict[str, Any]:
    return {aliases.get(key, key): value for key, value in data.items()}


def _normalize_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    policy = _rename(raw, _POLICY_ALIASES)
    if isinstance(policy.get("tax"), Mapping):
        policy["tax"] = _rename(policy["tax"], _TAX_ALIASES)
    if isinstance(policy.get("rush"), Mapping):
        rush = {}
        for tier, cfg in policy["rush"].items():
            if isinstance(cfg, Mapping):
                cfg = _rename(cfg, _RUSH_ALIASES)
                if isinstance(cfg.get("eligibility"), list):
                    cfg["eligibility"] = [
                        _rename(e, _ELIGIBILITY_ALIASES) if isinstance(e, Mapping) else e
                        for e in cfg["eligibility"]
                    ]
            rush[tier] = cfg
        policy["rush"] = rush
    return policy


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge override into base recursively.

    Nested mappings are merged key by key; lists and scalars replace; a None
    override keeps the base value.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def ensure_policy(
    partial: Optional[Mapping[str, Any]],
    pricing_settings: Optional[PricingSettings] = None,
) -> PricingPolicy:
    """Deep-merge a possibly partial policy over the complete defaults.

    Args:
        partial: Stored policy document (may be None, empty or partial)
        pricing_settings: Optional env overrides for the defaults

    Returns:
        PricingPolicy with every field populated
    """
    if isinstance(partial, PricingPolicy):
        return partial
    normalized = _normalize_keys(partial or {})
    return PricingPolicy.model_validate(deep_merge(default_policy(pricing_settings), normalized))


async def load_policy(session: AsyncSession, key: Optional[str] = None) -> Dict[str, Any]:
    """Read the raw stored policy document.

    Returns:
        The stored document, or an empty dict when none is stored
    """
    policy_key = key or settings.pricing.policy_key
    raw = await SettingsRepository(session).get_settings(policy_key)
    if not raw:
        LOGGER.info(f"No stored pricing policy under '{policy_key}', using defaults")
        return {}
    return dict(raw)


class PolicyProvider:
    """Loads the stored policy and completes it with defaults."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        key: Optional[str] = None,
        pricing_settings: Optional[PricingSettings] = None,
    ):
        self.session_maker = session_maker
        self.key = key
        self.pricing_settings = pricing_settings

    async def get_policy(self) -> PricingPolicy:
        async with self.session_maker() as session:
            raw = await load_policy(session, self.key)
        return ensure_policy(raw, self.pricing_settings)
