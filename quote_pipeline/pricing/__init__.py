"""Pricing policy and calculator."""

from quote_pipeline.pricing.calculator import (
    PriceBreakdown,
    QuoteFacts,
    RushApplied,
    RushResult,
    ceil_to_5,
    complexity_rollup,
    pick_tier_multiplier,
    price_quote,
    quarter_page,
    round_money,
    rush_markup,
    tax_rate_for_region,
)
from quote_pipeline.pricing.policy import (
    DEFAULT_EXTRA_LANGUAGE_MODE,
    ExtraLanguageMode,
    PolicyProvider,
    PricingPolicy,
    default_policy,
    ensure_policy,
    load_policy,
)

__all__ = [
    "DEFAULT_EXTRA_LANGUAGE_MODE",
    "ExtraLanguageMode",
    "PolicyProvider",
    "PriceBreakdown",
    "PricingPolicy",
    "QuoteFacts",
    "RushApplied",
    "RushResult",
    "ceil_to_5",
    "complexity_rollup",
    "default_policy",
    "ensure_policy",
    "load_policy",
    "pick_tier_multiplier",
    "price_quote",
    "quarter_page",
    "round_money",
    "rush_markup",
    "tax_rate_for_region",
]
