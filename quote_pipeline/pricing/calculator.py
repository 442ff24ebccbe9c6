"""Deterministic pricing calculator.

Every function in this module is pure: the result depends only on the
arguments, so a quote re-priced from the same facts always yields the same
total.
"""

import math
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from quote_pipeline.pricing.policy import (
    COMPLEXITY_LEVELS,
    DEFAULT_TIER_KEY,
    ExtraLanguageMode,
    PricingPolicy,
)

DEFAULT_REGION = "AB"
DEFAULT_INTENDED_USE = "general"
DEFAULT_CERTIFICATION = "Standard"
DEFAULT_SHIPPING = "online"

# Float noise guard (e.g. 0.1 * 3 * 4 != 1.2 * 1)
_PRECISION = 9


def round_money(value: float) -> float:
    """Round half-up to 2 decimals."""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def quarter_page(raw_pages: float, threshold: float) -> float:
    """Convert a raw page value into billable quarter pages.

    When the fractional part of ``raw_pages`` is at most ``threshold`` the
    value is rounded to the nearest quarter (ties up, never below 0.25);
    otherwise it is rounded up to the next quarter.

    Args:
        raw_pages: Words divided by the words-per-page divisor
        threshold: Fraction in [0, 1] separating "nearest" from "ceiling"

    Returns:
        Non-negative multiple of 0.25
    """
    if raw_pages is None or not math.isfinite(raw_pages) or raw_pages <= 0:
        return 0.0

    value = round(raw_pages, _PRECISION)
    frac = round(value - math.floor(value), _PRECISION)
    quarters = round(value * 4, _PRECISION)

    if frac <= threshold:
        nearest = math.floor(quarters + 0.5) / 4
        return max(nearest, 0.25)
    return math.ceil(quarters) / 4


def ceil_to_5(amount: float) -> float:
    """Round up to the next multiple of 5."""
    if amount is None or not math.isfinite(amount):
        return 0.0
    return float(math.ceil(round(amount, 6) / 5) * 5)


def _unique_languages(*groups: Optional[Iterable[str]]) -> List[str]:
    seen: List[str] = []
    for group in groups:
        for lang in group or []:
            name = (lang or "").strip()
            if name and name not in seen:
                seen.append(name)
    return seen


def pick_tier_multiplier(
    policy: PricingPolicy,
    requested: Optional[Sequence[str]] = None,
    detected: Optional[Sequence[str]] = None,
) -> float:
    """Language multiplier for a quote.

    The highest tier multiplier among all requested and detected languages
    wins; each language beyond the first adds the policy's extra-language
    uplift, either linearly or compounded depending on
    ``policy.extra_language_mode``.
    """
    languages = _unique_languages(requested, detected)
    tiers = policy.tiers
    tier_map = policy.language_tier_map

    fallback = tiers.get(DEFAULT_TIER_KEY, 1.0)
    default_key = tier_map.get(DEFAULT_TIER_KEY, DEFAULT_TIER_KEY)
    multiplier = tiers.get(default_key, fallback)

    for lang in languages:
        key = tier_map.get(lang, DEFAULT_TIER_KEY)
        multiplier = max(multiplier, tiers.get(key, fallback))

    extra = max(len(languages) - 1, 0)
    if extra == 0:
        return multiplier

    pct = policy.extra_language_pct
    if policy.extra_language_mode == ExtraLanguageMode.COMPOUND:
        return multiplier * (1 + pct) ** extra
    return multiplier * (1 + pct * extra)


@dataclass(frozen=True)
class RushApplied:
    tier: str
    percent: float
    basis: str
    preset_base: Optional[float] = None


@dataclass(frozen=True)
class RushResult:
    subtotal: float
    applied: Optional[RushApplied]


def rush_markup(
    policy: PricingPolicy,
    tier: Optional[str],
    labor_rounded: float,
    cert_fee: float,
    ship_fee: float,
    doc_type: Optional[str] = None,
    country_of_issue: Optional[str] = None,
    pages: Optional[float] = None,
) -> RushResult:
    """Apply the rush tier markup to the base subtotal.

    Args:
        policy: Complete pricing policy
        tier: Rush tier key (``rush_1bd``, ``same_day``) or None
        labor_rounded: Labor charge after ``ceil_to_5``
        cert_fee: Certification fee
        ship_fee: Shipping fee
        doc_type: Document type used for overrides and eligibility
        country_of_issue: Issuing country used for overrides and eligibility
        pages: Billable pages, checked against the tier's ``max_pages``

    Returns:
        RushResult with the (possibly marked up) subtotal and the applied
        rush, or ``applied=None`` when no rush was applied
    """
    labor = labor_rounded or 0.0
    cert = cert_fee or 0.0
    ship = ship_fee or 0.0
    base_subtotal = labor + cert + ship

    if not tier:
        return RushResult(base_subtotal, None)

    cfg = policy.rush.get(tier)
    if cfg is None or not cfg.enabled:
        return RushResult(base_subtotal, None)

    if cfg.max_pages is not None and pages is not None and pages > cfg.max_pages:
        return RushResult(base_subtotal, None)

    country = (country_of_issue or "").strip()
    doc_pct = cfg.doc_type_overrides.get(doc_type) if doc_type else None
    country_pct = cfg.country_overrides.get(country) if country else None
    if doc_pct is not None:
        percent = doc_pct
    elif country_pct is not None:
        percent = country_pct
    else:
        percent = cfg.percent or 0.0

    preset_base = None
    if cfg.basis == "preset":
        for entry in cfg.eligibility:
            if (
                entry.preset_base is not None
                and entry.doc_type == doc_type
                and entry.country_of_issue == country
            ):
                preset_base = entry.preset_base
                labor = entry.preset_base
                break

    base = labor + cert + ship
    if cfg.min_subtotal is not None and cfg.min_subtotal > base:
        base = cfg.min_subtotal

    if cfg.apply_to == "labor":
        subtotal = base + labor * percent
    else:
        subtotal = base * (1 + percent)

    applied = RushApplied(tier=tier, percent=percent, basis=cfg.basis, preset_base=preset_base)
    return RushResult(round_money(subtotal), applied)


def complexity_rollup(values: Iterable[Optional[str]]) -> str:
    """Highest complexity present; Easy when nothing is known."""
    present = set(v for v in values if v)
    for level in reversed(COMPLEXITY_LEVELS):
        if level in present:
            return level
    return COMPLEXITY_LEVELS[0]


def tax_rate_for_region(policy: PricingPolicy, region: Optional[str]) -> float:
    code = (region or DEFAULT_REGION).strip().upper()
    if code in policy.tax.hst:
        return policy.tax.hst[code]
    if code in policy.tax.gst_only:
        return policy.tax.gst_only[code]
    return policy.tax.default_gst


@dataclass
class QuoteFacts:
    """Inputs the pricing step aggregates from the store and submission."""

    words: int = 0
    intended_use: Optional[str] = None
    requested_languages: List[str] = field(default_factory=list)
    detected_languages: List[str] = field(default_factory=list)
    complexities: List[str] = field(default_factory=list)
    doc_type: Optional[str] = None
    country_of_issue: Optional[str] = None
    rush_tier: Optional[str] = None
    certification: Optional[str] = None
    shipping: Optional[str] = None
    region: Optional[str] = None


@dataclass(frozen=True)
class PriceBreakdown:
    words: int
    raw_pages: float
    pages: float
    base_rate: float
    language_multiplier: float
    complexity: str
    complexity_multiplier: float
    labor: float
    labor_rounded: float
    certification_fee: float
    shipping_fee: float
    rush: Optional[RushApplied]
    subtotal: float
    tax_rate: float
    tax: float
    total: float
    currency: str

    @property
    def rush_percent(self) -> float:
        return self.rush.percent if self.rush else 0.0

    def billing_fields(self) -> Dict[str, Any]:
        """Column values for the quote row."""
        return {
            "billable_pages": self.pages,
            "per_page_rate": self.base_rate,
            "certification_fee": self.certification_fee,
            "shipping_fee": self.shipping_fee,
            "rush_percent": self.rush_percent,
            "subtotal": self.subtotal,
            "tax_rate": self.tax_rate,
            "tax_amount": self.tax,
            "total": self.total,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def price_quote(policy: PricingPolicy, facts: QuoteFacts) -> PriceBreakdown:
    """Compute the full price of a quote from its facts."""
    raw_pages = facts.words / policy.page_word_divisor if facts.words else 0.0
    pages = quarter_page(raw_pages, policy.rounding_threshold)

    use = facts.intended_use or DEFAULT_INTENDED_USE
    base_rate = policy.base_rates.get(use, policy.base_rates.get(DEFAULT_INTENDED_USE, 0.0))

    lang_mult = pick_tier_multiplier(policy, facts.requested_languages, facts.detected_languages)
    complexity = complexity_rollup(facts.complexities)
    cx_mult = policy.complexity[complexity]

    labor = pages * base_rate * lang_mult * cx_mult
    labor_rounded = ceil_to_5(labor)

    cert_fee = policy.certifications.get(facts.certification or DEFAULT_CERTIFICATION, 0.0)
    ship_fee = policy.shipping.get(facts.shipping or DEFAULT_SHIPPING, 0.0)

    rush = rush_markup(
        policy,
        facts.rush_tier,
        labor_rounded,
        cert_fee,
        ship_fee,
        doc_type=facts.doc_type,
        country_of_issue=facts.country_of_issue,
        pages=pages,
    )
    subtotal = round_money(rush.subtotal)

    tax_rate = tax_rate_for_region(policy, facts.region)
    tax = round_money(subtotal * tax_rate)
    total = round_money(subtotal + tax)

    return PriceBreakdown(
        words=facts.words,
        raw_pages=raw_pages,
        pages=pages,
        base_rate=base_rate,
        language_multiplier=lang_mult,
        complexity=complexity,
        complexity_multiplier=cx_mult,
        labor=labor,
        labor_rounded=labor_rounded,
        certification_fee=cert_fee,
        shipping_fee=ship_fee,
        rush=rush.applied,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax=tax,
        total=total,
        currency=policy.currency,
    )
