"""Unit tests for the pricing calculator."""

import pytest

from quote_pipeline.pricing.calculator import (
    QuoteFacts,
    ceil_to_5,
    complexity_rollup,
    pick_tier_multiplier,
    price_quote,
    quarter_page,
    round_money,
    rush_markup,
    tax_rate_for_region,
)
from quote_pipeline.pricing.policy import ExtraLanguageMode, ensure_policy


@pytest.fixture
def policy():
    return ensure_policy({})


class TestQuarterPage:
    def test_small_fraction_rounds_to_nearest_quarter(self):
        assert quarter_page(1.10, 0.20) == 1.0

    def test_large_fraction_rounds_up(self):
        assert quarter_page(1.30, 0.20) == 1.5

    def test_zero_and_negative_yield_zero(self):
        assert quarter_page(0, 0.20) == 0
        assert quarter_page(-3.2, 0.20) == 0

    def test_minimum_quarter_page_for_positive_input(self):
        assert quarter_page(0.01, 0.20) == 0.25

    def test_tie_rounds_up(self):
        # 2.125 is halfway between 2.0 and 2.25
        assert quarter_page(2.125, 0.20) == 2.25

    def test_threshold_is_a_policy_parameter(self):
        assert quarter_page(1.30, 0.50) == 1.25
        assert quarter_page(1.30, 0.20) == 1.5

    @pytest.mark.parametrize("raw", [0.0, 0.1, 0.26, 0.99, 1.0, 3.33, 4.0, 7.77, 12.5])
    @pytest.mark.parametrize("threshold", [0.0, 0.2, 0.5, 1.0])
    def test_output_is_non_negative_multiple_of_quarter(self, raw, threshold):
        pages = quarter_page(raw, threshold)
        assert pages >= 0
        assert (pages * 4) == int(pages * 4)


class TestCeilTo5:
    def test_values(self):
        assert ceil_to_5(62) == 65
        assert ceil_to_5(60) == 60
        assert ceil_to_5(0) == 0

    def test_float_noise_does_not_bump_exact_multiples(self):
        assert ceil_to_5(260.00000000000003) == 260


class TestRoundMoney:
    def test_half_up(self):
        assert round_money(2.675) == 2.68
        assert round_money(13.0) == 13.0


class TestPickTierMultiplier:
    def test_no_languages_returns_default_tier(self, policy):
        assert pick_tier_multiplier(policy, [], []) == policy.tiers["default"]

    def test_highest_tier_wins(self, policy):
        # Punjabi is tier A (1.20), French tier C (1.10); two languages add one uplift
        result = pick_tier_multiplier(policy, ["French"], ["Punjabi"])
        assert result == pytest.approx(1.20 * 1.05)

    def test_unmapped_language_falls_to_default(self, policy):
        assert pick_tier_multiplier(policy, ["Klingon"], []) == 1.0

    def test_language_names_are_case_sensitive(self, policy):
        assert pick_tier_multiplier(policy, ["french"], []) == 1.0
        assert pick_tier_multiplier(policy, ["French"], []) == pytest.approx(1.10)

    def test_duplicates_across_lists_count_once(self, policy):
        assert pick_tier_multiplier(policy, ["French"], ["French"]) == pytest.approx(1.10)

    def test_linear_extra_language_mode(self, policy):
        assert policy.extra_language_mode == ExtraLanguageMode.LINEAR
        result = pick_tier_multiplier(policy, ["English", "French", "German"], [])
        assert result == pytest.approx(1.10 * (1 + 0.05 * 2))

    def test_compound_extra_language_mode(self):
        policy = ensure_policy({"extra_language_mode": "compound"})
        result = pick_tier_multiplier(policy, ["English", "French", "German"], [])
        assert result == pytest.approx(1.10 * 1.05 ** 2)

    def test_monotonic_when_adding_higher_tier_languages(self, policy):
        languages = ["English", "Dutch", "French", "Hindi", "Arabic"]
        previous = 0.0
        for count in range(len(languages) + 1):
            current = pick_tier_multiplier(policy, languages[:count], [])
            assert current >= previous
            previous = current


class TestRushMarkup:
    def test_no_tier_returns_base_subtotal(self, policy):
        result = rush_markup(policy, None, 260, 35, 5)
        assert result.subtotal == 300
        assert result.applied is None

    def test_no_tier_ignores_policy_content(self):
        policy = ensure_policy({"rush": {"rush_1bd": {"min_subtotal": 10000, "percent": 9}}})
        assert rush_markup(policy, None, 100, 0, 0).subtotal == 100

    def test_disabled_tier_behaves_like_no_tier(self):
        policy = ensure_policy({"rush": {"rush_1bd": {"enabled": False}}})
        assert rush_markup(policy, "rush_1bd", 260, 35, 5) == rush_markup(policy, None, 260, 35, 5)

    def test_unknown_tier_is_not_applied(self, policy):
        assert rush_markup(policy, "warp_speed", 100, 0, 0).applied is None

    def test_default_percent_on_subtotal(self, policy):
        result = rush_markup(policy, "rush_1bd", 260, 0, 0)
        assert result.subtotal == 338.0
        assert result.applied.percent == 0.30

    def test_doc_type_override_beats_country_override(self):
        policy = ensure_policy(
            {
                "rush": {
                    "rush_1bd": {
                        "docTypeOverrides": {"Passport": 0.10},
                        "countryOverrides": {"IN": 0.20},
                    }
                }
            }
        )
        both = rush_markup(policy, "rush_1bd", 100, 0, 0, doc_type="Passport", country_of_issue="IN")
        country_only = rush_markup(policy, "rush_1bd", 100, 0, 0, doc_type="Diploma", country_of_issue="IN")
        assert both.applied.percent == 0.10
        assert country_only.applied.percent == 0.20

    def test_min_subtotal_floor_applies_before_percent(self):
        policy = ensure_policy({"rush": {"rush_1bd": {"min_subtotal": 200}}})
        result = rush_markup(policy, "rush_1bd", 50, 0, 0)
        assert result.subtotal == 260.0

    def test_preset_base_replaces_labor(self, policy):
        result = rush_markup(
            policy, "same_day", 180, 0, 0, doc_type="Driver License", country_of_issue="IN", pages=1
        )
        assert result.applied.preset_base == 65
        assert result.subtotal == 97.5

    def test_preset_without_eligible_entry_uses_computed_base(self, policy):
        result = rush_markup(
            policy, "same_day", 180, 0, 0, doc_type="Passport", country_of_issue="IN", pages=1
        )
        assert result.applied.preset_base is None
        assert result.subtotal == 270.0

    def test_tier_max_pages_blocks_rush(self, policy):
        result = rush_markup(policy, "same_day", 180, 0, 0, pages=3)
        assert result.applied is None
        assert result.subtotal == 180

    def test_apply_to_labor_marks_up_labor_only(self):
        policy = ensure_policy({"rush": {"rush_1bd": {"applyTo": "labor"}}})
        result = rush_markup(policy, "rush_1bd", 100, 50, 0)
        assert result.subtotal == 180.0


class TestRollupsAndTax:
    def test_complexity_rollup_takes_highest(self):
        assert complexity_rollup(["Easy", "Hard", "Medium"]) == "Hard"
        assert complexity_rollup([None, "Medium"]) == "Medium"
        assert complexity_rollup([]) == "Easy"

    def test_tax_rates(self, policy):
        assert tax_rate_for_region(policy, "ON") == 0.13
        assert tax_rate_for_region(policy, "ab") == 0.05
        assert tax_rate_for_region(policy, None) == 0.05
        assert tax_rate_for_region(policy, "QC") == 0.05


class TestPriceQuote:
    def test_single_file_general_alberta(self, policy):
        breakdown = price_quote(policy, QuoteFacts(words=900, intended_use="general", region="AB"))

        assert breakdown.raw_pages == 4.0
        assert breakdown.pages == 4.0
        assert breakdown.base_rate == 65
        assert breakdown.language_multiplier == 1.0
        assert breakdown.complexity == "Easy"
        assert breakdown.labor_rounded == 260
        assert breakdown.subtotal == 260
        assert breakdown.tax == 13.00
        assert breakdown.total == 273.00
        assert breakdown.currency == "CAD"
        assert breakdown.rush is None

    def test_pricing_is_deterministic(self, policy):
        facts = QuoteFacts(
            words=1234,
            intended_use="legal",
            requested_languages=["French"],
            detected_languages=["Arabic"],
            complexities=["Medium"],
            rush_tier="rush_1bd",
            certification="Notarization",
            shipping="canadapost",
            region="ON",
        )
        assert price_quote(policy, facts) == price_quote(policy, facts)

    def test_billing_fields_cover_quote_columns(self, policy):
        fields = price_quote(policy, QuoteFacts(words=900)).billing_fields()
        assert fields["billable_pages"] == 4.0
        assert fields["total"] == 273.00
        assert fields["rush_percent"] == 0.0
