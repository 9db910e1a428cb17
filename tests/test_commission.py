"""
Tests for commission calculation.

Covers:
- Rate resolution order (override, conversion, rep, default)
- Commission on the commissionable base, rounded once
- Post-commission deductions
- Breakdown snapshot written at approval
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from salesdesk.errors import ValidationError
from salesdesk.services.commission import (
    calculate_conversion_commission,
    compute_commission,
    resolve_commission_rate,
    validate_rate,
)
from salesdesk.services.deductions import DeductionRule


def _make_conversion(**kwargs):
    defaults = {"commission_rate": None}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _make_rep(**kwargs):
    defaults = {"commission_rate": None}
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


DEFAULT_RATE = Decimal("10")


# ── resolve_commission_rate ─────────────────────────────


class TestResolveCommissionRate:
    def test_default_when_nothing_set(self):
        rate = resolve_commission_rate(_make_conversion(), _make_rep(), DEFAULT_RATE)
        assert rate == DEFAULT_RATE

    def test_rep_rate_beats_default(self):
        rate = resolve_commission_rate(
            _make_conversion(), _make_rep(commission_rate=Decimal("12.5")), DEFAULT_RATE
        )
        assert rate == Decimal("12.5")

    def test_conversion_rate_beats_rep(self):
        rate = resolve_commission_rate(
            _make_conversion(commission_rate=Decimal("15")),
            _make_rep(commission_rate=Decimal("12.5")),
            DEFAULT_RATE,
        )
        assert rate == Decimal("15")

    def test_override_beats_everything(self):
        rate = resolve_commission_rate(
            _make_conversion(commission_rate=Decimal("15")),
            _make_rep(commission_rate=Decimal("12.5")),
            DEFAULT_RATE,
            override=Decimal("20"),
        )
        assert rate == Decimal("20")

    def test_zero_rate_is_not_treated_as_missing(self):
        rate = resolve_commission_rate(
            _make_conversion(commission_rate=Decimal("0")),
            _make_rep(commission_rate=Decimal("12.5")),
            DEFAULT_RATE,
        )
        assert rate == Decimal("0")

    def test_missing_rep_falls_back_to_default(self):
        assert resolve_commission_rate(_make_conversion(), None, DEFAULT_RATE) == DEFAULT_RATE

    def test_out_of_range_rate_rejected(self):
        with pytest.raises(ValidationError):
            resolve_commission_rate(_make_conversion(), _make_rep(), Decimal("101"))


class TestValidateRate:
    @pytest.mark.parametrize("rate", ["0", "100", "12.34", "12.340"])
    def test_valid(self, rate):
        assert validate_rate(Decimal(rate)) == Decimal(rate)

    @pytest.mark.parametrize("rate", ["-0.01", "100.01", "12.345"])
    def test_invalid(self, rate):
        with pytest.raises(ValidationError):
            validate_rate(Decimal(rate))


# ── compute_commission ─────────────────────────────


class TestComputeCommission:
    def test_basic(self):
        assert compute_commission(Decimal("500.00"), Decimal("15")) == Decimal("75.00")

    def test_rounds_half_up_once(self):
        # 333.33 * 7.5% = 24.99975 -> 25.00
        assert compute_commission(Decimal("333.33"), Decimal("7.5"), currency="USD") == Decimal("25.00")

    def test_zero_decimal_currency(self):
        assert compute_commission(Decimal("12345"), Decimal("10"), currency="JPY") == Decimal("1235")

    def test_three_decimal_currency(self):
        assert compute_commission(Decimal("10.005"), Decimal("10"), currency="KWD") == Decimal("1.001")

    def test_post_commission_deduction(self):
        post = [DeductionRule("Reserve", Decimal("10"), applies_before_commission=False)]
        assert compute_commission(Decimal("900"), Decimal("20"), post) == Decimal("162.00")

    def test_linear_in_base(self):
        rate = Decimal("12.5")
        single = compute_commission(Decimal("400"), rate)
        double = compute_commission(Decimal("800"), rate)
        assert double == single * 2

    def test_linear_in_rate(self):
        base = Decimal("1234.40")
        assert compute_commission(base, Decimal("30")) == compute_commission(base, Decimal("15")) * 2

    def test_zero_rate(self):
        assert compute_commission(Decimal("1000"), Decimal("0")) == Decimal("0.00")


# ── calculate_conversion_commission ─────────────────────────────


class TestCalculateConversionCommission:
    def test_deduction_then_commission(self):
        breakdown = calculate_conversion_commission(
            Decimal("1000.00"),
            Decimal("20"),
            [DeductionRule("Platform fee", Decimal("10"))],
            "USD",
        )
        assert breakdown.commissionable_amount == Decimal("900.00")
        assert breakdown.commission_amount == Decimal("180.00")
        assert breakdown.total_deducted == Decimal("100.00")
        assert breakdown.deductions_applied == [
            {
                "label": "Platform fee",
                "percentage": "10",
                "amount": "100.00",
                "applies_before_commission": True,
            }
        ]

    def test_no_deductions(self):
        breakdown = calculate_conversion_commission(Decimal("500.00"), Decimal("15"), [], "USD")
        assert breakdown.commissionable_amount == Decimal("500.00")
        assert breakdown.commission_amount == Decimal("75.00")
        assert breakdown.deductions_applied == []

    def test_mixed_rules_keep_configuration_order(self):
        rules = [
            DeductionRule("Reserve", Decimal("10"), applies_before_commission=False),
            DeductionRule("Platform fee", Decimal("10")),
        ]
        breakdown = calculate_conversion_commission(Decimal("1000"), Decimal("20"), rules, "USD")
        assert breakdown.commissionable_amount == Decimal("900.00")
        # 900 * 20% = 180, less 10% reserve = 162
        assert breakdown.commission_amount == Decimal("162.00")
        assert [entry["label"] for entry in breakdown.deductions_applied] == ["Reserve", "Platform fee"]
        assert breakdown.deductions_applied[0]["amount"] == "18.00"

    def test_commission_never_exceeds_revenue(self):
        breakdown = calculate_conversion_commission(Decimal("99.99"), Decimal("100"), [], "USD")
        assert breakdown.commission_amount <= Decimal("99.99")

    def test_rejects_rule_set_over_100(self):
        rules = [DeductionRule("a", Decimal("70")), DeductionRule("b", Decimal("40"))]
        with pytest.raises(ValidationError):
            calculate_conversion_commission(Decimal("1000"), Decimal("10"), rules)
