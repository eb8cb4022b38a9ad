"""Unit tests for proration calculation

Tests cover:
- Upgrade mid-period produces a charge
- Downgrade mid-period produces a credit
- Change at or after period end prorates nothing
- Invalid billing periods are rejected
- Rounding follows the currency minor unit
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from src.domain.proration import calculate_proration, is_downgrade, is_upgrade


PERIOD_START = datetime(2024, 1, 1)
PERIOD_END = PERIOD_START + timedelta(days=30)


class TestUpgradeProration:

    def test_upgrade_on_day_ten_charges_remaining_difference(self):
        """
        Given: 30 day period, plan 10.00 -> 20.00
        When: change happens after 10 days
        Then: net charge is (20 - 10) * 20/30 = 6.67
        """
        result = calculate_proration(
            Decimal("10.00"), Decimal("20.00"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=10),
        )

        assert result.amount == Decimal("6.67")
        assert result.is_charge
        assert not result.is_credit
        assert result.total_days == 30
        assert result.days_remaining == 20
        assert result.description.startswith("Upgrade proration")

    def test_components_are_exposed(self):
        result = calculate_proration(
            Decimal("30.00"), Decimal("60.00"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=15),
        )

        assert result.unused_old_credit == Decimal("15")
        assert result.new_plan_charge == Decimal("30")
        assert result.old_plan_daily_rate == Decimal("1")
        assert result.new_plan_daily_rate == Decimal("2")
        assert result.amount == Decimal("15.00")


class TestDowngradeProration:

    def test_downgrade_on_day_ten_credits_remaining_difference(self):
        result = calculate_proration(
            Decimal("20.00"), Decimal("10.00"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=10),
        )

        assert result.amount == Decimal("-6.67")
        assert result.is_credit
        assert result.description.startswith("Downgrade credit")

    def test_same_price_nets_to_zero(self):
        result = calculate_proration(
            Decimal("10.00"), Decimal("10.00"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=3),
        )

        assert result.amount == Decimal("0.00")
        assert not result.is_charge
        assert not result.is_credit


class TestProrationEdges:

    def test_change_after_period_end_prorates_nothing(self):
        result = calculate_proration(
            Decimal("10.00"), Decimal("20.00"), PERIOD_START, PERIOD_END,
            PERIOD_END + timedelta(days=2),
        )

        assert result.days_remaining == 0
        assert result.amount == Decimal("0.00")
        assert "no proration" in result.description

    def test_change_before_period_start_is_clamped_to_full_period(self):
        result = calculate_proration(
            Decimal("10.00"), Decimal("20.00"), PERIOD_START, PERIOD_END,
            PERIOD_START - timedelta(days=5),
        )

        assert result.days_remaining == 30
        assert result.amount == Decimal("10.00")

    def test_partial_days_round_up(self):
        result = calculate_proration(
            Decimal("10.00"), Decimal("20.00"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=10, hours=12),
        )

        assert result.days_remaining == 20

    def test_empty_period_raises(self):
        with pytest.raises(ValueError):
            calculate_proration(
                Decimal("10.00"), Decimal("20.00"), PERIOD_START, PERIOD_START, PERIOD_START
            )

    def test_upgrade_and_downgrade_helpers(self):
        assert is_upgrade(Decimal("10"), Decimal("20"))
        assert not is_upgrade(Decimal("20"), Decimal("10"))
        assert is_downgrade(Decimal("20"), Decimal("10"))
        assert not is_downgrade(Decimal("10"), Decimal("10"))


class TestProrationCurrencies:

    def test_three_decimal_currency_keeps_fils(self):
        result = calculate_proration(
            Decimal("10.000"), Decimal("20.000"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=10), currency="KWD",
        )

        assert result.amount == Decimal("6.667")

    def test_zero_decimal_currency_rounds_to_whole_units(self):
        result = calculate_proration(
            Decimal("1000"), Decimal("2000"), PERIOD_START, PERIOD_END,
            PERIOD_START + timedelta(days=10), currency="JPY",
        )

        assert result.amount == Decimal("667")

    def test_difference_below_minor_unit_is_zero(self):
        result = calculate_proration(
            Decimal("100"), Decimal("101"), PERIOD_START, PERIOD_END,
            PERIOD_END - timedelta(days=1), currency="JPY",
        )

        assert result.amount == Decimal("0")
        assert not result.is_charge

    def test_unsupported_currency_raises(self):
        with pytest.raises(ValueError):
            calculate_proration(
                Decimal("10.00"), Decimal("20.00"), PERIOD_START, PERIOD_END,
                PERIOD_START + timedelta(days=10), currency="XYZ",
            )
