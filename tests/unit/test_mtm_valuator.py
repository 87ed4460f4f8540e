"""
Unit Tests for MTM Valuation

Reliability Level: L5 Core

Tests:
- Sign convention of calculate_mtm_value
- Past / current / future period classification
- Paper trade and market prices for FP, DIFF and SPREAD legs
- Missing prices (MTM-001) value the leg at 0
"""

import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.mtm_valuator import (
    PeriodType,
    calculate_mtm_value,
    calculate_paper_mtm_price,
    calculate_paper_trade_price,
    get_period_type,
    value_paper_leg,
)
from app.logic.trade_legs import PaperTradeLeg, RightSide
from market_prices.price_source import StaticPriceSource


TODAY = date(2024, 6, 15)


@pytest.fixture
def price_source() -> StaticPriceSource:
    return StaticPriceSource(
        prices={"Argus UCOME": 1000.0, "Platts LSGO": 700.0, "Argus RME": 950.0},
        monthly_averages={("Argus UCOME", "May-24"): 950.0},
        forward_prices={("Argus UCOME", "Jul-24"): 1020.0},
    )


class TestCalculateMTMValue:

    def test_buy(self) -> None:
        assert calculate_mtm_value(100, 110, 50, "buy") == 500

    def test_sell(self) -> None:
        assert calculate_mtm_value(100, 110, 50, "sell") == -500

    def test_unchanged_price(self) -> None:
        assert calculate_mtm_value(100, 100, 50, "buy") == 0


class TestPeriodType:

    def test_past_current_future(self) -> None:
        assert get_period_type(date(2024, 5, 1), date(2024, 5, 31), TODAY) == PeriodType.PAST
        assert get_period_type(date(2024, 6, 1), date(2024, 6, 30), TODAY) == PeriodType.CURRENT
        assert get_period_type(date(2024, 7, 1), date(2024, 7, 31), TODAY) == PeriodType.FUTURE

    def test_period_ending_today_is_current(self) -> None:
        assert get_period_type("2024-06-01", "2024-06-15", TODAY) == PeriodType.CURRENT


class TestPaperPrices:

    def test_trade_price_fp(self) -> None:
        leg = PaperTradeLeg(price=900.0, relationship_type="FP", right_side=RightSide("LSGO", 700.0))
        assert calculate_paper_trade_price(leg) == 900.0

    def test_trade_price_diff(self) -> None:
        leg = PaperTradeLeg(price=900.0, relationship_type="DIFF", right_side=RightSide("LSGO", 700.0))
        assert calculate_paper_trade_price(leg) == 200.0

    def test_past_period_uses_monthly_average(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(product="UCOME", period="May-24")
        assert calculate_paper_mtm_price(leg, price_source, TODAY) == 950.0

    def test_future_period_uses_forward_curve(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(product="UCOME", period="Jul-24")
        assert calculate_paper_mtm_price(leg, price_source, TODAY) == 1020.0

    def test_diff_prices_against_lsgo(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(product="UCOME", period="Jul-24", relationship_type="DIFF")
        assert calculate_paper_mtm_price(leg, price_source, TODAY) == 320.0

    def test_spread_prices_against_right_side(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(
            product="UCOME", period="Aug-24", relationship_type="SPREAD",
            right_side=RightSide("RME", 0.0),
        )
        assert calculate_paper_mtm_price(leg, price_source, TODAY) == 50.0

    def test_missing_period(self, price_source: StaticPriceSource) -> None:
        assert calculate_paper_mtm_price(PaperTradeLeg(product="UCOME"), price_source, TODAY) is None

    def test_invalid_period(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(product="UCOME", period="sometime")
        assert calculate_paper_mtm_price(leg, price_source, TODAY) is None

    def test_unknown_product(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(product="Jet", period="Jul-24")
        assert calculate_paper_mtm_price(leg, price_source, TODAY) is None


class TestValuePaperLeg:

    def test_buy_leg(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(
            id="p1", buy_sell="buy", product="UCOME", quantity=10,
            price=1000.0, period="Jul-24",
        )
        position = value_paper_leg(leg, price_source, TODAY)
        assert position.calculated_price == 1000.0
        assert position.mtm_calculated_price == 1020.0
        assert position.mtm_value == 200.0
        assert position.period_type == "future"
        assert position.to_dict()["mtmValue"] == 200.0

    def test_unpriced_leg_is_zero(self, price_source: StaticPriceSource) -> None:
        leg = PaperTradeLeg(id="p2", buy_sell="sell", product="Jet", quantity=10, price=5.0, period="Jul-24")
        position = value_paper_leg(leg, price_source, TODAY)
        assert position.mtm_calculated_price is None
        assert position.mtm_value == 0.0
