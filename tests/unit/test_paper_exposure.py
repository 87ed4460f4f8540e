"""
Unit Tests for Paper Leg Exposure

Reliability Level: L5 Core

Source precedence for a paper leg: daily maps (with a date range),
instrument shorthand, explicit exposures, MTM formula exposures, then
plain quantity.
"""

import os
import sys
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.formula_parser import PricingFormula
from app.logic.month_codes import DateRange
from app.logic.paper_exposure import calculate_paper_exposure
from app.logic.trade_legs import PaperTradeLeg


PERIODS = ["Mar-24", "Apr-24"]


class TestInstrumentLegs:

    def test_diff_instrument(self) -> None:
        leg = PaperTradeLeg(buy_sell="buy", quantity=100, period="Mar-24", instrument="UCOME DIFF")
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Mar-24"] == {"Argus UCOME": 100, "Platts LSGO": -100}
        assert result.pricing_from_paper["Mar-24"] == {"Argus UCOME": 100, "Platts LSGO": -100}

    def test_spread_instrument_sell(self) -> None:
        leg = PaperTradeLeg(buy_sell="sell", quantity=50, period="Apr-24", instrument="RME-FAME0 SPREAD")
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Apr-24"] == {"Argus RME": -50, "Argus FAME0": 50}

    def test_fp_instrument(self) -> None:
        leg = PaperTradeLeg(buy_sell="buy", quantity=10, period="Mar-24", instrument="FAME0 FP")
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Mar-24"] == {"Argus FAME0": 10}


class TestExposureMaps:

    def test_explicit_physical_and_pricing(self) -> None:
        leg = PaperTradeLeg(
            period="Mar-24",
            exposures={"physical": {"Argus UCOME": 50}, "pricing": {"Argus UCOME": -50}},
        )
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Mar-24"] == {"Argus UCOME": 50}
        assert result.pricing_from_paper["Mar-24"] == {"Argus UCOME": -50}

    def test_physical_only_defaults_pricing(self) -> None:
        leg = PaperTradeLeg(period="Mar-24", exposures={"physical": {"RME": 30}})
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Mar-24"] == {"Argus RME": 30}
        assert result.pricing_from_paper["Mar-24"] == {"Argus RME": 30}

    def test_mtm_formula_scaled_by_direction(self) -> None:
        mtm = PricingFormula(exposures={"physical": {"Argus RME": 10}, "pricing": {"Argus FAME0": -10}})
        leg = PaperTradeLeg(buy_sell="sell", quantity=10, period="Apr-24", mtm_formula=mtm)
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Apr-24"] == {"Argus RME": -10}
        assert result.pricing_from_paper["Apr-24"] == {"Argus RME": -10, "Argus FAME0": 10}

    def test_mtm_formula_without_exposures_falls_through(self) -> None:
        leg = PaperTradeLeg(
            buy_sell="sell", product="FAME0", quantity=40, period="Apr-24",
            mtm_formula=PricingFormula(),
        )
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper["Apr-24"] == {"Argus FAME0": -40}
        assert result.pricing_from_paper["Apr-24"] == {"Argus FAME0": -40}


class TestMonthsAndRanges:

    def test_non_standard_period_normalised(self) -> None:
        leg = PaperTradeLeg(product="RME", quantity=5, period="Mar 24")
        assert calculate_paper_exposure([leg], PERIODS).paper["Mar-24"] == {"Argus RME": 5}

    def test_period_outside_report(self) -> None:
        leg = PaperTradeLeg(product="RME", quantity=5, period="Jun-24")
        result = calculate_paper_exposure([leg], PERIODS)
        assert result.paper == {"Mar-24": {}, "Apr-24": {}}

    def test_missing_period(self) -> None:
        result = calculate_paper_exposure([PaperTradeLeg(product="RME", quantity=5)], PERIODS)
        assert result.paper == {"Mar-24": {}, "Apr-24": {}}

    def test_daily_distribution_with_range(self) -> None:
        leg = PaperTradeLeg(
            product="UCOME", quantity=12, period="Mar-24",
            exposures={"paperdailyDistribution": {"UCOME": {"2024-03-28": 5, "2024-04-02": 7, "2024-04-20": 9}}},
        )
        window = DateRange(date(2024, 3, 25), date(2024, 4, 5))
        result = calculate_paper_exposure([leg], PERIODS, window)
        assert result.paper["Mar-24"] == {"Argus UCOME": 5}
        assert result.paper["Apr-24"] == {"Argus UCOME": 7}
        assert result.pricing_from_paper["Apr-24"] == {"Argus UCOME": 7}

    def test_separate_pricing_daily_map(self) -> None:
        leg = PaperTradeLeg(
            period="Mar-24",
            exposures={
                "paperDailyDistribution": {"RME": {"2024-03-28": 5}},
                "pricingDailyDistribution": {"FAME0": {"2024-03-28": -5}},
            },
        )
        window = DateRange(date(2024, 3, 1), date(2024, 3, 31))
        result = calculate_paper_exposure([leg], PERIODS, window)
        assert result.paper["Mar-24"] == {"Argus RME": 5}
        assert result.pricing_from_paper["Mar-24"] == {"Argus FAME0": -5}

    def test_range_without_daily_map_uses_month_overlap(self) -> None:
        leg = PaperTradeLeg(product="RME", quantity=5, period="Mar-24")
        window = DateRange(date(2024, 4, 1), date(2024, 4, 30))
        result = calculate_paper_exposure([leg], PERIODS, window)
        assert result.paper["Mar-24"] == {}
