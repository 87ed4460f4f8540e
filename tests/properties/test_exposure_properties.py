"""
============================================================================
Property-Based Tests for Exposure Aggregation
============================================================================

Reliability Level: L5 Core

Tests the month x product report and the date helpers it depends on
using Hypothesis. Minimum 100 iterations per property.

Properties tested:
- Every cell and total satisfies net = physical + pricing
- Leg order does not change the report
- Date ranges are inclusive at both ends
- Working-day distribution preserves the quantity up to rounding

============================================================================
"""

from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.exposure_aggregator import aggregate_exposures, calculate_exposure_totals
from app.logic.month_codes import (
    DateRange,
    distribute_quantity_by_working_days,
    get_month_dates,
)


# =============================================================================
# HYPOTHESIS STRATEGIES
# =============================================================================

PERIODS = ["Mar-24", "Apr-24", "May-24"]

product_strategy = st.sampled_from(["RME", "UCOME", "FAME0", "HVO"])
direction_strategy = st.sampled_from(["buy", "sell"])
period_strategy = st.sampled_from(PERIODS)

physical_record_strategy = st.builds(
    lambda product, direction, quantity, period, hedge: {
        "buy_sell": direction,
        "product": product,
        "quantity": quantity,
        "trading_period": period,
        "pricing_formula": {
            "tokens": [{"id": "t1", "type": "instrument", "value": hedge}],
            "exposures": {
                "physical": {},
                "pricing": {hedge: -quantity if direction == "buy" else quantity},
            },
        },
    },
    product_strategy,
    direction_strategy,
    st.integers(min_value=0, max_value=50_000),
    period_strategy,
    st.sampled_from(["Argus RME", "Platts LSGO", "Argus UCOME"]),
)

paper_record_strategy = st.builds(
    lambda product, direction, quantity, period: {
        "buy_sell": direction,
        "product": product,
        "quantity": quantity,
        "period": period,
    },
    product_strategy,
    direction_strategy,
    st.integers(min_value=0, max_value=50_000),
    period_strategy,
)

date_strategy = st.dates(min_value=date(2023, 1, 1), max_value=date(2026, 12, 31))


# =============================================================================
# AGGREGATION
# =============================================================================

class TestNetIdentity:

    @settings(max_examples=100)
    @given(
        physical=st.lists(physical_record_strategy, max_size=8),
        paper=st.lists(paper_record_strategy, max_size=8),
    )
    def test_net_is_physical_plus_pricing(self, physical, paper) -> None:
        rows = aggregate_exposures(physical, paper, periods=PERIODS)
        for row in rows:
            for cell in row.products.values():
                assert cell.net_exposure == pytest.approx(cell.physical + cell.pricing, abs=1e-9)
            assert row.totals.net_exposure == pytest.approx(
                row.totals.physical + row.totals.pricing, abs=1e-9
            )
        grand = calculate_exposure_totals(rows)
        assert grand.net_exposure == pytest.approx(grand.physical + grand.pricing, abs=1e-9)


class TestOrderIndependence:

    @settings(max_examples=100)
    @given(
        data=st.data(),
        physical=st.lists(physical_record_strategy, max_size=6),
        paper=st.lists(paper_record_strategy, max_size=6),
    )
    def test_permuted_legs_give_same_report(self, data, physical, paper) -> None:
        shuffled_physical = data.draw(st.permutations(physical))
        shuffled_paper = data.draw(st.permutations(paper))

        original = [row.to_dict() for row in aggregate_exposures(physical, paper, periods=PERIODS)]
        shuffled = [
            row.to_dict()
            for row in aggregate_exposures(shuffled_physical, shuffled_paper, periods=PERIODS)
        ]
        assert shuffled == original


# =============================================================================
# DATES
# =============================================================================

class TestDateRange:

    @settings(max_examples=100)
    @given(first=date_strategy, second=date_strategy, probe=date_strategy)
    def test_inclusive_bounds(self, first, second, probe) -> None:
        start, end = min(first, second), max(first, second)
        window = DateRange(start, end)
        assert window.contains(start)
        assert window.contains(end)
        assert window.contains(probe) == (start <= probe <= end)

    @settings(max_examples=100)
    @given(first=date_strategy, second=date_strategy)
    def test_months_overlap_range(self, first, second) -> None:
        start, end = min(first, second), max(first, second)
        window = DateRange(start, end)
        months = window.months()
        assert months
        for code in months:
            assert window.overlaps_month(code)
        before_first = get_month_dates(months[0])[0] - timedelta(days=1)
        assert not window.contains(before_first)


class TestWorkingDayDistribution:

    @settings(max_examples=100)
    @given(
        first=date_strategy,
        span=st.integers(min_value=0, max_value=120),
        quantity=st.integers(min_value=0, max_value=1_000_000),
    )
    def test_quantity_preserved(self, first, span, quantity) -> None:
        distribution = distribute_quantity_by_working_days(first, first + timedelta(days=span), quantity)
        if not distribution:
            return
        assert sum(distribution.values()) == pytest.approx(quantity, abs=0.01 * len(distribution))
