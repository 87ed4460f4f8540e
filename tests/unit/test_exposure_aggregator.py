"""
Unit Tests for the Exposure Aggregator

Reliability Level: L5 Core

Tests:
- Month x product table built from raw leg records
- Net exposure = physical + pricing (paper reported separately)
- allowed_products column restriction and zero cells
- Period derivation, totals and group filtering
"""

import os
import sys
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.exposure_aggregator import (
    ExposureData,
    aggregate_exposures,
    calculate_exposure_totals,
    calculate_product_totals,
    derive_periods,
    filter_exposures_by_group,
    initialize_exposure_data,
    merge_exposure_data,
)
from app.logic.trade_legs import PaperTradeLeg, PhysicalTradeLeg


PHYSICAL_RECORDS = [
    {
        "id": "l1",
        "buy_sell": "buy",
        "product": "RME",
        "quantity": 1000,
        "loading_period_start": "2024-03-10",
        "trading_period": "Mar-24",
        "pricing_formula": {
            "tokens": [{"id": "t1", "type": "instrument", "value": "Argus RME"}],
            "exposures": {"physical": {"Argus RME": 1000}, "pricing": {"Argus RME": -1000}},
        },
    },
    {
        "id": "l2",
        "buy_sell": "sell",
        "product": "UCOME",
        "quantity": 400,
        "loading_period_start": "2024-04-02",
        "trading_period": "Apr-24",
        "pricing_formula": {
            "tokens": [{"id": "t2", "type": "instrument", "value": "Platts LSGO"}],
            "exposures": {"physical": {"Argus UCOME": -400}, "pricing": {"Platts LSGO": 400}},
        },
    },
]

PAPER_RECORDS = [
    {"id": "p1", "buy_sell": "sell", "product": "RME", "quantity": 300, "period": "Mar-24"},
]


class TestAggregateExposures:

    def test_table(self) -> None:
        rows = aggregate_exposures(PHYSICAL_RECORDS, PAPER_RECORDS, periods=["Mar-24", "Apr-24"])
        march, april = rows
        assert march.month == "Mar-24"
        rme = march.products["Argus RME"]
        assert rme.physical == 1000
        assert rme.pricing == -1000 - 300
        assert rme.paper == -300
        assert rme.net_exposure == rme.physical + rme.pricing
        assert april.products["Argus UCOME"].physical == -400
        assert april.products["Platts LSGO"].pricing == 400

    def test_totals(self) -> None:
        rows = aggregate_exposures(PHYSICAL_RECORDS, PAPER_RECORDS, periods=["Mar-24", "Apr-24"])
        assert rows[0].totals.physical == 1000
        assert rows[0].totals.paper == -300
        assert rows[0].totals.net_exposure == rows[0].totals.physical + rows[0].totals.pricing

    def test_allowed_products(self) -> None:
        rows = aggregate_exposures(
            PHYSICAL_RECORDS, [], periods=["Mar-24", "Apr-24"],
            allowed_products=["Argus RME", "Argus HVO"],
        )
        assert set(rows[1].products) == {"Argus RME", "Argus HVO"}
        assert rows[1].products["Argus HVO"].to_dict() == {
            "physical": 0.0, "pricing": 0.0, "paper": 0.0, "netExposure": 0.0,
        }
        assert rows[1].totals.physical == 0.0

    def test_allowed_products_generator(self) -> None:
        rows = aggregate_exposures(
            PHYSICAL_RECORDS, [], periods=["Mar-24"],
            allowed_products=(p for p in ["Argus RME"]),
        )
        assert list(rows[0].products) == ["Argus RME"]

    def test_periods_derived(self) -> None:
        rows = aggregate_exposures(PHYSICAL_RECORDS, PAPER_RECORDS)
        assert [row.month for row in rows] == ["Mar-24", "Apr-24"]

    def test_empty_input(self) -> None:
        assert aggregate_exposures([], []) == []
        rows = aggregate_exposures([], [], periods=["Mar-24"])
        assert rows[0].products == {}

    def test_records_report_metric(self) -> None:
        with patch("app.logic.exposure_aggregator.record_exposure_report") as record:
            aggregate_exposures(PHYSICAL_RECORDS, PAPER_RECORDS, periods=["Mar-24"])
        args = record.call_args[0]
        assert args[:3] == ("success", 2, 1)

    def test_to_dict(self) -> None:
        rows = aggregate_exposures(PHYSICAL_RECORDS, [], periods=["Mar-24"])
        data = rows[0].to_dict()
        assert data["month"] == "Mar-24"
        assert data["products"]["Argus RME"]["netExposure"] == 0


class TestMergeSteps:

    def test_initialize(self) -> None:
        table = initialize_exposure_data(["Mar-24"], ["Argus RME"])
        assert table == {"Mar-24": {"Argus RME": ExposureData()}}

    def test_merge_skips_unknown_months(self) -> None:
        table = initialize_exposure_data(["Mar-24"])
        found = merge_exposure_data(
            table,
            physical={"Mar-24": {"RME": 10}, "Jul-24": {"RME": 99}},
            pricing={"Mar-24": {"Argus RME": -4}},
            paper={"Mar-24": {"UCOME": 3}},
            pricing_from_paper={"Mar-24": {"UCOME": 3}},
        )
        assert found == {"Argus RME", "Argus UCOME"}
        assert table["Mar-24"]["Argus RME"].net_exposure == 6
        assert table["Mar-24"]["Argus UCOME"].paper == 3
        assert table["Mar-24"]["Argus UCOME"].net_exposure == 3


class TestTotalsAndGroups:

    def test_grand_and_product_totals(self) -> None:
        rows = aggregate_exposures(PHYSICAL_RECORDS, PAPER_RECORDS, periods=["Mar-24", "Apr-24"])
        grand = calculate_exposure_totals(rows)
        assert grand.physical == 600
        assert grand.net_exposure == pytest.approx(grand.physical + grand.pricing)
        per_product = calculate_product_totals(rows)
        assert per_product["Argus RME"].paper == -300

    def test_filter_by_group(self) -> None:
        rows = aggregate_exposures(PHYSICAL_RECORDS, [], periods=["Mar-24", "Apr-24"])
        pricing_only = filter_exposures_by_group(rows, "pricing")
        assert list(pricing_only[1].products) == ["Platts LSGO"]
        assert pricing_only[1].totals.pricing == 400
        assert pricing_only[0].products == {}


class TestDerivePeriods:

    def test_from_legs(self) -> None:
        physical = [PhysicalTradeLeg(loading_period_start="2024-05-01", trading_period="Apr-24")]
        paper = [PaperTradeLeg(period="Mar 24")]
        assert derive_periods(physical, paper) == ["Mar-24", "Apr-24", "May-24"]
