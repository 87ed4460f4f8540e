"""
============================================================================
Project Exposure Desk v1.0.0
Exposure Aggregator - Month x Product Exposure Table
============================================================================

Reliability Level: L5 Core
Input Constraints: Physical and paper legs (records or dataclasses)
Side Effects: Counts exposure reports (Prometheus)

MERGE RULES
-----------
    physical           -> ExposureData.physical
    pricing            -> ExposureData.pricing
    paper              -> ExposureData.paper
    pricing-from-paper -> ExposureData.pricing

    netExposure = physical + pricing, recomputed for every cell

Product keys are canonicalised before merging. Accumulation is plain
addition per key, so leg order never changes the result.

============================================================================
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from app.logic.month_codes import DateRange, is_month_code, month_sort_key, standardize_month_code
from app.logic.paper_exposure import calculate_paper_exposure
from app.logic.physical_exposure import (
    DEFAULT_FALLBACK_MONTH,
    MonthProductMap,
    calculate_physical_exposure,
    physical_exposure_month,
    pricing_exposure_month,
)
from app.logic.product_mapping import group_products, map_product_to_canonical
from app.logic.trade_legs import PaperTradeLeg, PhysicalTradeLeg
from app.observability.metrics import record_exposure_report

# Configure module logger
logger = logging.getLogger(__name__)


def calculate_net_exposure(physical: float, pricing: float) -> float:
    return physical + pricing


@dataclass
class ExposureData:
    physical: float = 0.0
    pricing: float = 0.0
    paper: float = 0.0
    net_exposure: float = 0.0

    def recompute_net(self) -> None:
        self.net_exposure = calculate_net_exposure(self.physical, self.pricing)

    def to_dict(self) -> Dict[str, float]:
        return {
            "physical": self.physical,
            "pricing": self.pricing,
            "paper": self.paper,
            "netExposure": self.net_exposure,
        }


@dataclass
class MonthlyExposure:
    month: str
    products: Dict[str, ExposureData] = field(default_factory=dict)
    totals: ExposureData = field(default_factory=ExposureData)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "products": {name: data.to_dict() for name, data in self.products.items()},
            "totals": self.totals.to_dict(),
        }


ExposureTable = Dict[str, Dict[str, ExposureData]]


# =============================================================================
# Merge Steps
# =============================================================================

def initialize_exposure_data(
    periods: Sequence[str],
    allowed_products: Iterable[str] = ()
) -> ExposureTable:
    """Zeroed cells for every period x allowed product."""
    products = list(allowed_products)
    return {month: {p: ExposureData() for p in products} for month in periods}


def _merge_field(
    table: ExposureTable,
    source: MonthProductMap,
    attribute: str,
    found: Set[str]
) -> None:
    for month, products in source.items():
        if month not in table:
            continue
        for product, amount in products.items():
            canonical = map_product_to_canonical(product)
            found.add(canonical)
            cell = table[month].setdefault(canonical, ExposureData())
            setattr(cell, attribute, getattr(cell, attribute) + amount)


def merge_exposure_data(
    table: ExposureTable,
    physical: MonthProductMap,
    pricing: MonthProductMap,
    paper: MonthProductMap,
    pricing_from_paper: MonthProductMap
) -> Set[str]:
    """
    Fold the four bucket maps into table in place.

    Returns:
        Every canonical product seen
    """
    found: Set[str] = set()
    _merge_field(table, physical, "physical", found)
    _merge_field(table, pricing, "pricing", found)
    _merge_field(table, paper, "paper", found)
    _merge_field(table, pricing_from_paper, "pricing", found)

    for month_cells in table.values():
        for cell in month_cells.values():
            cell.recompute_net()
    return found


def format_exposure_data(
    table: ExposureTable,
    periods: Sequence[str],
    allowed_products: Optional[Iterable[str]] = None
) -> List[MonthlyExposure]:
    """
    Ordered MonthlyExposure rows restricted to allowed_products.

    allowed_products None keeps every product. Totals sum the kept cells.
    """
    allowed = None if allowed_products is None else set(allowed_products)
    rows: List[MonthlyExposure] = []
    for month in periods:
        row = MonthlyExposure(month=month)
        for product, cell in table.get(month, {}).items():
            if allowed is not None and product not in allowed:
                continue
            row.products[product] = cell
            row.totals.physical += cell.physical
            row.totals.pricing += cell.pricing
            row.totals.paper += cell.paper
        row.totals.recompute_net()
        rows.append(row)
    return rows


def calculate_exposure_totals(rows: Sequence[MonthlyExposure]) -> ExposureData:
    """Grand total across months."""
    total = ExposureData()
    for row in rows:
        total.physical += row.totals.physical
        total.pricing += row.totals.pricing
        total.paper += row.totals.paper
    total.recompute_net()
    return total


def calculate_product_totals(rows: Sequence[MonthlyExposure]) -> Dict[str, ExposureData]:
    """Per-product totals across months."""
    totals: Dict[str, ExposureData] = {}
    for row in rows:
        for product, cell in row.products.items():
            total = totals.setdefault(product, ExposureData())
            total.physical += cell.physical
            total.pricing += cell.pricing
            total.paper += cell.paper
    for total in totals.values():
        total.recompute_net()
    return totals


def filter_exposures_by_group(rows: Sequence[MonthlyExposure], group: str) -> List[MonthlyExposure]:
    """Keep only products in the given reporting group and re-derive totals."""
    filtered: List[MonthlyExposure] = []
    for row in rows:
        keep = group_products(list(row.products)).get(group, [])
        table = {row.month: {p: row.products[p] for p in keep}}
        filtered.extend(format_exposure_data(table, [row.month]))
    return filtered


# =============================================================================
# Entry Point
# =============================================================================

def _as_physical(leg: Union[PhysicalTradeLeg, Any]) -> PhysicalTradeLeg:
    return leg if isinstance(leg, PhysicalTradeLeg) else PhysicalTradeLeg.from_record(leg)


def _as_paper(leg: Union[PaperTradeLeg, Any]) -> PaperTradeLeg:
    return leg if isinstance(leg, PaperTradeLeg) else PaperTradeLeg.from_record(leg)


def derive_periods(
    physical_legs: Sequence[PhysicalTradeLeg],
    paper_legs: Sequence[PaperTradeLeg],
    date_range: Optional[DateRange] = None,
    fallback_month: str = DEFAULT_FALLBACK_MONTH
) -> List[str]:
    """Reporting months: the range's months, else every month the legs touch."""
    if date_range is not None:
        return date_range.months()

    months: Set[str] = set()
    for leg in physical_legs:
        months.add(physical_exposure_month(leg, fallback_month))
        months.add(pricing_exposure_month(leg, fallback_month))
        for buckets in (leg.pricing_formula.monthly_distribution or {}).values():
            months.update(buckets.keys())
    for leg in paper_legs:
        if leg.month:
            months.add(leg.month)

    codes = {standardize_month_code(m) for m in months if m and is_month_code(m)}
    return sorted(codes, key=month_sort_key)


def aggregate_exposures(
    physical_legs: Iterable[Any],
    paper_legs: Iterable[Any],
    periods: Optional[Sequence[str]] = None,
    allowed_products: Optional[Iterable[str]] = None,
    date_range: Optional[DateRange] = None,
    fallback_month: str = DEFAULT_FALLBACK_MONTH
) -> List[MonthlyExposure]:
    """
    Build the month x product exposure table.

    Args:
        physical_legs: PhysicalTradeLeg objects or raw records
        paper_legs: PaperTradeLeg objects or raw records
        periods: Reporting months in output order (derived when None)
        allowed_products: Products to report (all found when None)
        date_range: Optional inclusive reporting window
        fallback_month: Month for legs with no dated field

    Returns:
        One MonthlyExposure per period
    """
    started = time.perf_counter()
    physical = [_as_physical(leg) for leg in physical_legs]
    paper = [_as_paper(leg) for leg in paper_legs]

    if periods is None:
        periods = derive_periods(physical, paper, date_range, fallback_month)
    periods = list(periods)
    allowed = None if allowed_products is None else list(allowed_products)

    physical_result = calculate_physical_exposure(physical, periods, date_range, fallback_month)
    paper_result = calculate_paper_exposure(paper, periods, date_range)

    table = initialize_exposure_data(periods, allowed or ())
    found = merge_exposure_data(
        table,
        physical_result.physical,
        physical_result.pricing,
        paper_result.paper,
        paper_result.pricing_from_paper,
    )
    rows = format_exposure_data(table, periods, allowed)

    duration = time.perf_counter() - started
    record_exposure_report("success", len(physical), len(paper), duration)
    logger.info(
        "Exposure report built | physical_legs=%s | paper_legs=%s | months=%s | products=%s",
        len(physical), len(paper), len(periods), len(found)
    )
    return rows


__all__ = [
    "ExposureData",
    "MonthlyExposure",
    "ExposureTable",
    "calculate_net_exposure",
    "initialize_exposure_data",
    "merge_exposure_data",
    "format_exposure_data",
    "calculate_exposure_totals",
    "calculate_product_totals",
    "filter_exposures_by_group",
    "derive_periods",
    "aggregate_exposures",
]
