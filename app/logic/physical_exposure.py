"""
============================================================================
Project Exposure Desk v1.0.0
Physical Exposure - Per-Leg Physical and Pricing Buckets
============================================================================

Reliability Level: L5 Core
Input Constraints: PhysicalTradeLeg list, reporting periods
Side Effects: None (pure functions)

MONTH RESOLUTION
----------------
    physical month: loading start -> trading period -> pricing start -> fallback
    pricing month:  EFP designated (EFP legs) -> trading period -> pricing start -> fallback

PRICING SOURCES
---------------
    with date range:    dailyDistribution days inside the range, re-bucketed
                        by each day's month; legs without daily data fall
                        back to the unfiltered sources for overlapping months
    without date range: monthlyDistribution, else exposures.pricing in the
                        pricing month

Unagreed EFP legs carry ICE GASOIL FUTURES (EFP) pricing exposure of
quantity * (1 + tolerance / 100), opposite in sign to the physical side.

============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence

from app.logic.formula_parser import DistributionMap
from app.logic.exposure_calculator import direction_sign
from app.logic.month_codes import (
    DateRange,
    format_month_code,
    is_month_code,
    standardize_month_code,
    to_date_or_none,
)
from app.logic.product_mapping import EFP_INSTRUMENT, ICE_GASOIL_FUTURES, map_product_to_canonical
from app.logic.trade_legs import PhysicalTradeLeg

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MONTH = "Dec-24"

# month -> product -> amount
MonthProductMap = Dict[str, Dict[str, float]]


@dataclass
class PhysicalExposureResult:
    physical: MonthProductMap = field(default_factory=dict)
    pricing: MonthProductMap = field(default_factory=dict)


def add_to_bucket(buckets: MonthProductMap, month: str, product: str, amount: float) -> None:
    month_bucket = buckets.setdefault(month, {})
    month_bucket[product] = month_bucket.get(product, 0.0) + amount


# =============================================================================
# Month Resolution
# =============================================================================

def _month_of(value: Optional[str]) -> Optional[str]:
    d = to_date_or_none(value)
    return format_month_code(d) if d else None


def _period_code(value: Optional[str]) -> Optional[str]:
    if value and is_month_code(value):
        return standardize_month_code(value)
    return value or None


def physical_exposure_month(leg: PhysicalTradeLeg, fallback: str = DEFAULT_FALLBACK_MONTH) -> str:
    return (
        _month_of(leg.loading_period_start)
        or _period_code(leg.trading_period)
        or _month_of(leg.pricing_period_start)
        or fallback
    )


def pricing_exposure_month(leg: PhysicalTradeLeg, fallback: str = DEFAULT_FALLBACK_MONTH) -> str:
    if leg.is_efp and leg.efp_designated_month:
        return _period_code(leg.efp_designated_month)
    return (
        _period_code(leg.trading_period)
        or _month_of(leg.pricing_period_start)
        or fallback
    )


def is_unagreed_efp(leg: PhysicalTradeLeg) -> bool:
    return leg.is_efp and not leg.efp_agreed_status


# =============================================================================
# Per-Leg Processing
# =============================================================================

def _add_physical(
    result: PhysicalExposureResult,
    leg: PhysicalTradeLeg,
    month: str
) -> None:
    canonical_product = map_product_to_canonical(leg.product or "Unknown")
    if canonical_product == ICE_GASOIL_FUTURES:
        return

    formula_physical = leg.pricing_formula.physical
    if formula_physical:
        for base_product, weight in formula_physical.items():
            add_to_bucket(result.physical, month, map_product_to_canonical(base_product), weight)
        return

    add_to_bucket(
        result.physical, month, canonical_product,
        leg.quantity * direction_sign(leg.buy_sell)
    )


def _add_daily_pricing(
    result: PhysicalExposureResult,
    daily: DistributionMap,
    periods: Sequence[str],
    date_range: DateRange,
    skip_efp: bool
) -> None:
    for instrument, days in daily.items():
        canonical = map_product_to_canonical(instrument)
        if skip_efp and canonical == EFP_INSTRUMENT:
            continue
        for day, value in days.items():
            d = to_date_or_none(day)
            if d is None or not date_range.contains(d):
                continue
            month = format_month_code(d)
            if month in periods:
                add_to_bucket(result.pricing, month, canonical, value)


def _add_undistributed_pricing(
    result: PhysicalExposureResult,
    leg: PhysicalTradeLeg,
    pricing_month: str,
    periods: Sequence[str],
    date_range: Optional[DateRange],
    skip_efp: bool
) -> None:
    formula = leg.pricing_formula
    if formula.monthly_distribution:
        for instrument, months in formula.monthly_distribution.items():
            canonical = map_product_to_canonical(instrument)
            if skip_efp and canonical == EFP_INSTRUMENT:
                continue
            for month_code, value in months.items():
                month = _period_code(month_code)
                if value == 0 or month not in periods:
                    continue
                if date_range is not None and not date_range.overlaps_month(month):
                    continue
                add_to_bucket(result.pricing, month, canonical, value)
        return

    if pricing_month not in periods:
        return
    if date_range is not None and not date_range.overlaps_month(pricing_month):
        return
    for instrument, value in formula.pricing.items():
        canonical = map_product_to_canonical(instrument)
        if skip_efp and canonical == EFP_INSTRUMENT:
            continue
        add_to_bucket(result.pricing, pricing_month, canonical, value)


def _add_efp_pricing(
    result: PhysicalExposureResult,
    leg: PhysicalTradeLeg,
    pricing_month: str,
    periods: Sequence[str],
    date_range: Optional[DateRange]
) -> None:
    if pricing_month not in periods:
        return
    if date_range is not None and not date_range.overlaps_month(pricing_month):
        return
    amount = leg.quantity * (1 + leg.tolerance / 100) * -direction_sign(leg.buy_sell)
    add_to_bucket(result.pricing, pricing_month, EFP_INSTRUMENT, amount)


def process_physical_leg(
    result: PhysicalExposureResult,
    leg: PhysicalTradeLeg,
    periods: Sequence[str],
    date_range: Optional[DateRange] = None,
    fallback_month: str = DEFAULT_FALLBACK_MONTH
) -> None:
    """Fold one physical leg into result."""
    physical_month = physical_exposure_month(leg, fallback_month)
    pricing_month = pricing_exposure_month(leg, fallback_month)

    if physical_month in periods and (
        date_range is None or date_range.overlaps_month(physical_month)
    ):
        _add_physical(result, leg, physical_month)

    skip_efp = is_unagreed_efp(leg)
    daily = leg.pricing_formula.daily_distribution
    if date_range is not None and daily:
        _add_daily_pricing(result, daily, periods, date_range, skip_efp)
    else:
        _add_undistributed_pricing(result, leg, pricing_month, periods, date_range, skip_efp)

    if skip_efp:
        _add_efp_pricing(result, leg, pricing_month, periods, date_range)


def calculate_physical_exposure(
    legs: Iterable[PhysicalTradeLeg],
    periods: Sequence[str],
    date_range: Optional[DateRange] = None,
    fallback_month: str = DEFAULT_FALLBACK_MONTH
) -> PhysicalExposureResult:
    """
    Walk physical legs into month x product physical and pricing buckets.

    Only months listed in periods are populated.
    """
    result = PhysicalExposureResult(
        physical={month: {} for month in periods},
        pricing={month: {} for month in periods},
    )
    count = 0
    for leg in legs:
        process_physical_leg(result, leg, periods, date_range, fallback_month)
        count += 1
    logger.debug("Physical exposure walked | legs=%s | periods=%s", count, len(periods))
    return result


__all__ = [
    "DEFAULT_FALLBACK_MONTH",
    "MonthProductMap",
    "PhysicalExposureResult",
    "add_to_bucket",
    "physical_exposure_month",
    "pricing_exposure_month",
    "is_unagreed_efp",
    "process_physical_leg",
    "calculate_physical_exposure",
]
