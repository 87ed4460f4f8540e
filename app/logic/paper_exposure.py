"""
============================================================================
Project Exposure Desk v1.0.0
Paper Exposure - Per-Leg Paper and Pricing-from-Paper Buckets
============================================================================

Reliability Level: L5 Core
Input Constraints: PaperTradeLeg list, reporting periods
Side Effects: None (pure functions)

SOURCE ORDER (first match wins)
-------------------------------
    1. instrument shorthand ("UCOME DIFF", "RME-FAME0 SPREAD", "FAME0 FP")
    2. explicit exposures.physical / exposures.pricing
    3. MTM formula exposures scaled by the buy/sell sign
    4. quantity signed by buy/sell against the leg product

With a date range active, exposures.paperdailyDistribution overrides
all four with the days inside the range, re-bucketed by each day's month.

============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from app.logic.exposure_calculator import direction_sign
from app.logic.month_codes import (
    DateRange,
    format_month_code,
    is_month_code,
    standardize_month_code,
    to_date_or_none,
)
from app.logic.physical_exposure import MonthProductMap, add_to_bucket
from app.logic.product_mapping import (
    RELATIONSHIP_DIFF,
    RELATIONSHIP_SPREAD,
    map_product_to_canonical,
    parse_paper_instrument,
)
from app.logic.trade_legs import PaperTradeLeg

# Configure module logger
logger = logging.getLogger(__name__)

# Both spellings occur in stored rows
PAPER_DAILY_KEYS = ("paperdailyDistribution", "paperDailyDistribution")
PRICING_DAILY_KEY = "pricingDailyDistribution"


@dataclass
class PaperExposureResult:
    paper: MonthProductMap = field(default_factory=dict)
    pricing_from_paper: MonthProductMap = field(default_factory=dict)


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _daily_maps(leg: PaperTradeLeg) -> Optional[Dict[str, Mapping[str, Any]]]:
    exposures = leg.exposures or {}
    paper_daily = None
    for key in PAPER_DAILY_KEYS:
        if isinstance(exposures.get(key), Mapping) and exposures[key]:
            paper_daily = exposures[key]
            break
    if paper_daily is None:
        return None
    pricing_daily = exposures.get(PRICING_DAILY_KEY)
    if not isinstance(pricing_daily, Mapping) or not pricing_daily:
        pricing_daily = paper_daily
    return {"paper": paper_daily, "pricing": pricing_daily}


def _add_daily(
    target: MonthProductMap,
    distribution: Mapping[str, Any],
    periods: Sequence[str],
    date_range: DateRange
) -> None:
    for product, days in distribution.items():
        if not isinstance(days, Mapping):
            continue
        canonical = map_product_to_canonical(product)
        for day, value in days.items():
            d = to_date_or_none(day)
            if d is None or not date_range.contains(d):
                continue
            month = format_month_code(d)
            if month in periods:
                add_to_bucket(target, month, canonical, _number(value))


# =============================================================================
# Source Cases
# =============================================================================

def _from_instrument(result: PaperExposureResult, leg: PaperTradeLeg, month: str) -> None:
    parsed = parse_paper_instrument(leg.instrument)
    if not parsed.base_product:
        return

    quantity = leg.quantity * direction_sign(leg.buy_sell)
    add_to_bucket(result.paper, month, parsed.base_product, quantity)
    add_to_bucket(result.pricing_from_paper, month, parsed.base_product, quantity)

    if parsed.relationship_type in (RELATIONSHIP_DIFF, RELATIONSHIP_SPREAD) and parsed.opposite_product:
        add_to_bucket(result.paper, month, parsed.opposite_product, -quantity)
        add_to_bucket(result.pricing_from_paper, month, parsed.opposite_product, -quantity)


def _from_exposure_maps(
    result: PaperExposureResult,
    physical: Mapping[str, Any],
    pricing: Mapping[str, Any],
    month: str,
    scale: float = 1.0
) -> None:
    for product, value in physical.items():
        canonical = map_product_to_canonical(product)
        amount = _number(value) * scale
        add_to_bucket(result.paper, month, canonical, amount)
        if product not in pricing:
            add_to_bucket(result.pricing_from_paper, month, canonical, amount)

    for instrument, value in pricing.items():
        add_to_bucket(
            result.pricing_from_paper, month,
            map_product_to_canonical(instrument), _number(value) * scale
        )


def _explicit_maps(leg: PaperTradeLeg) -> Optional[Dict[str, Mapping[str, Any]]]:
    exposures = leg.exposures or {}
    physical = exposures.get("physical")
    pricing = exposures.get("pricing")
    if not isinstance(physical, Mapping) and not isinstance(pricing, Mapping):
        return None
    return {
        "physical": physical if isinstance(physical, Mapping) else {},
        "pricing": pricing if isinstance(pricing, Mapping) else {},
    }


def _from_quantity(result: PaperExposureResult, leg: PaperTradeLeg, month: str) -> None:
    canonical = map_product_to_canonical(leg.product or "Unknown")
    quantity = leg.quantity * direction_sign(leg.buy_sell)
    add_to_bucket(result.paper, month, canonical, quantity)
    add_to_bucket(result.pricing_from_paper, month, canonical, quantity)


def process_paper_leg(
    result: PaperExposureResult,
    leg: PaperTradeLeg,
    periods: Sequence[str],
    date_range: Optional[DateRange] = None
) -> None:
    """Fold one paper leg into result."""
    if date_range is not None:
        daily = _daily_maps(leg)
        if daily is not None:
            _add_daily(result.paper, daily["paper"], periods, date_range)
            _add_daily(result.pricing_from_paper, daily["pricing"], periods, date_range)
            return

    month = leg.month
    if month and is_month_code(month):
        month = standardize_month_code(month)
    if not month or month not in periods:
        return
    if date_range is not None and not date_range.overlaps_month(month):
        return

    if leg.instrument:
        _from_instrument(result, leg, month)
        return

    explicit = _explicit_maps(leg)
    if explicit is not None:
        _from_exposure_maps(result, explicit["physical"], explicit["pricing"], month)
        return

    mtm = leg.mtm_formula
    if mtm is not None and (mtm.physical or mtm.pricing):
        _from_exposure_maps(
            result, mtm.physical, mtm.pricing, month,
            scale=direction_sign(leg.buy_sell)
        )
        return

    _from_quantity(result, leg, month)


def calculate_paper_exposure(
    legs: Iterable[PaperTradeLeg],
    periods: Sequence[str],
    date_range: Optional[DateRange] = None
) -> PaperExposureResult:
    """Walk paper legs into month x product paper and pricing-from-paper buckets."""
    result = PaperExposureResult(
        paper={month: {} for month in periods},
        pricing_from_paper={month: {} for month in periods},
    )
    count = 0
    for leg in legs:
        process_paper_leg(result, leg, periods, date_range)
        count += 1
    logger.debug("Paper exposure walked | legs=%s | periods=%s", count, len(periods))
    return result


__all__ = [
    "PAPER_DAILY_KEYS",
    "PRICING_DAILY_KEY",
    "PaperExposureResult",
    "process_paper_leg",
    "calculate_paper_exposure",
]
