"""
============================================================================
Project Exposure Desk v1.0.0
EFP Formula Helpers - Exchange-for-Physical Pricing Exposure
============================================================================

Reliability Level: L5 Core
Input Constraints: Designated month in "MMM-YY" form
Side Effects: None (pure functions)

EFP legs do not use the formula builder. An unagreed EFP carries
pricing exposure on ICE GASOIL FUTURES (EFP) in its designated month,
opposite in sign to the physical direction, spread evenly across the
working days of that month. Agreed EFPs carry no futures exposure.

Paper legs get the same working-day daily distribution under
exposures.paperDailyDistribution / pricingDailyDistribution.

============================================================================
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional

from app.logic.exposure_calculator import direction_sign
from app.logic.formula_parser import PricingFormula
from app.logic.month_codes import (
    MonthCodeError,
    business_days_in_month,
    get_next_months,
)
from app.logic.product_mapping import EFP_INSTRUMENT, ICE_GASOIL_FUTURES, map_product_to_canonical

# Configure module logger
logger = logging.getLogger(__name__)


def calculate_efp_daily_distribution(exposure_value: float, designated_month: str) -> Dict[str, float]:
    """
    Spread exposure_value evenly over the working days of designated_month.

    Returns:
        YYYY-MM-DD -> daily exposure (empty for an unparseable month)
    """
    try:
        days = business_days_in_month(designated_month)
    except MonthCodeError:
        logger.error(f"[EXP-002] Failed to parse EFP designated month | month={designated_month}")
        return {}
    if not days:
        return {}
    per_day = exposure_value / len(days)
    return {d.isoformat(): per_day for d in days}


def efp_exposure_value(quantity: float, buy_sell: str) -> float:
    """Futures exposure runs opposite to the physical direction."""
    return quantity * -direction_sign(buy_sell)


def create_efp_formula(
    quantity: float,
    buy_sell: str,
    is_agreed: bool,
    designated_month: str
) -> PricingFormula:
    """Token-less formula carrying the EFP futures exposure."""
    formula = PricingFormula()
    if is_agreed:
        return formula

    value = efp_exposure_value(quantity, buy_sell)
    formula.exposures["pricing"][EFP_INSTRUMENT] = value
    formula.daily_distribution = {
        EFP_INSTRUMENT: calculate_efp_daily_distribution(value, designated_month),
    }
    logger.info(
        "EFP formula created | month=%s | exposure=%s",
        designated_month, value
    )
    return formula


def update_formula_with_efp_exposure(
    formula: Optional[PricingFormula],
    quantity: float,
    buy_sell: str,
    is_agreed: bool,
    designated_month: str
) -> PricingFormula:
    """
    Reset EFP entries on an existing formula and apply the current EFP state.

    Both futures keys are zeroed first. Unagreed EFPs then get a fresh
    exposure and daily distribution; agreed EFPs lose their distribution.
    """
    if formula is None:
        return create_efp_formula(quantity, buy_sell, is_agreed, designated_month)

    pricing = dict(formula.pricing)
    pricing[ICE_GASOIL_FUTURES] = 0.0
    pricing[EFP_INSTRUMENT] = 0.0
    daily = dict(formula.daily_distribution) if formula.daily_distribution is not None else None

    if not is_agreed:
        value = efp_exposure_value(quantity, buy_sell)
        pricing[EFP_INSTRUMENT] = value
        daily = daily or {}
        daily[EFP_INSTRUMENT] = calculate_efp_daily_distribution(value, designated_month)
    elif daily and EFP_INSTRUMENT in daily:
        del daily[EFP_INSTRUMENT]

    updated = formula.with_exposures(formula.physical, pricing)
    return replace(updated, daily_distribution=daily)


def get_available_efp_months(today: Optional[date] = None, count: int = 12) -> List[str]:
    """Designated-month choices starting with the current month."""
    return get_next_months(count, today)


def build_paper_daily_distribution(
    period: str,
    product: str,
    quantity: float,
    buy_sell: str
) -> Dict[str, Dict[str, Dict[str, float]]]:
    """
    Working-day distribution for a paper leg.

    Returns:
        {"paperDailyDistribution": {product: {day: qty}},
         "pricingDailyDistribution": {product: {day: qty}}}
    """
    canonical = map_product_to_canonical(product)
    try:
        days = business_days_in_month(period)
    except MonthCodeError:
        logger.error(f"[EXP-002] Invalid paper period | period={period}")
        days = []
    signed = quantity * direction_sign(buy_sell)
    per_day = signed / len(days) if days else 0.0
    daily = {d.isoformat(): per_day for d in days}
    return {
        "paperDailyDistribution": {canonical: dict(daily)},
        "pricingDailyDistribution": {canonical: dict(daily)},
    }


def ensure_paper_daily_distribution(leg_exposures: Optional[Dict[str, Any]], period: str,
                                    product: str, quantity: float, buy_sell: str) -> Dict[str, Any]:
    """Return leg exposures with daily distributions added when missing."""
    exposures = dict(leg_exposures or {})
    if exposures.get("paperDailyDistribution") or exposures.get("paperdailyDistribution"):
        return exposures
    exposures.update(build_paper_daily_distribution(period, product, quantity, buy_sell))
    return exposures


__all__ = [
    "calculate_efp_daily_distribution",
    "efp_exposure_value",
    "create_efp_formula",
    "update_formula_with_efp_exposure",
    "get_available_efp_months",
    "build_paper_daily_distribution",
    "ensure_paper_daily_distribution",
]
