"""
============================================================================
Project Exposure Desk v1.0.0
MTM Valuator - Mark-to-Market Values for Physical and Paper Legs
============================================================================

Reliability Level: L5 Core
Input Constraints: Prices as floats, quantity >= 0
Side Effects: None (paper MTM prices read from the injected PriceSource)

SIGN CONVENTION
---------------
    buy:  (market - contract) * quantity
    sell: (contract - market) * quantity

Paper legs price against historical monthly averages for past periods
and against the forward curve for current and future periods. DIFF legs
always price against Platts LSGO; SPREAD legs against their right side.

ERROR CODES:
    - MTM-001: MTM price unavailable

============================================================================
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from app.logic.exposure_calculator import is_buy
from app.logic.month_codes import MonthCodeError, get_month_dates, to_date
from app.logic.product_mapping import (
    DIFF_COUNTER_PRODUCT,
    RELATIONSHIP_DIFF,
    RELATIONSHIP_FP,
    RELATIONSHIP_SPREAD,
    map_product_to_canonical,
)
from app.logic.trade_legs import PaperTradeLeg
from market_prices.price_source import PriceSource

# Configure module logger
logger = logging.getLogger(__name__)


class MTMErrorCode:
    PRICE_UNAVAILABLE = "MTM-001"


class PeriodType(str, Enum):
    PAST = "past"
    CURRENT = "current"
    FUTURE = "future"


# =============================================================================
# Core Valuation
# =============================================================================

def calculate_mtm_value(
    contract_price: float,
    market_price: float,
    quantity: float,
    buy_sell: str
) -> float:
    """
    Mark-to-market value of a position.

    >>> calculate_mtm_value(100, 110, 50, "buy")
    500
    >>> calculate_mtm_value(100, 110, 50, "sell")
    -500
    """
    if is_buy(buy_sell):
        return (market_price - contract_price) * quantity
    return (contract_price - market_price) * quantity


def get_period_type(start: Any, end: Any, today: Optional[Any] = None) -> PeriodType:
    """past when the period ended before today, current when it contains today."""
    today_d = to_date(today) if today is not None else date.today()
    if to_date(end) < today_d:
        return PeriodType.PAST
    if to_date(start) <= today_d:
        return PeriodType.CURRENT
    return PeriodType.FUTURE


# =============================================================================
# Paper Legs
# =============================================================================

def calculate_paper_trade_price(leg: PaperTradeLeg) -> float:
    """FP legs trade at price; DIFF and SPREAD at price less the right side."""
    if leg.relationship_type == RELATIONSHIP_FP:
        return leg.price or 0.0
    right_price = leg.right_side.price if leg.right_side else 0.0
    return (leg.price or 0.0) - (right_price or 0.0)


def _right_product(leg: PaperTradeLeg) -> Optional[str]:
    if leg.relationship_type == RELATIONSHIP_DIFF:
        return DIFF_COUNTER_PRODUCT
    if leg.relationship_type == RELATIONSHIP_SPREAD and leg.right_side:
        return map_product_to_canonical(leg.right_side.product)
    return None


def calculate_paper_mtm_price(
    leg: PaperTradeLeg,
    price_source: PriceSource,
    today: Optional[Any] = None
) -> Optional[float]:
    """
    Market price of a paper leg for its period.

    Returns:
        Price (left less right for DIFF/SPREAD), or None when the period
        is missing or any required price is unavailable
    """
    if not leg.period:
        logger.warning(
            f"[{MTMErrorCode.PRICE_UNAVAILABLE}] Paper leg has no period | "
            f"leg={leg.leg_reference}"
        )
        return None
    try:
        start, end = get_month_dates(leg.period)
    except MonthCodeError:
        logger.warning(
            f"[{MTMErrorCode.PRICE_UNAVAILABLE}] Invalid period | "
            f"leg={leg.leg_reference} period={leg.period}"
        )
        return None

    period_type = get_period_type(start, end, today)
    if period_type == PeriodType.PAST:
        fetch = price_source.get_monthly_average
    else:
        fetch = price_source.get_forward_price

    left_product = map_product_to_canonical(leg.product)
    left_price = fetch(left_product, leg.period)
    if left_price is None:
        logger.warning(
            f"[{MTMErrorCode.PRICE_UNAVAILABLE}] No {period_type.value} price | "
            f"product={left_product} period={leg.period}"
        )
        return None

    right_product = _right_product(leg)
    if right_product is None:
        return left_price

    right_price = fetch(right_product, leg.period)
    if right_price is None:
        logger.warning(
            f"[{MTMErrorCode.PRICE_UNAVAILABLE}] No {period_type.value} price | "
            f"product={right_product} period={leg.period}"
        )
        return None
    return left_price - right_price


# =============================================================================
# Report Rows
# =============================================================================

@dataclass
class MTMCalculation:
    trade_id: str
    trade_leg_id: str
    trade_reference: str
    counterparty: str
    product: str
    quantity: float
    contract_price: float
    market_price: float
    mtm_value: float
    calculation_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tradeId": self.trade_id,
            "tradeLegId": self.trade_leg_id,
            "tradeReference": self.trade_reference,
            "counterparty": self.counterparty,
            "product": self.product,
            "quantity": self.quantity,
            "contractPrice": self.contract_price,
            "marketPrice": self.market_price,
            "mtmValue": self.mtm_value,
            "calculationDate": self.calculation_date,
        }


@dataclass
class PaperMTMPosition:
    leg_id: str
    trade_reference: str
    leg_reference: str
    buy_sell: str
    product: str
    quantity: float
    period: Optional[str]
    relationship_type: str
    calculated_price: float
    mtm_calculated_price: Optional[float]
    mtm_value: float
    period_type: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "legId": self.leg_id,
            "tradeRef": self.trade_reference,
            "legReference": self.leg_reference,
            "buySell": self.buy_sell,
            "product": self.product,
            "quantity": self.quantity,
            "period": self.period,
            "relationshipType": self.relationship_type,
            "calculatedPrice": self.calculated_price,
            "mtmCalculatedPrice": self.mtm_calculated_price,
            "mtmValue": self.mtm_value,
            "periodType": self.period_type,
        }


def value_paper_leg(
    leg: PaperTradeLeg,
    price_source: PriceSource,
    today: Optional[Any] = None
) -> PaperMTMPosition:
    """Trade price, market price and MTM value of one paper leg (0 MTM when unpriced)."""
    trade_price = calculate_paper_trade_price(leg)
    mtm_price = calculate_paper_mtm_price(leg, price_source, today)
    mtm_value = 0.0
    if mtm_price is not None:
        mtm_value = calculate_mtm_value(trade_price, mtm_price, leg.quantity, leg.buy_sell)

    period_type = None
    if leg.period:
        try:
            start, end = get_month_dates(leg.period)
            period_type = get_period_type(start, end, today).value
        except MonthCodeError:
            period_type = None

    return PaperMTMPosition(
        leg_id=leg.id,
        trade_reference=leg.trade_reference,
        leg_reference=leg.leg_reference,
        buy_sell=leg.buy_sell,
        product=leg.product,
        quantity=leg.quantity,
        period=leg.period,
        relationship_type=leg.relationship_type,
        calculated_price=trade_price,
        mtm_calculated_price=mtm_price,
        mtm_value=mtm_value,
        period_type=period_type,
    )


__all__ = [
    "MTMErrorCode",
    "PeriodType",
    "calculate_mtm_value",
    "get_period_type",
    "calculate_paper_trade_price",
    "calculate_paper_mtm_price",
    "MTMCalculation",
    "PaperMTMPosition",
    "value_paper_leg",
]
