"""
============================================================================
Exposure Desk - MTM Service
============================================================================

Reliability Level: L4 Supporting
Input Constraints: Physical / paper legs, a PriceSource
Side Effects: Counts MTM rows (Prometheus); repository reads when fetching

PHYSICAL LEGS
-------------
    contract price: stored calculated_price, else the pricing formula
                    evaluated against the price source
    market price:   stored mtm_calculated_price, else the MTM formula
                    (pricing formula when no MTM tokens) evaluated
    Legs with neither a stored price nor formula tokens are skipped.

PAPER LEGS
----------
    trade price from the leg, market price from the historical average
    (past periods) or forward curve (current and future periods).

============================================================================
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from app.logic.mtm_valuator import (
    MTMCalculation,
    PaperMTMPosition,
    calculate_mtm_value,
    value_paper_leg,
)
from app.logic.price_evaluator import calculate_price_from_formula
from app.logic.trade_legs import PaperTradeLeg, PhysicalTradeLeg
from app.observability.metrics import record_mtm_calculations
from market_prices.price_source import PriceSource
from services.leg_repository import LegRepository

# Configure module logger
logger = logging.getLogger(__name__)


def _as_physical(leg: Any) -> PhysicalTradeLeg:
    return leg if isinstance(leg, PhysicalTradeLeg) else PhysicalTradeLeg.from_record(leg)


def _as_paper(leg: Any) -> PaperTradeLeg:
    return leg if isinstance(leg, PaperTradeLeg) else PaperTradeLeg.from_record(leg)


def calculate_physical_mtm(
    legs: Iterable[Any],
    price_source: PriceSource,
    calculation_date: Optional[date] = None
) -> List[MTMCalculation]:
    """One MTMCalculation per priceable physical leg."""
    as_of = (calculation_date or date.today()).isoformat()
    rows: List[MTMCalculation] = []
    for raw in legs:
        leg = _as_physical(raw)
        mtm_formula = leg.effective_mtm_formula
        if (
            not leg.pricing_formula.tokens
            and not mtm_formula.tokens
            and leg.calculated_price is None
        ):
            logger.debug("Skipping unpriced leg | leg=%s", leg.leg_reference)
            continue

        contract_price = leg.calculated_price
        if contract_price is None:
            contract_price = calculate_price_from_formula(leg.pricing_formula, price_source)

        market_price = leg.mtm_calculated_price
        if market_price is None:
            market_price = calculate_price_from_formula(mtm_formula, price_source)

        rows.append(MTMCalculation(
            trade_id=leg.parent_trade_id,
            trade_leg_id=leg.id,
            trade_reference=leg.trade_reference,
            counterparty=leg.counterparty,
            product=leg.product,
            quantity=leg.quantity,
            contract_price=contract_price,
            market_price=market_price,
            mtm_value=calculate_mtm_value(contract_price, market_price, leg.quantity, leg.buy_sell),
            calculation_date=as_of,
        ))

    record_mtm_calculations("physical", len(rows))
    return rows


def calculate_paper_mtm(
    legs: Iterable[Any],
    price_source: PriceSource,
    today: Optional[date] = None
) -> List[PaperMTMPosition]:
    positions = [value_paper_leg(_as_paper(leg), price_source, today) for leg in legs]
    record_mtm_calculations("paper", len(positions))
    return positions


def summarize_mtm(
    physical: Iterable[MTMCalculation],
    paper: Iterable[PaperMTMPosition]
) -> Dict[str, float]:
    physical_total = sum(row.mtm_value for row in physical)
    paper_total = sum(row.mtm_value for row in paper)
    return {
        "physicalMtm": physical_total,
        "paperMtm": paper_total,
        "totalMtm": physical_total + paper_total,
    }


class MTMService:
    """Fetches legs and values them against one price source."""

    def __init__(self, repository: LegRepository, price_source: PriceSource):
        self._repository = repository
        self._price_source = price_source

    def physical_positions(self, calculation_date: Optional[date] = None) -> List[MTMCalculation]:
        return calculate_physical_mtm(
            self._repository.fetch_physical_legs(), self._price_source, calculation_date
        )

    def paper_positions(self, today: Optional[date] = None) -> List[PaperMTMPosition]:
        return calculate_paper_mtm(self._repository.fetch_paper_legs(), self._price_source, today)


__all__ = [
    "calculate_physical_mtm",
    "calculate_paper_mtm",
    "summarize_mtm",
    "MTMService",
]
