"""
============================================================================
Price Source - Abstract Interface for Reference Prices
============================================================================

Reliability Level: L5 Core
Input Constraints: Canonical instrument names, "MMM-YY" periods
Side Effects: DatabasePriceSource reads pricing tables

PRICE SOURCE INTERFACE:
    Formula evaluation and MTM valuation depend only on this interface,
    so a static table, a database, or a test double can be swapped in
    without touching the calculation core.

    get_price(instrument)                   -> latest price (0.0 when unknown)
    get_monthly_average(instrument, period) -> historical average or None
    get_forward_price(instrument, period)   -> forward curve price or None

ERROR CODES:
    - MTM-001: Price unavailable for instrument/period
    - DB-001: Price query failed

============================================================================
"""

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Callable, Dict, Optional, Tuple, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine

from app.logic.month_codes import MonthCodeError, get_month_dates

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class PriceSourceErrorCode:
    """Price source error codes for audit logging."""
    PRICE_UNAVAILABLE = "MTM-001"
    QUERY_FAILED = "DB-001"


# Fallback reference prices used when no market data source is configured
DEFAULT_REFERENCE_PRICES: Dict[str, float] = {
    "FAME0": 652.5,
    "RME": 598.75,
    "UCOME": 720.0,
    "UCOME-5": 715.25,
    "RME DC": 602.0,
    "CME": 580.5,
    "GASOIL": 520.0,
    "BRENT": 75.8,
}


# =============================================================================
# Interface
# =============================================================================

class PriceSource(ABC):
    """Reference price provider used by the evaluator and MTM valuator."""

    name: str = "abstract"

    @abstractmethod
    def get_price(self, instrument: str) -> float:
        """Latest known price; 0.0 for unknown instruments."""

    @abstractmethod
    def get_monthly_average(self, instrument: str, period: str) -> Optional[float]:
        """Average historical price over the calendar month of period."""

    @abstractmethod
    def get_forward_price(self, instrument: str, period: str) -> Optional[float]:
        """Forward curve price for the month of period."""

    def __call__(self, instrument: str) -> float:
        return self.get_price(instrument)


PriceLookup = Union[PriceSource, Callable[[str], float]]


# =============================================================================
# Static Source
# =============================================================================

class StaticPriceSource(PriceSource):
    """
    In-memory prices.

    Monthly averages and forward prices are keyed by (instrument, period);
    when no period-specific value exists the spot price is used, or None
    when the instrument is unknown altogether.
    """

    name = "static"

    def __init__(
        self,
        prices: Optional[Dict[str, float]] = None,
        monthly_averages: Optional[Dict[Tuple[str, str], float]] = None,
        forward_prices: Optional[Dict[Tuple[str, str], float]] = None,
    ):
        self._prices = dict(DEFAULT_REFERENCE_PRICES if prices is None else prices)
        self._monthly = dict(monthly_averages or {})
        self._forward = dict(forward_prices or {})

    def get_price(self, instrument: str) -> float:
        return float(self._prices.get(instrument, 0.0))

    def _period_price(
        self,
        table: Dict[Tuple[str, str], float],
        instrument: str,
        period: str
    ) -> Optional[float]:
        if (instrument, period) in table:
            return float(table[(instrument, period)])
        if instrument in self._prices:
            return float(self._prices[instrument])
        logger.warning(
            f"[{PriceSourceErrorCode.PRICE_UNAVAILABLE}] No price | "
            f"instrument={instrument} period={period}"
        )
        return None

    def get_monthly_average(self, instrument: str, period: str) -> Optional[float]:
        return self._period_price(self._monthly, instrument, period)

    def get_forward_price(self, instrument: str, period: str) -> Optional[float]:
        return self._period_price(self._forward, instrument, period)


# =============================================================================
# Database Source
# =============================================================================

class DatabasePriceSource(PriceSource):
    """
    Prices from the pricing_instruments / historical_prices / forward_prices
    tables.

    Instruments are matched on instrument_code or display_name. A missing
    forward month falls back to the latest forward month on record.
    Query failures are logged and reported as a missing price.
    """

    name = "database"

    def __init__(self, engine: Engine):
        self._engine = engine
        self._instrument_ids: Dict[str, Optional[str]] = {}

    def _instrument_id(self, conn, instrument: str) -> Optional[str]:
        if instrument in self._instrument_ids:
            return self._instrument_ids[instrument]
        row = conn.execute(
            text("""
                SELECT id FROM pricing_instruments
                WHERE instrument_code = :name OR display_name = :name
                LIMIT 1
            """),
            {"name": instrument},
        ).first()
        instrument_id = str(row[0]) if row else None
        if instrument_id is None:
            logger.warning(
                f"[{PriceSourceErrorCode.PRICE_UNAVAILABLE}] Unknown instrument | "
                f"instrument={instrument}"
            )
        self._instrument_ids[instrument] = instrument_id
        return instrument_id

    def get_price(self, instrument: str) -> float:
        try:
            with self._engine.connect() as conn:
                instrument_id = self._instrument_id(conn, instrument)
                if instrument_id is None:
                    return 0.0
                row = conn.execute(
                    text("""
                        SELECT price FROM historical_prices
                        WHERE instrument_id = :iid
                        ORDER BY price_date DESC
                        LIMIT 1
                    """),
                    {"iid": instrument_id},
                ).first()
        except Exception as e:
            logger.error(
                f"[{PriceSourceErrorCode.QUERY_FAILED}] Latest price query failed | "
                f"instrument={instrument} error={e}"
            )
            return 0.0
        return float(row[0]) if row else 0.0

    def get_monthly_average(self, instrument: str, period: str) -> Optional[float]:
        try:
            start, end = get_month_dates(period)
        except MonthCodeError:
            return None
        try:
            with self._engine.connect() as conn:
                instrument_id = self._instrument_id(conn, instrument)
                if instrument_id is None:
                    return None
                row = conn.execute(
                    text("""
                        SELECT AVG(price), COUNT(*) FROM historical_prices
                        WHERE instrument_id = :iid
                          AND price_date >= :start AND price_date <= :end
                    """),
                    {"iid": instrument_id, "start": start.isoformat(), "end": end.isoformat()},
                ).first()
        except Exception as e:
            logger.error(
                f"[{PriceSourceErrorCode.QUERY_FAILED}] Monthly average query failed | "
                f"instrument={instrument} period={period} error={e}"
            )
            return None
        if not row or not row[1]:
            logger.warning(
                f"[{PriceSourceErrorCode.PRICE_UNAVAILABLE}] No historical prices | "
                f"instrument={instrument} period={period}"
            )
            return None
        return float(row[0])

    def get_forward_price(self, instrument: str, period: str) -> Optional[float]:
        try:
            start, _ = get_month_dates(period)
        except MonthCodeError:
            return None
        try:
            with self._engine.connect() as conn:
                instrument_id = self._instrument_id(conn, instrument)
                if instrument_id is None:
                    return None
                row = conn.execute(
                    text("""
                        SELECT price FROM forward_prices
                        WHERE instrument_id = :iid AND forward_month = :month
                        LIMIT 1
                    """),
                    {"iid": instrument_id, "month": start.isoformat()},
                ).first()
                if row is None:
                    row = conn.execute(
                        text("""
                            SELECT price FROM forward_prices
                            WHERE instrument_id = :iid
                            ORDER BY forward_month DESC
                            LIMIT 1
                        """),
                        {"iid": instrument_id},
                    ).first()
                    if row is not None:
                        logger.info(
                            "Using latest forward price | instrument=%s | period=%s",
                            instrument, period
                        )
        except Exception as e:
            logger.error(
                f"[{PriceSourceErrorCode.QUERY_FAILED}] Forward price query failed | "
                f"instrument={instrument} period={period} error={e}"
            )
            return None
        return float(row[0]) if row else None


def create_price_source(kind: str = "static", engine: Optional[Engine] = None) -> PriceSource:
    """
    Build a price source by name.

    Raises:
        ValueError: If kind is unknown or a database source has no engine
    """
    if kind == "static":
        return StaticPriceSource()
    if kind == "database":
        if engine is None:
            from app.database.session import get_engine
            engine = get_engine()
        return DatabasePriceSource(engine)
    raise ValueError(f"Unknown price source: {kind!r}")


__all__ = [
    "PriceSourceErrorCode",
    "DEFAULT_REFERENCE_PRICES",
    "PriceSource",
    "PriceLookup",
    "StaticPriceSource",
    "DatabasePriceSource",
    "create_price_source",
]
