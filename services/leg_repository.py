"""
============================================================================
Exposure Desk - Trade Leg Repository
============================================================================

Reliability Level: L4 Supporting
Input Constraints: SQLAlchemy Engine bound to the trading database
Side Effects: Database SELECT only

Reads physical legs (trade_legs joined to parent_trades) and paper legs
(paper_trade_legs joined to paper_trades) as plain records, then hands
them to PhysicalTradeLeg.from_record / PaperTradeLeg.from_record.
JSON columns arrive as dicts (PostgreSQL jsonb) or text (SQLite); both
are accepted.

ERROR CODES:
    - DB-001: Leg fetch failed

============================================================================
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from app.logic.trade_legs import PaperTradeLeg, PhysicalTradeLeg

# Configure module logger
logger = logging.getLogger(__name__)


class LegRepositoryErrorCode:
    FETCH_FAILED = "DB-001"


class LegFetchError(Exception):
    """Raised when legs cannot be read from the database."""

    def __init__(self, message: str):
        self.error_code = LegRepositoryErrorCode.FETCH_FAILED
        self.message = message
        super().__init__(f"[{self.error_code}] {message}")


PHYSICAL_LEGS_SQL = """
    SELECT
        tl.id,
        tl.leg_reference,
        tl.parent_trade_id,
        pt.trade_reference,
        pt.counterparty,
        tl.buy_sell,
        tl.product,
        tl.quantity,
        tl.tolerance,
        tl.loading_period_start,
        tl.loading_period_end,
        tl.pricing_period_start,
        tl.pricing_period_end,
        tl.trading_period,
        tl.pricing_type,
        tl.pricing_formula,
        tl.mtm_formula,
        tl.efp_premium,
        tl.efp_agreed_status,
        tl.efp_fixed_value,
        tl.efp_designated_month,
        tl.calculated_price,
        tl.mtm_calculated_price
    FROM trade_legs tl
    LEFT JOIN parent_trades pt ON pt.id = tl.parent_trade_id
    ORDER BY tl.trading_period, tl.leg_reference
"""

PAPER_LEGS_SQL = """
    SELECT
        ptl.id,
        ptl.leg_reference,
        ptl.paper_trade_id,
        pt.trade_reference,
        pt.counterparty,
        pt.broker,
        ptl.buy_sell,
        ptl.product,
        ptl.quantity,
        ptl.price,
        ptl.period,
        ptl.trading_period,
        ptl.instrument,
        ptl.relationship_type,
        ptl.right_side,
        ptl.formula,
        ptl.mtm_formula,
        ptl.exposures
    FROM paper_trade_legs ptl
    LEFT JOIN paper_trades pt ON pt.id = ptl.paper_trade_id
    ORDER BY ptl.period, ptl.leg_reference
"""

JSON_COLUMNS = ("right_side", "exposures")


def _decode_json_columns(row: Mapping[str, Any]) -> Dict[str, Any]:
    record = dict(row)
    for column in JSON_COLUMNS:
        value = record.get(column)
        if isinstance(value, (str, bytes)):
            try:
                record[column] = json.loads(value)
            except ValueError:
                logger.warning(
                    f"[{LegRepositoryErrorCode.FETCH_FAILED}] Undecodable JSON column | "
                    f"column={column} leg={record.get('leg_reference')}"
                )
                record[column] = None
    return record


class LegRepository:
    """
    Read-only access to physical and paper trade legs.

    Without an explicit engine the shared one is built on first fetch.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            from app.database.session import get_engine
            self._engine = get_engine()
        return self._engine

    def _fetch(self, sql: str, kind: str) -> List[Dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(text(sql)).mappings().all()
        except Exception as e:
            logger.error(
                f"[{LegRepositoryErrorCode.FETCH_FAILED}] Failed to fetch {kind} legs | error={e}"
            )
            raise LegFetchError(f"Failed to fetch {kind} legs: {e}")
        logger.debug("Fetched legs | kind=%s | count=%s", kind, len(rows))
        return [_decode_json_columns(row) for row in rows]

    def fetch_physical_records(self) -> List[Dict[str, Any]]:
        return self._fetch(PHYSICAL_LEGS_SQL, "physical")

    def fetch_paper_records(self) -> List[Dict[str, Any]]:
        return self._fetch(PAPER_LEGS_SQL, "paper")

    def fetch_physical_legs(self) -> List[PhysicalTradeLeg]:
        return [PhysicalTradeLeg.from_record(r) for r in self.fetch_physical_records()]

    def fetch_paper_legs(self) -> List[PaperTradeLeg]:
        return [PaperTradeLeg.from_record(r) for r in self.fetch_paper_records()]


def create_leg_repository(engine: Optional[Engine] = None) -> LegRepository:
    """Repository on the shared engine unless one is supplied."""
    return LegRepository(engine)


__all__ = [
    "LegRepositoryErrorCode",
    "LegFetchError",
    "LegRepository",
    "create_leg_repository",
]
