"""
============================================================================
Project Exposure Desk v1.0.0
Trade Legs - Physical and Paper Leg Records
============================================================================

Reliability Level: L5 Core
Input Constraints: Mapping records (snake_case DB rows or camelCase JSON)
Side Effects: None

Legs are external records; this module only reads the fields the
calculation core needs. Quantity is stored unsigned and direction is
applied from buy_sell at calculation time. Formulas are normalised
through the formula parser on construction.

ERROR CODES:
    - EXP-001: Leg record is not a mapping

============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from app.logic.formula_parser import PricingFormula, validate_and_parse_pricing_formula

# Configure module logger
logger = logging.getLogger(__name__)


class TradeLegErrorCode:
    INVALID_RECORD = "EXP-001"


class TradeLegError(ValueError):
    """Raised when a leg record cannot be read at all."""

    def __init__(self, message: str):
        self.error_code = TradeLegErrorCode.INVALID_RECORD
        self.message = message
        super().__init__(f"[{self.error_code}] {message}")


# =============================================================================
# Field Access
# =============================================================================

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _get(record: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Read name as snake_case, falling back to its camelCase spelling."""
    if name in record and record[name] is not None:
        return record[name]
    camel = _camel(name)
    if camel in record and record[camel] is not None:
        return record[camel]
    return default


def _float(record: Mapping[str, Any], name: str, default: float = 0.0) -> float:
    value = _get(record, name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(
            f"[{TradeLegErrorCode.INVALID_RECORD}] Non-numeric field defaulted | "
            f"field={name} value={value!r}"
        )
        return default


def _optional_float(record: Mapping[str, Any], name: str) -> Optional[float]:
    if _get(record, name) is None:
        return None
    return _float(record, name)


FALSE_STRINGS = frozenset({"", "false", "f", "0", "no", "n", "off"})


def _bool(record: Mapping[str, Any], name: str, default: bool = False) -> bool:
    # Text columns (SQLite, CSV) carry "false" / "0" rather than a bool
    value = _get(record, name)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in FALSE_STRINGS
    return bool(value)


def _str(record: Mapping[str, Any], name: str, default: str = "") -> str:
    value = _get(record, name)
    return default if value is None else str(value)


def _optional_str(record: Mapping[str, Any], name: str) -> Optional[str]:
    value = _get(record, name)
    if value is None or value == "":
        return None
    return str(value)


def _require_mapping(record: Any) -> Mapping[str, Any]:
    if not isinstance(record, Mapping):
        raise TradeLegError(f"Leg record must be a mapping, got {type(record).__name__}")
    return record


# =============================================================================
# Physical Legs
# =============================================================================

@dataclass
class PhysicalTradeLeg:
    id: str = ""
    leg_reference: str = ""
    parent_trade_id: str = ""
    trade_reference: str = ""
    counterparty: str = ""
    buy_sell: str = "buy"
    product: str = ""
    quantity: float = 0.0
    tolerance: float = 0.0
    loading_period_start: Optional[str] = None
    loading_period_end: Optional[str] = None
    pricing_period_start: Optional[str] = None
    pricing_period_end: Optional[str] = None
    trading_period: Optional[str] = None
    pricing_type: str = "standard"
    pricing_formula: PricingFormula = field(default_factory=PricingFormula)
    mtm_formula: Optional[PricingFormula] = None
    efp_premium: Optional[float] = None
    efp_agreed_status: bool = False
    efp_fixed_value: Optional[float] = None
    efp_designated_month: Optional[str] = None
    calculated_price: Optional[float] = None
    mtm_calculated_price: Optional[float] = None

    @property
    def is_efp(self) -> bool:
        return self.pricing_type.lower() == "efp"

    @property
    def effective_mtm_formula(self) -> PricingFormula:
        """MTM formula when it has tokens, else the pricing formula."""
        if self.mtm_formula is not None and self.mtm_formula.tokens:
            return self.mtm_formula
        return self.pricing_formula

    @classmethod
    def from_record(cls, record: Any) -> "PhysicalTradeLeg":
        """
        Build a leg from a DB row or API payload.

        Raises:
            TradeLegError: If record is not a mapping
        """
        record = _require_mapping(record)
        mtm_raw = _get(record, "mtm_formula")
        return cls(
            id=_str(record, "id"),
            leg_reference=_str(record, "leg_reference"),
            parent_trade_id=_str(record, "parent_trade_id"),
            trade_reference=_str(record, "trade_reference"),
            counterparty=_str(record, "counterparty"),
            buy_sell=_str(record, "buy_sell", "buy").lower(),
            product=_str(record, "product"),
            quantity=abs(_float(record, "quantity")),
            tolerance=_float(record, "tolerance"),
            loading_period_start=_optional_str(record, "loading_period_start"),
            loading_period_end=_optional_str(record, "loading_period_end"),
            pricing_period_start=_optional_str(record, "pricing_period_start"),
            pricing_period_end=_optional_str(record, "pricing_period_end"),
            trading_period=_optional_str(record, "trading_period"),
            pricing_type=_str(record, "pricing_type", "standard"),
            pricing_formula=validate_and_parse_pricing_formula(_get(record, "pricing_formula")),
            mtm_formula=None if mtm_raw is None else validate_and_parse_pricing_formula(mtm_raw),
            efp_premium=_optional_float(record, "efp_premium"),
            efp_agreed_status=_bool(record, "efp_agreed_status"),
            efp_fixed_value=_optional_float(record, "efp_fixed_value"),
            efp_designated_month=_optional_str(record, "efp_designated_month"),
            calculated_price=_optional_float(record, "calculated_price"),
            mtm_calculated_price=_optional_float(record, "mtm_calculated_price"),
        )


# =============================================================================
# Paper Legs
# =============================================================================

@dataclass
class RightSide:
    product: str = ""
    price: float = 0.0


@dataclass
class PaperTradeLeg:
    id: str = ""
    leg_reference: str = ""
    paper_trade_id: str = ""
    trade_reference: str = ""
    counterparty: str = ""
    broker: str = ""
    buy_sell: str = "buy"
    product: str = ""
    quantity: float = 0.0
    price: float = 0.0
    period: Optional[str] = None
    trading_period: Optional[str] = None
    instrument: Optional[str] = None
    relationship_type: str = "FP"
    right_side: Optional[RightSide] = None
    formula: Optional[PricingFormula] = None
    mtm_formula: Optional[PricingFormula] = None
    exposures: Optional[Dict[str, Any]] = None

    @property
    def month(self) -> Optional[str]:
        return self.period or self.trading_period

    @classmethod
    def from_record(cls, record: Any) -> "PaperTradeLeg":
        """
        Build a leg from a DB row or API payload.

        Raises:
            TradeLegError: If record is not a mapping
        """
        record = _require_mapping(record)

        right_side = None
        raw_right = _get(record, "right_side")
        if isinstance(raw_right, Mapping):
            try:
                right_price = float(raw_right.get("price") or 0.0)
            except (TypeError, ValueError):
                right_price = 0.0
            right_side = RightSide(product=str(raw_right.get("product") or ""), price=right_price)

        formula_raw = _get(record, "formula")
        mtm_raw = _get(record, "mtm_formula")
        exposures = _get(record, "exposures")

        return cls(
            id=_str(record, "id"),
            leg_reference=_str(record, "leg_reference"),
            paper_trade_id=_str(record, "paper_trade_id"),
            trade_reference=_str(record, "trade_reference"),
            counterparty=_str(record, "counterparty"),
            broker=_str(record, "broker"),
            buy_sell=_str(record, "buy_sell", "buy").lower(),
            product=_str(record, "product"),
            quantity=abs(_float(record, "quantity")),
            price=_float(record, "price"),
            period=_optional_str(record, "period"),
            trading_period=_optional_str(record, "trading_period"),
            instrument=_optional_str(record, "instrument"),
            relationship_type=_str(record, "relationship_type", "FP").upper(),
            right_side=right_side,
            formula=None if formula_raw is None else validate_and_parse_pricing_formula(formula_raw),
            mtm_formula=None if mtm_raw is None else validate_and_parse_pricing_formula(mtm_raw),
            exposures=dict(exposures) if isinstance(exposures, Mapping) else None,
        )


__all__ = [
    "TradeLegErrorCode",
    "TradeLegError",
    "PhysicalTradeLeg",
    "PaperTradeLeg",
    "RightSide",
]
