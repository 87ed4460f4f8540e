"""
============================================================================
Project Exposure Desk v1.0.0
Exposure Calculator - Per-Formula Physical and Pricing Exposure
============================================================================

Reliability Level: L5 Core
Input Constraints: quantity >= 0, buy_sell in {"buy", "sell"}
Side Effects: None (pure functions)

SIGN CONVENTION
---------------
    physical: +quantity for buy, -quantity for sell
    pricing:  the opposite sign of physical

Every instrument token contributes; repeated instruments accumulate.
Non-instrument tokens never contribute. An empty formula or a zero
quantity yields empty maps.

============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Sequence

from app.logic.formula_parser import ExposureMap, PricingFormula
from app.logic.formula_tokens import FormulaToken, is_instrument


# =============================================================================
# Helpers
# =============================================================================

def is_buy(buy_sell: str) -> bool:
    return str(buy_sell or "").strip().lower() == "buy"


def direction_sign(buy_sell: str) -> int:
    """+1 for buy, -1 for anything else."""
    return 1 if is_buy(buy_sell) else -1


@dataclass(frozen=True)
class ExposureResult:
    physical: ExposureMap = field(default_factory=dict)
    pricing: ExposureMap = field(default_factory=dict)

    def to_dict(self) -> Dict[str, ExposureMap]:
        return {"physical": dict(self.physical), "pricing": dict(self.pricing)}


def _accumulate(tokens: Sequence[FormulaToken], amount: float) -> ExposureMap:
    exposure: ExposureMap = {}
    for token in tokens:
        if is_instrument(token):
            exposure[token.value] = exposure.get(token.value, 0.0) + amount
    return exposure


# =============================================================================
# Public API
# =============================================================================

def calculate_physical_exposure(
    tokens: Sequence[FormulaToken],
    quantity: float,
    buy_sell: str
) -> ExposureMap:
    if not tokens or quantity == 0:
        return {}
    return _accumulate(tokens, direction_sign(buy_sell) * quantity)


def calculate_pricing_exposure(
    tokens: Sequence[FormulaToken],
    quantity: float,
    buy_sell: str
) -> ExposureMap:
    if not tokens or quantity == 0:
        return {}
    return _accumulate(tokens, -direction_sign(buy_sell) * quantity)


def calculate_exposures(
    tokens: Sequence[FormulaToken],
    quantity: float,
    buy_sell: str
) -> ExposureResult:
    """
    Derive physical and pricing exposure for one formula.

    Args:
        tokens: Formula tokens
        quantity: Non-negative leg quantity
        buy_sell: "buy" or "sell"

    Returns:
        ExposureResult with one entry per distinct instrument
    """
    return ExposureResult(
        physical=calculate_physical_exposure(tokens, quantity, buy_sell),
        pricing=calculate_pricing_exposure(tokens, quantity, buy_sell),
    )


def refresh_exposures(formula: PricingFormula, quantity: float, buy_sell: str) -> PricingFormula:
    """Recompute the cached exposures after a quantity, direction or token change."""
    result = calculate_exposures(formula.tokens, quantity, buy_sell)
    return formula.with_exposures(result.physical, result.pricing)


__all__ = [
    "ExposureResult",
    "is_buy",
    "direction_sign",
    "calculate_physical_exposure",
    "calculate_pricing_exposure",
    "calculate_exposures",
    "refresh_exposures",
]
