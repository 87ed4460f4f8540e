"""
============================================================================
Project Exposure Desk v1.0.0
Price Evaluator - Formula Price Against Reference Prices
============================================================================

Reliability Level: L5 Core
Input Constraints: PricingFormula or token sequence
Side Effects: Logs PRC-001 and counts failures

EVALUATION MODEL
----------------
Strict left to right, no operator precedence:

    result = 0, pending operator = "+"
    instrument  -> price lookup (0 when unknown)
    fixedValue  -> numeric literal
    percentage  -> literal / 100
    operator    -> becomes the pending operator
    brackets    -> ignored

    [A=10, +, 2, *, 3] evaluates to (10 + 2) * 3 = 36

Division by zero leaves the running result unchanged. The exact binary
value of the result is rounded to 2 dp with ties going up, so 2.675
(stored as 2.67499...) gives 2.67. Any failure yields 0.

ERROR CODES:
    - PRC-001: Formula evaluation failed, 0 returned

============================================================================
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence, Union

from app.logic.formula_parser import PricingFormula
from app.logic.formula_tokens import FormulaToken, TokenType, is_instrument
from app.observability.metrics import record_price_evaluation_failure
from market_prices.price_source import PriceLookup, StaticPriceSource

# Configure module logger
logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

_DEFAULT_SOURCE = StaticPriceSource()


class PriceEvaluatorErrorCode:
    EVALUATION_FAILED = "PRC-001"


def _lookup(price_lookup: Optional[PriceLookup], instrument: str) -> float:
    if price_lookup is None:
        return _DEFAULT_SOURCE.get_price(instrument)
    return float(price_lookup(instrument) or 0.0)


def _apply(result: float, operator: str, value: float) -> float:
    if operator == "+":
        return result + value
    if operator == "-":
        return result - value
    if operator == "*":
        return result * value
    if operator == "/":
        if value != 0:
            return result / value
        return result
    return result


def calculate_price_from_formula(
    formula: Union[PricingFormula, Sequence[FormulaToken], None],
    price_lookup: Optional[PriceLookup] = None
) -> float:
    """
    Evaluate a formula to a price.

    Args:
        formula: PricingFormula or bare token list
        price_lookup: PriceSource or callable instrument -> price
            (static reference table when omitted)

    Returns:
        Price rounded to 2 dp; 0.0 for empty or unevaluable formulas
    """
    if formula is None:
        return 0.0
    tokens = formula.tokens if isinstance(formula, PricingFormula) else list(formula)
    if not tokens:
        return 0.0

    try:
        result = 0.0
        last_operator = "+"

        for token in tokens:
            if token.type == TokenType.INSTRUMENT:
                value = _lookup(price_lookup, token.value)
            elif token.type == TokenType.FIXED_VALUE:
                value = float(token.value)
            elif token.type == TokenType.PERCENTAGE:
                value = float(token.value) / 100
            elif token.type == TokenType.OPERATOR:
                last_operator = token.value
                continue
            else:
                continue

            result = _apply(result, last_operator, value)

        return float(Decimal(result).quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
    except Exception as e:
        logger.error(
            f"[{PriceEvaluatorErrorCode.EVALUATION_FAILED}] Error calculating price "
            f"from formula | error={e}"
        )
        record_price_evaluation_failure(type(e).__name__)
        return 0.0


@dataclass
class FormulaComponents:
    """Instruments and literal adjustments referenced by a formula."""
    instruments: List[str] = field(default_factory=list)
    fixed_components: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instruments": list(self.instruments),
            "fixedComponents": [dict(c) for c in self.fixed_components],
        }


def analyze_formula_components(
    formula: Union[PricingFormula, Sequence[FormulaToken]]
) -> FormulaComponents:
    """
    Split a formula into distinct instruments and literal components.

    Each literal carries the operator in force before it, e.g. "+ 5%".
    """
    tokens = formula.tokens if isinstance(formula, PricingFormula) else list(formula)
    components = FormulaComponents()
    last_operator = "+"
    for token in tokens:
        if is_instrument(token):
            if token.value not in components.instruments:
                components.instruments.append(token.value)
        elif token.type == TokenType.OPERATOR:
            last_operator = token.value
        elif token.type in (TokenType.FIXED_VALUE, TokenType.PERCENTAGE):
            suffix = "%" if token.type == TokenType.PERCENTAGE else ""
            components.fixed_components.append({
                "value": token.value,
                "operator": last_operator,
                "displayValue": f"{last_operator} {token.value}{suffix}",
            })
    return components


__all__ = [
    "PriceEvaluatorErrorCode",
    "FormulaComponents",
    "calculate_price_from_formula",
    "analyze_formula_components",
]
