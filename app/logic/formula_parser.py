"""
============================================================================
Project Exposure Desk v1.0.0
Formula Parser - Normalisation of Stored Pricing Formulas
============================================================================

Reliability Level: L5 Core
Input Constraints: None, JSON string, dict, or PricingFormula
Side Effects: Logs and counts unparseable input

Stored formulas arrive as JSON text (legacy rows), as decoded JSON
objects, or not at all. Every shape normalises to a PricingFormula and
the parser never raises. Parsing is idempotent:

    parse(parse(x).to_dict()) == parse(x)

Optional monthlyDistribution / dailyDistribution maps are carried
through untouched so the exposure aggregator can read them.

ERROR CODES:
    - FRM-002: Formula text could not be decoded

============================================================================
"""

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from app.logic.formula_tokens import FormulaErrorCode, FormulaToken
from app.observability.metrics import record_formula_parse_failure

# Configure module logger
logger = logging.getLogger(__name__)


ExposureMap = Dict[str, float]
DistributionMap = Dict[str, Dict[str, float]]


def _empty_exposures() -> Dict[str, ExposureMap]:
    return {"physical": {}, "pricing": {}}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class PricingFormula:
    """
    Ordered token list plus derived exposure cache.

    Attributes:
        tokens: Tokens in evaluation order
        exposures: {"physical": {...}, "pricing": {...}}
        monthly_distribution: instrument -> month code -> value
        daily_distribution: instrument -> YYYY-MM-DD -> value
    """
    tokens: List[FormulaToken] = field(default_factory=list)
    exposures: Dict[str, ExposureMap] = field(default_factory=_empty_exposures)
    monthly_distribution: Optional[DistributionMap] = None
    daily_distribution: Optional[DistributionMap] = None

    @property
    def physical(self) -> ExposureMap:
        return self.exposures.get("physical") or {}

    @property
    def pricing(self) -> ExposureMap:
        return self.exposures.get("pricing") or {}

    def with_exposures(self, physical: ExposureMap, pricing: ExposureMap) -> "PricingFormula":
        return replace(
            self,
            exposures={"physical": dict(physical), "pricing": dict(pricing)},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Stored representation (camelCase keys, distributions only when set)."""
        data: Dict[str, Any] = {
            "tokens": [t.to_dict() for t in self.tokens],
            "exposures": {
                "physical": dict(self.physical),
                "pricing": dict(self.pricing),
            },
        }
        if self.monthly_distribution is not None:
            data["monthlyDistribution"] = {
                k: dict(v) for k, v in self.monthly_distribution.items()
            }
        if self.daily_distribution is not None:
            data["dailyDistribution"] = {
                k: dict(v) for k, v in self.daily_distribution.items()
            }
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def create_empty_formula() -> PricingFormula:
    return PricingFormula()


# =============================================================================
# Parsing
# =============================================================================

def _parse_exposure_map(value: Any) -> ExposureMap:
    if not isinstance(value, dict):
        return {}
    result: ExposureMap = {}
    for key, amount in value.items():
        try:
            result[str(key)] = float(amount)
        except (TypeError, ValueError):
            logger.warning(
                f"[{FormulaErrorCode.PARSE_FAILURE}] Dropping non-numeric exposure | "
                f"instrument={key} value={amount!r}"
            )
    return result


def _parse_distribution(value: Any) -> Optional[DistributionMap]:
    if not isinstance(value, dict):
        return None
    return {
        str(instrument): _parse_exposure_map(buckets)
        for instrument, buckets in value.items()
        if isinstance(buckets, dict)
    }


def _parse_tokens(raw_tokens: List[Any]) -> List[FormulaToken]:
    tokens: List[FormulaToken] = []
    for raw in raw_tokens:
        if isinstance(raw, FormulaToken):
            tokens.append(raw)
            continue
        try:
            tokens.append(FormulaToken.from_dict(raw))
        except ValueError as e:
            logger.warning(
                f"[{FormulaErrorCode.PARSE_FAILURE}] Skipping malformed token | "
                f"error={e}"
            )
    return tokens


def validate_and_parse_pricing_formula(value: Any) -> PricingFormula:
    """
    Normalise any stored formula value into a PricingFormula.

    Reliability Level: L5 Core
    Input Constraints: None
    Side Effects: Logs FRM-002 and increments a counter on decode failure

    Returns:
        PricingFormula (empty when the input has no usable tokens)
    """
    if value is None:
        return create_empty_formula()

    if isinstance(value, PricingFormula):
        value = value.to_dict()

    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except (ValueError, TypeError) as e:
            logger.error(
                f"[{FormulaErrorCode.PARSE_FAILURE}] Failed to parse formula | error={e}"
            )
            record_formula_parse_failure("invalid_json")
            return create_empty_formula()

    if not isinstance(value, dict):
        return create_empty_formula()

    raw_tokens = value.get("tokens")
    if not isinstance(raw_tokens, list):
        return create_empty_formula()

    raw_exposures = value.get("exposures")
    if isinstance(raw_exposures, dict):
        exposures = {
            "physical": _parse_exposure_map(raw_exposures.get("physical")),
            "pricing": _parse_exposure_map(raw_exposures.get("pricing")),
        }
    else:
        exposures = _empty_exposures()

    return PricingFormula(
        tokens=_parse_tokens(raw_tokens),
        exposures=exposures,
        monthly_distribution=_parse_distribution(
            value.get("monthlyDistribution", value.get("monthly_distribution"))
        ),
        daily_distribution=_parse_distribution(
            value.get("dailyDistribution", value.get("daily_distribution"))
        ),
    )


__all__ = [
    "PricingFormula",
    "ExposureMap",
    "DistributionMap",
    "create_empty_formula",
    "validate_and_parse_pricing_formula",
]
