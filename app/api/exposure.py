"""
============================================================================
Project Exposure Desk v1.0.0
Exposure and MTM API Endpoints
============================================================================

Reliability Level: L4 Supporting
Input Constraints: JSON bodies validated by app.schemas
Side Effects:
    - Database reads when leg lists are omitted
    - Prometheus metrics updates

ENDPOINTS:
    POST /api/exposure/report             - Month x product exposure table
    POST /api/exposure/mtm/physical       - MTM rows for physical legs
    POST /api/exposure/mtm/paper          - MTM positions for paper legs
    POST /api/exposure/formula/parse      - Normalise stored formula JSON
    POST /api/exposure/formula/evaluate   - Price a formula
    POST /api/exposure/formula/exposures  - Physical / pricing exposure
    GET  /api/exposure/health             - Liveness and configuration

ERROR CODES:
    DB-001: Leg fetch failed (HTTP 503)
    CFG-001: Invalid configuration (HTTP 500)
    MTM-001: Price source unavailable (HTTP 503)

============================================================================
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from app.logic.exposure_calculator import calculate_exposures
from app.logic.formula_parser import validate_and_parse_pricing_formula
from app.logic.formula_tokens import formula_to_string, is_formula_complete
from app.logic.price_evaluator import analyze_formula_components, calculate_price_from_formula
from app.schemas.exposure import ExposureReportRequest, MTMRequest
from app.schemas.formula import (
    FormulaEvaluateRequest,
    FormulaExposureRequest,
    FormulaParseRequest,
)
from market_prices.price_source import (
    DEFAULT_REFERENCE_PRICES,
    PriceSource,
    PriceSourceErrorCode,
    StaticPriceSource,
    create_price_source,
)
from services.exposure_config import (
    ExposureConfig,
    ExposureConfigurationError,
    get_exposure_config,
)
from services.exposure_service import build_exposure_report
from services.leg_repository import LegFetchError, LegRepository, create_leg_repository
from services.mtm_service import calculate_paper_mtm, calculate_physical_mtm, summarize_mtm

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# Router Configuration
# ============================================================================

router = APIRouter()


def _error(status_code: int, error_code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error_code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# ============================================================================
# Dependencies
# ============================================================================

def get_config() -> ExposureConfig:
    """
    Raises:
        HTTPException: 500 CFG-001 if the environment is misconfigured
    """
    try:
        return get_exposure_config()
    except ExposureConfigurationError as e:
        raise _error(500, e.error_code, e.message)


def get_price_source(config: ExposureConfig = Depends(get_config)) -> PriceSource:
    try:
        return create_price_source(config.price_source)
    except Exception as e:
        logger.error(f"[{PriceSourceErrorCode.QUERY_FAILED}] Price source unavailable | error={e}")
        raise _error(503, PriceSourceErrorCode.PRICE_UNAVAILABLE, f"Price source unavailable: {e}")


def get_leg_repository() -> LegRepository:
    return create_leg_repository()


def _price_source_for(
    overrides: Optional[Dict[str, float]],
    default: PriceSource
) -> PriceSource:
    if not overrides:
        return default
    return StaticPriceSource({**DEFAULT_REFERENCE_PRICES, **overrides})


# ============================================================================
# Report
# ============================================================================

@router.post("/report")
def exposure_report(
    request: ExposureReportRequest,
    config: ExposureConfig = Depends(get_config),
    repository: LegRepository = Depends(get_leg_repository),
) -> Dict[str, Any]:
    """
    Build the month x product exposure table.

    Raises:
        HTTPException: 503 DB-001 if legs cannot be read
    """
    if request.uses_database:
        try:
            physical = repository.fetch_physical_legs()
            paper = repository.fetch_paper_legs()
        except LegFetchError as e:
            raise _error(503, e.error_code, e.message)
    else:
        physical = request.physical_legs or []
        paper = request.paper_legs or []

    report = build_exposure_report(
        physical,
        paper,
        config,
        periods=request.periods,
        allowed_products=request.allowed_products,
        date_range=request.date_range(),
    )
    return report.to_dict()


# ============================================================================
# MTM
# ============================================================================

@router.post("/mtm/physical")
def physical_mtm(
    request: MTMRequest,
    price_source: PriceSource = Depends(get_price_source),
    repository: LegRepository = Depends(get_leg_repository),
) -> Dict[str, Any]:
    if request.legs is None:
        try:
            legs = repository.fetch_physical_legs()
        except LegFetchError as e:
            raise _error(503, e.error_code, e.message)
    else:
        legs = request.legs

    rows = calculate_physical_mtm(
        legs, _price_source_for(request.prices, price_source), request.as_of or date.today()
    )
    return {
        "calculations": [row.to_dict() for row in rows],
        "summary": summarize_mtm(rows, []),
    }


@router.post("/mtm/paper")
def paper_mtm(
    request: MTMRequest,
    price_source: PriceSource = Depends(get_price_source),
    repository: LegRepository = Depends(get_leg_repository),
) -> Dict[str, Any]:
    if request.legs is None:
        try:
            legs = repository.fetch_paper_legs()
        except LegFetchError as e:
            raise _error(503, e.error_code, e.message)
    else:
        legs = request.legs

    positions = calculate_paper_mtm(
        legs, _price_source_for(request.prices, price_source), request.as_of or date.today()
    )
    return {
        "positions": [p.to_dict() for p in positions],
        "summary": summarize_mtm([], positions),
    }


# ============================================================================
# Formula Tools
# ============================================================================

@router.post("/formula/parse")
def parse_formula(request: FormulaParseRequest) -> Dict[str, Any]:
    formula = validate_and_parse_pricing_formula(request.formula)
    return {
        "formula": formula.to_dict(),
        "display": formula_to_string(formula.tokens),
        "complete": is_formula_complete(formula.tokens),
    }


@router.post("/formula/evaluate")
def evaluate_formula(
    request: FormulaEvaluateRequest,
    price_source: PriceSource = Depends(get_price_source),
) -> Dict[str, Any]:
    if request.tokens is not None:
        tokens = [t.to_token() for t in request.tokens]
    else:
        tokens = validate_and_parse_pricing_formula(request.formula).tokens

    price = calculate_price_from_formula(tokens, _price_source_for(request.prices, price_source))
    return {
        "price": price,
        "display": formula_to_string(tokens),
        "components": analyze_formula_components(tokens).to_dict(),
    }


@router.post("/formula/exposures")
def formula_exposures(request: FormulaExposureRequest) -> Dict[str, Any]:
    tokens = [t.to_token() for t in request.tokens]
    return calculate_exposures(tokens, request.quantity, request.buy_sell).to_dict()


# ============================================================================
# Health
# ============================================================================

@router.get("/health")
def exposure_health(config: ExposureConfig = Depends(get_config)) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "config": config.to_dict(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


__all__ = [
    "router",
    "get_config",
    "get_price_source",
    "get_leg_repository",
]
