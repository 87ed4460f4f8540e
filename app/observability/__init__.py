"""
============================================================================
Project Exposure Desk v1.0.0
Observability Module - Prometheus Metrics
============================================================================

Reliability Level: L4 Supporting
Input Constraints: None
Side Effects: Exposes Prometheus metrics

============================================================================
"""

from app.observability.metrics import (
    FORMULA_PARSE_FAILURES,
    PRICE_EVALUATION_FAILURES,
    EXPOSURE_REPORTS,
    EXPOSURE_LEGS_PROCESSED,
    MTM_CALCULATIONS,
    EXPOSURE_REPORT_DURATION,
    record_formula_parse_failure,
    record_price_evaluation_failure,
    record_exposure_report,
    record_mtm_calculations,
)

__all__ = [
    "FORMULA_PARSE_FAILURES",
    "PRICE_EVALUATION_FAILURES",
    "EXPOSURE_REPORTS",
    "EXPOSURE_LEGS_PROCESSED",
    "MTM_CALCULATIONS",
    "EXPOSURE_REPORT_DURATION",
    "record_formula_parse_failure",
    "record_price_evaluation_failure",
    "record_exposure_report",
    "record_mtm_calculations",
]
