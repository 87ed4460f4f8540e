"""
============================================================================
Project Exposure Desk v1.0.0
Prometheus Metrics - Calculation Observability
============================================================================

Reliability Level: L4 Supporting
Input Constraints: Label values must be short strings
Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- formula_parse_failures_total: Stored formulas that could not be parsed
- price_evaluation_failures_total: Formula evaluations that fell back to 0
- exposure_reports_total: Exposure aggregations by outcome
- exposure_legs_processed_total: Legs folded into exposure reports by kind
- mtm_calculations_total: MTM rows produced by leg kind
- exposure_report_duration_seconds: Aggregation latency

A failing metric update never interrupts a calculation.

============================================================================
"""

import logging
from typing import Optional

from prometheus_client import Counter, Histogram

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

FORMULA_PARSE_FAILURES = Counter(
    "formula_parse_failures_total",
    "Total number of stored pricing formulas that failed to parse",
)

PRICE_EVALUATION_FAILURES = Counter(
    "price_evaluation_failures_total",
    "Total number of formula price evaluations that returned the 0 fallback",
)

EXPOSURE_REPORTS = Counter(
    "exposure_reports_total",
    "Total number of exposure reports built",
    ["status"]
)

EXPOSURE_LEGS_PROCESSED = Counter(
    "exposure_legs_processed_total",
    "Total number of trade legs folded into exposure reports",
    ["kind"]
)

MTM_CALCULATIONS = Counter(
    "mtm_calculations_total",
    "Total number of MTM rows calculated",
    ["kind"]
)

EXPOSURE_REPORT_DURATION = Histogram(
    "exposure_report_duration_seconds",
    "Latency of exposure aggregation",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_formula_parse_failure(reason: Optional[str] = None) -> None:
    """Count a stored formula that could not be parsed."""
    try:
        FORMULA_PARSE_FAILURES.inc()
        logger.debug("Metric: formula_parse_failure | reason=%s", reason)
    except Exception as e:
        logger.error(
            "[OBS-001] Failed to record formula_parse_failure metric | error=%s",
            str(e)
        )


def record_price_evaluation_failure(reason: Optional[str] = None) -> None:
    try:
        PRICE_EVALUATION_FAILURES.inc()
        logger.debug("Metric: price_evaluation_failure | reason=%s", reason)
    except Exception as e:
        logger.error(
            "[OBS-002] Failed to record price_evaluation_failure metric | error=%s",
            str(e)
        )


def record_exposure_report(
    status: str,
    physical_legs: int = 0,
    paper_legs: int = 0,
    duration_seconds: Optional[float] = None
) -> None:
    """
    Record one exposure report build.

    Args:
        status: "success" or "failed"
        physical_legs: Number of physical legs processed
        paper_legs: Number of paper legs processed
        duration_seconds: Aggregation wall time, when measured
    """
    try:
        EXPOSURE_REPORTS.labels(status=status).inc()
        if physical_legs:
            EXPOSURE_LEGS_PROCESSED.labels(kind="physical").inc(physical_legs)
        if paper_legs:
            EXPOSURE_LEGS_PROCESSED.labels(kind="paper").inc(paper_legs)
        if duration_seconds is not None:
            EXPOSURE_REPORT_DURATION.observe(duration_seconds)
        logger.debug(
            "Metric: exposure_report | status=%s | physical=%s | paper=%s",
            status, physical_legs, paper_legs
        )
    except Exception as e:
        logger.error(
            "[OBS-003] Failed to record exposure_report metric | error=%s",
            str(e)
        )


def record_mtm_calculations(kind: str, count: int) -> None:
    """Count MTM rows produced for physical or paper legs."""
    try:
        if count:
            MTM_CALCULATIONS.labels(kind=kind).inc(count)
        logger.debug("Metric: mtm_calculations | kind=%s | count=%s", kind, count)
    except Exception as e:
        logger.error(
            "[OBS-004] Failed to record mtm_calculations metric | error=%s",
            str(e)
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


# ============================================================================
# RELIABILITY AUDIT
# ============================================================================
#
# [Reliability Audit]
# Isolation: Verified (metric errors logged, never raised)
# Error Codes: OBS-001 through OBS-004
#
# ============================================================================
