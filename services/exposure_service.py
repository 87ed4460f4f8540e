"""
============================================================================
Exposure Desk - Exposure Report Service
============================================================================

Reliability Level: L4 Supporting
Input Constraints: Leg records from the repository or a request body
Side Effects: Repository reads; Prometheus counters

Builds exposure reports from the calculation core and gates report
refreshes triggered by change notifications:

    - while a bulk operation runs (or cools down) refreshes use the long
      debounce delay
    - a notification storm opens the circuit breaker and refreshes are
      dropped until it recovers

ERROR CODES:
    - EXP-003: Exposure report failed

============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.logic.bulk_operations import BulkOperationCoordinator
from app.logic.circuit_breaker import EventWindowCircuitBreaker
from app.logic.exposure_aggregator import (
    ExposureData,
    MonthlyExposure,
    aggregate_exposures,
    calculate_exposure_totals,
    calculate_product_totals,
)
from app.logic.month_codes import DateRange
from app.observability.metrics import record_exposure_report
from services.exposure_config import ExposureConfig
from services.leg_repository import LegRepository

# Configure module logger
logger = logging.getLogger(__name__)


class ExposureServiceErrorCode:
    REPORT_FAILED = "EXP-003"


@dataclass
class ExposureReport:
    rows: List[MonthlyExposure] = field(default_factory=list)
    grand_total: ExposureData = field(default_factory=ExposureData)
    product_totals: Dict[str, ExposureData] = field(default_factory=dict)

    @property
    def products(self) -> List[str]:
        seen: List[str] = []
        for row in self.rows:
            for product in row.products:
                if product not in seen:
                    seen.append(product)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "months": [row.to_dict() for row in self.rows],
            "products": self.products,
            "productTotals": {p: t.to_dict() for p, t in self.product_totals.items()},
            "grandTotal": self.grand_total.to_dict(),
        }


def build_exposure_report(
    physical_legs: Iterable[Any],
    paper_legs: Iterable[Any],
    config: ExposureConfig,
    periods: Optional[Sequence[str]] = None,
    allowed_products: Optional[Sequence[str]] = None,
    date_range: Optional[DateRange] = None
) -> ExposureReport:
    """
    Aggregate legs into a report.

    allowed_products overrides the configured column list.
    """
    products = allowed_products if allowed_products is not None else config.report_products
    try:
        rows = aggregate_exposures(
            physical_legs,
            paper_legs,
            periods=periods,
            allowed_products=products,
            date_range=date_range,
            fallback_month=config.default_month,
        )
    except Exception as e:
        logger.error(f"[{ExposureServiceErrorCode.REPORT_FAILED}] Exposure report failed | error={e}")
        record_exposure_report("failed")
        raise
    return ExposureReport(
        rows=rows,
        grand_total=calculate_exposure_totals(rows),
        product_totals=calculate_product_totals(rows),
    )


class ExposureService:
    """Repository-backed report builder."""

    def __init__(self, repository: LegRepository, config: ExposureConfig):
        self._repository = repository
        self._config = config

    def build_report(
        self,
        periods: Optional[Sequence[str]] = None,
        allowed_products: Optional[Sequence[str]] = None,
        date_range: Optional[DateRange] = None
    ) -> ExposureReport:
        return build_exposure_report(
            self._repository.fetch_physical_legs(),
            self._repository.fetch_paper_legs(),
            self._config,
            periods=periods,
            allowed_products=allowed_products,
            date_range=date_range,
        )


class RefreshGate:
    """
    Decides how (and whether) a change notification triggers a refresh.

    on_change() returns the debounce delay in ms, or None when the
    circuit breaker is open and the notification must be dropped.
    """

    def __init__(
        self,
        breaker: EventWindowCircuitBreaker,
        coordinator: BulkOperationCoordinator
    ):
        self.breaker = breaker
        self.coordinator = coordinator

    @classmethod
    def from_config(cls, config: ExposureConfig) -> "RefreshGate":
        return cls(
            EventWindowCircuitBreaker(config.circuit_breaker_config()),
            BulkOperationCoordinator(cooldown_ms=config.bulk_cooldown_ms),
        )

    def on_change(self) -> Optional[int]:
        if not self.breaker.record_event():
            logger.debug("Refresh dropped | circuit open")
            return None
        return self.coordinator.get_adaptive_debounce_delay()


__all__ = [
    "ExposureServiceErrorCode",
    "ExposureReport",
    "build_exposure_report",
    "ExposureService",
    "RefreshGate",
]
