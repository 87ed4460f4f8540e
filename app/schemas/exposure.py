"""
============================================================================
Project Exposure Desk v1.0.0
Exposure Schemas - Pydantic Models for Report and MTM Endpoints
============================================================================

Reliability Level: L4 Supporting
Input Constraints:
    - Month codes like "Mar-24" (normalised to "Mon-YY")
    - start_date and end_date given together, end_date >= start_date
Side Effects: None (pure validation)

Leg lists are passed through as raw records; PhysicalTradeLeg.from_record
and PaperTradeLeg.from_record own their coercion rules. A missing leg
list means "read the legs from the database".

============================================================================
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.logic.month_codes import DateRange, is_month_code, standardize_month_code


class ExposureReportRequest(BaseModel):
    physical_legs: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Physical leg records; None reads from the database"
    )
    paper_legs: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Paper leg records; None reads from the database"
    )
    periods: Optional[List[str]] = Field(default=None, description="Report months")
    allowed_products: Optional[List[str]] = Field(default=None, description="Report columns")
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("periods")
    @classmethod
    def validate_periods(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        bad = [p for p in v if not is_month_code(p)]
        if bad:
            raise ValueError(f"Invalid month codes: {bad}")
        return [standardize_month_code(p) for p in v]

    @model_validator(mode="after")
    def validate_date_range(self) -> "ExposureReportRequest":
        if (self.start_date is None) != (self.end_date is None):
            raise ValueError("start_date and end_date must be given together")
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def uses_database(self) -> bool:
        return self.physical_legs is None and self.paper_legs is None

    def date_range(self) -> Optional[DateRange]:
        if self.start_date is None or self.end_date is None:
            return None
        return DateRange(self.start_date, self.end_date)


class MTMRequest(BaseModel):
    """
    Legs to value.

    prices overrides reference prices for this call; as_of fixes the
    valuation date (past / current / future period split).
    """
    legs: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Leg records; None reads from the database"
    )
    prices: Optional[Dict[str, float]] = None
    as_of: Optional[date] = None


__all__ = [
    "ExposureReportRequest",
    "MTMRequest",
]
