# ============================================================================
# Project Exposure Desk v1.0.0
# Pydantic Schemas - Data Validation Layer
# ============================================================================

from app.schemas.exposure import ExposureReportRequest, MTMRequest
from app.schemas.formula import (
    FormulaEvaluateRequest,
    FormulaExposureRequest,
    FormulaParseRequest,
    FormulaTokenModel,
)

__all__ = [
    "ExposureReportRequest",
    "MTMRequest",
    "FormulaTokenModel",
    "FormulaParseRequest",
    "FormulaEvaluateRequest",
    "FormulaExposureRequest",
]
