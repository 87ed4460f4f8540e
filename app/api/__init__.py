# ============================================================================
# Project Exposure Desk v1.0.0
# API Routes Module
# ============================================================================

from app.api.exposure import router as exposure_router

__all__ = ["exposure_router"]
