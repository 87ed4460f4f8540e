"""
============================================================================
Project Exposure Desk - Services Layer
============================================================================

Configuration, leg persistence and the report / MTM services built on
the calculation core.

Reliability Level: L4 Supporting
============================================================================
"""

from services.exposure_config import (
    ExposureConfig,
    ExposureConfigErrorCode,
    ExposureConfigurationError,
    get_exposure_config,
    reset_exposure_config,
)

from services.leg_repository import (
    LegRepository,
    LegFetchError,
    LegRepositoryErrorCode,
    create_leg_repository,
)

from services.exposure_service import (
    ExposureReport,
    ExposureService,
    RefreshGate,
    build_exposure_report,
)

from services.mtm_service import (
    MTMService,
    calculate_physical_mtm,
    calculate_paper_mtm,
    summarize_mtm,
)

__all__ = [
    # Configuration
    "ExposureConfig",
    "ExposureConfigErrorCode",
    "ExposureConfigurationError",
    "get_exposure_config",
    "reset_exposure_config",
    # Persistence
    "LegRepository",
    "LegFetchError",
    "LegRepositoryErrorCode",
    "create_leg_repository",
    # Reports
    "ExposureReport",
    "ExposureService",
    "RefreshGate",
    "build_exposure_report",
    # MTM
    "MTMService",
    "calculate_physical_mtm",
    "calculate_paper_mtm",
    "summarize_mtm",
]
