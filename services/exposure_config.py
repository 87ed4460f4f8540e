"""
============================================================================
Exposure Desk - Configuration
============================================================================

Reliability Level: L4 Supporting

This module provides configuration management for the reporting services:
- Environment variable parsing with type safety
- Default values for every setting
- Validation with CFG-001 on invalid values

ENVIRONMENT VARIABLES:
    - EXPOSURE_DEFAULT_MONTH: Fallback month for undated legs (default: Dec-24)
    - EXPOSURE_ALLOWED_PRODUCTS: Comma-separated report columns (default: all)
    - MTM_PRICE_SOURCE: "static" or "database" (default: static)
    - BULK_COOLDOWN_MS: Cooldown after bulk operations (default: 5000)
    - CIRCUIT_MAX_EVENTS: Events allowed per window (default: 15)
    - CIRCUIT_WINDOW_MS: Event window length (default: 5000)
    - CIRCUIT_RECOVERY_MS: Time before an open circuit closes (default: 10000)

ERROR CODES:
    - CFG-001: Invalid configuration

============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from app.logic.circuit_breaker import CircuitBreakerConfig
from app.logic.month_codes import is_month_code, standardize_month_code

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ExposureConfigErrorCode:
    """Configuration error codes for audit logging."""
    INVALID_CONFIG = "CFG-001"


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_MONTH = "Dec-24"
DEFAULT_PRICE_SOURCE = "static"
DEFAULT_BULK_COOLDOWN_MS = 5000
DEFAULT_CIRCUIT_MAX_EVENTS = 15
DEFAULT_CIRCUIT_WINDOW_MS = 5000
DEFAULT_CIRCUIT_RECOVERY_MS = 10000

VALID_PRICE_SOURCES = ("static", "database")


class ExposureConfigurationError(Exception):
    """Raised when configuration values are invalid (CFG-001)."""

    def __init__(self, message: str, error_code: str = ExposureConfigErrorCode.INVALID_CONFIG):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# ExposureConfig Class
# =============================================================================

@dataclass
class ExposureConfig:
    """
    Reporting configuration.

    allowed_products empty means every product found is reported.
    """
    default_month: str = DEFAULT_MONTH
    allowed_products: List[str] = field(default_factory=list)
    price_source: str = DEFAULT_PRICE_SOURCE
    bulk_cooldown_ms: int = DEFAULT_BULK_COOLDOWN_MS
    circuit_max_events: int = DEFAULT_CIRCUIT_MAX_EVENTS
    circuit_window_ms: int = DEFAULT_CIRCUIT_WINDOW_MS
    circuit_recovery_ms: int = DEFAULT_CIRCUIT_RECOVERY_MS

    @property
    def report_products(self) -> Optional[List[str]]:
        return list(self.allowed_products) or None

    def circuit_breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            max_events_per_window=self.circuit_max_events,
            window_ms=self.circuit_window_ms,
            recovery_ms=self.circuit_recovery_ms,
        )

    def validate(self) -> None:
        """
        Raises:
            ExposureConfigurationError: If any value is out of range
        """
        errors: List[str] = []

        if not is_month_code(self.default_month):
            errors.append(f"EXPOSURE_DEFAULT_MONTH must look like 'Dec-24', got: {self.default_month}")

        if self.price_source not in VALID_PRICE_SOURCES:
            errors.append(
                f"MTM_PRICE_SOURCE must be one of {VALID_PRICE_SOURCES}, got: {self.price_source}"
            )

        for name, value in (
            ("BULK_COOLDOWN_MS", self.bulk_cooldown_ms),
            ("CIRCUIT_WINDOW_MS", self.circuit_window_ms),
            ("CIRCUIT_RECOVERY_MS", self.circuit_recovery_ms),
        ):
            if value < 0:
                errors.append(f"{name} must be non-negative, got: {value}")

        if self.circuit_max_events <= 0:
            errors.append(f"CIRCUIT_MAX_EVENTS must be positive, got: {self.circuit_max_events}")

        if errors:
            error_msg = "Exposure configuration validation failed: " + "; ".join(errors)
            logger.error(f"[{ExposureConfigErrorCode.INVALID_CONFIG}] {error_msg}")
            raise ExposureConfigurationError(error_msg)

        logger.info(
            f"[EXPOSURE-CONFIG] Configuration validated | "
            f"default_month={self.default_month} | "
            f"price_source={self.price_source} | "
            f"allowed_products_count={len(self.allowed_products)}"
        )

    @classmethod
    def from_environment(cls, validate: bool = True) -> "ExposureConfig":
        """
        Load configuration from environment variables.

        Raises:
            ExposureConfigurationError: If validate is True and a value is invalid
        """
        default_month = os.environ.get("EXPOSURE_DEFAULT_MONTH", DEFAULT_MONTH).strip()
        if is_month_code(default_month):
            default_month = standardize_month_code(default_month)

        products_str = os.environ.get("EXPOSURE_ALLOWED_PRODUCTS", "")
        allowed_products = [p.strip() for p in products_str.split(",") if p.strip()]

        price_source = os.environ.get("MTM_PRICE_SOURCE", DEFAULT_PRICE_SOURCE).strip().lower()

        config = cls(
            default_month=default_month,
            allowed_products=allowed_products,
            price_source=price_source,
            bulk_cooldown_ms=_int_env("BULK_COOLDOWN_MS", DEFAULT_BULK_COOLDOWN_MS),
            circuit_max_events=_int_env("CIRCUIT_MAX_EVENTS", DEFAULT_CIRCUIT_MAX_EVENTS),
            circuit_window_ms=_int_env("CIRCUIT_WINDOW_MS", DEFAULT_CIRCUIT_WINDOW_MS),
            circuit_recovery_ms=_int_env("CIRCUIT_RECOVERY_MS", DEFAULT_CIRCUIT_RECOVERY_MS),
        )

        logger.info(
            f"[EXPOSURE-CONFIG] Loading configuration from environment | "
            f"EXPOSURE_DEFAULT_MONTH={config.default_month} | "
            f"MTM_PRICE_SOURCE={config.price_source}"
        )

        if validate:
            config.validate()

        return config

    def to_dict(self) -> dict:
        return {
            "default_month": self.default_month,
            "allowed_products": list(self.allowed_products),
            "price_source": self.price_source,
            "bulk_cooldown_ms": self.bulk_cooldown_ms,
            "circuit_max_events": self.circuit_max_events,
            "circuit_window_ms": self.circuit_window_ms,
            "circuit_recovery_ms": self.circuit_recovery_ms,
        }


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            f"[EXPOSURE-CONFIG] Invalid {name} value: {raw}, using default: {default}"
        )
        return default


# =============================================================================
# Module-Level Configuration Instance
# =============================================================================

_config_instance: Optional[ExposureConfig] = None


def get_exposure_config(validate: bool = True) -> ExposureConfig:
    """Global configuration, loaded from the environment on first call."""
    global _config_instance
    if _config_instance is None:
        _config_instance = ExposureConfig.from_environment(validate=validate)
    return _config_instance


def reset_exposure_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config_instance
    _config_instance = None


__all__ = [
    "ExposureConfigErrorCode",
    "ExposureConfigurationError",
    "ExposureConfig",
    "DEFAULT_MONTH",
    "VALID_PRICE_SOURCES",
    "get_exposure_config",
    "reset_exposure_config",
]
