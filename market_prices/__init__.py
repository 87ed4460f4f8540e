"""
============================================================================
Project Exposure Desk v1.0.0
Market Prices Package - Reference Price Sources
============================================================================

Reliability Level: L5 Core

PRICE SOURCE PATTERN:
    Calculation code depends on the PriceSource interface only.
    create_price_source() picks the static table or the database tables
    from configuration without changing downstream code.

============================================================================
"""

from market_prices.price_source import (
    PriceSourceErrorCode,
    DEFAULT_REFERENCE_PRICES,
    PriceSource,
    PriceLookup,
    StaticPriceSource,
    DatabasePriceSource,
    create_price_source,
)

__all__ = [
    "PriceSourceErrorCode",
    "DEFAULT_REFERENCE_PRICES",
    "PriceSource",
    "PriceLookup",
    "StaticPriceSource",
    "DatabasePriceSource",
    "create_price_source",
]
