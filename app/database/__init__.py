# ============================================================================
# Project Exposure Desk v1.0.0
# Database Module - Shared SQLAlchemy Engine
# ============================================================================

from app.database.session import (
    get_database_url,
    get_engine,
    reset_engine,
    check_database_connection,
)

__all__ = [
    "get_database_url",
    "get_engine",
    "reset_engine",
    "check_database_connection",
]
