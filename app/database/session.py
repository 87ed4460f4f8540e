"""
============================================================================
Project Exposure Desk v1.0.0
Database Session - Shared SQLAlchemy Engine
============================================================================

Reliability Level: L4 Supporting
Input Constraints: DATABASE_URL or DB_* environment variables
Side Effects: Database connections (created lazily on first use)

The calculation core never touches the database. Only the leg
repository and the database price source read through this module,
and the engine is not built until one of them first connects.

============================================================================
"""

import os
import threading
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

# Load environment variables
load_dotenv()

_engine: Optional[Engine] = None
_lock = threading.Lock()


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

def get_database_url() -> str:
    """
    Resolve the connection URL.

    Environment Variables:
        DATABASE_URL: Full SQLAlchemy URL (takes precedence)
        DB_HOST / DB_PORT / DB_NAME / DB_USER / DB_PASSWORD: PostgreSQL parts
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "trading_ops")
    user = os.getenv("DB_USER", "reporting")
    password = os.getenv("DB_PASSWORD", "")

    return f"postgresql://{user}:{password}@{host}:{port}/{name}"


# ============================================================================
# SQLALCHEMY ENGINE
# ============================================================================

def get_engine() -> Engine:
    """Build the shared engine on first call."""
    global _engine
    with _lock:
        if _engine is None:
            url = get_database_url()
            kwargs = {
                "pool_pre_ping": True,
                "echo": os.getenv("DB_ECHO", "false").lower() == "true",
            }
            if not url.startswith("sqlite"):
                kwargs.update(pool_size=5, max_overflow=10, pool_recycle=1800)
            _engine = create_engine(url, **kwargs)
        return _engine


def reset_engine() -> None:
    """Dispose the shared engine (used by tests)."""
    global _engine
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None


# ============================================================================
# HEALTH CHECK
# ============================================================================

def check_database_connection() -> bool:
    """
    Verify database connectivity.

    Raises:
        Exception: If database connection fails
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        raise Exception(f"Database connection failed: {e}")
