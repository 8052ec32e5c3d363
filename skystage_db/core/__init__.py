# ==============================================================================
# CORE PACKAGE INITIALIZATION
# ==============================================================================
# Core utilities: Settings, Exceptions, Constants, Logging
# ==============================================================================

"""
Core Module
===========

Contains core utilities and configurations for the data layer:
- settings: Environment configuration management
- exceptions: Error taxonomy shared by every provider
- constants: Table names and backend error codes
- logging: Process logging setup
"""

from skystage_db.core.settings import (
    DatabaseProvider,
    Environment,
    Settings,
    get_settings,
    settings,
)
from skystage_db.core.exceptions import (
    AppException,
    ConfigurationError,
    ConstraintViolationError,
    DatabaseConnectionError,
    DatabaseError,
    NotFoundError,
    NotInitializedError,
    QueryError,
    TransactionAbortedError,
    UnsupportedOperationError,
    ValidationError,
)
from skystage_db.core.logging import setup_logging

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "DatabaseProvider",
    "Environment",
    "AppException",
    "ConfigurationError",
    "ConstraintViolationError",
    "DatabaseConnectionError",
    "DatabaseError",
    "NotFoundError",
    "NotInitializedError",
    "QueryError",
    "TransactionAbortedError",
    "UnsupportedOperationError",
    "ValidationError",
    "setup_logging",
]
