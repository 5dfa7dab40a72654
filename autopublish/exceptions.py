"""
Custom exception classes for the article auto-publish service.

Exceptions are raised at the edges (storage validation, startup
configuration, malformed API responses) and caught at the best-effort
boundaries of the scheduling core, where they are logged and never allowed
to stop a cycle.

Hierarchy:
    Exception
    +-- AutopublishBaseError (base for all service-specific errors)
    |   +-- MirrorSyncError
    |   +-- CrossPostError
    +-- ValidationError (ValueError)
    +-- DatabaseError
    +-- ConfigurationError
"""

from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class AutopublishBaseError(Exception):
    """Base exception for all auto-publish errors."""

    pass


# =============================================================================
# CORE EXCEPTIONS
# =============================================================================


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


class DatabaseError(Exception):
    """Raised when database operations fail."""

    pass


class ConfigurationError(Exception):
    """Raised when system configuration is invalid."""

    pass


# =============================================================================
# EXTERNAL SYNC EXCEPTIONS
# =============================================================================


class MirrorSyncError(AutopublishBaseError):
    """Raised when the Airtable mirror returns an unusable response.

    Attributes:
        status_code: HTTP status returned by the mirror, if any.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class CrossPostError(AutopublishBaseError):
    """Raised when a social cross-post cannot be built or sent."""

    pass


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Base
    "AutopublishBaseError",
    # Core
    "ValidationError",
    "DatabaseError",
    "ConfigurationError",
    # External sync
    "MirrorSyncError",
    "CrossPostError",
]
