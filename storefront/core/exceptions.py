"""
Service-layer errors.

Services raise these instead of HTTPException; the application-level handler
in storefront.main turns them into structured JSON responses.
"""
from typing import Dict, Optional

from fastapi import status


class StorefrontError(Exception):
    """Base exception for domain errors raised by services."""
    kind = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(StorefrontError):
    """Entity absent, or not owned by the caller."""
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StorefrontError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class BusinessRuleError(StorefrontError):
    """Request is well-formed but the current state does not allow it."""
    kind = "business_rule"
    status_code = status.HTTP_400_BAD_REQUEST
