"""
Custom Exceptions for the Marketplace Backend

Hierarchical exception classes for proper error handling across layers.
"""

from typing import Optional, Dict, Any


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(MarketplaceError):
    """Raised when input validation fails."""
    pass


class DatabaseError(MarketplaceError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class DuplicateError(DatabaseError):
    """Raised when attempting to create a duplicate resource."""
    pass


class DomainError(MarketplaceError):
    """Raised when a business rule rejects an operation."""
    pass


class InvalidTransitionError(DomainError):
    """Raised when an entity has no edge from its current state to the requested one."""

    def __init__(
        self,
        entity: str,
        current: str,
        requested: str,
    ):
        super().__init__(
            f"Cannot move {entity} from {current} to {requested}",
            details={"entity": entity, "current": current, "requested": requested},
        )


class ForbiddenActionError(DomainError):
    """Raised when the acting user is not allowed to perform a transition."""
    pass


class SubscriptionRequiredError(DomainError):
    """Raised when a seller without an active subscription tries to publish."""
    pass


class GatewayError(MarketplaceError):
    """Raised when the payment gateway API call fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details, original_error)


class MalformedEventError(ValidationError):
    """Raised when a verified webhook body cannot be decoded into a known event."""
    pass


class ConfigurationError(MarketplaceError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
