"""
Custom exception classes for the application.

All errors carry a stable error code, an HTTP status and a details dict
so routes can return them unchanged.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# LOOKUP ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Catalog product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class ConfigurationNotFoundError(NotFoundError):
    """Configurator submission not found."""

    def __init__(self, configuration_id: str):
        super().__init__(
            resource="Configuration",
            identifier=configuration_id,
            code="CONFIGURATION_NOT_FOUND"
        )


class QuoteNotFoundError(NotFoundError):
    """Quote not found."""

    def __init__(self, quote_id: str):
        super().__init__(
            resource="Quote",
            identifier=quote_id,
            code="QUOTE_NOT_FOUND"
        )


# ===================
# POOL CODE ERRORS
# ===================

class PoolCodeError(ValidationError):
    """Base for catalog code encode/decode failures."""

    def __init__(self, code: str, message: str, pool_code: Optional[str], details: Optional[dict] = None):
        super().__init__(
            code=code,
            message=message,
            details={"pool_code": pool_code, **(details or {})}
        )


class MalformedCodeError(PoolCodeError):
    """Code does not follow the BAZ-{SHAPE}-{TYPE}-{DIMS} grammar."""

    def __init__(self, pool_code: Optional[str], reason: str = "Code must start with BAZ-"):
        super().__init__(
            code="POOL_CODE_MALFORMED",
            message=reason,
            pool_code=pool_code
        )


class UnknownShapeError(PoolCodeError):
    """Shape token is not KRU, OBD or OBD-O."""

    def __init__(self, pool_code: Optional[str], token: str):
        super().__init__(
            code="POOL_CODE_UNKNOWN_SHAPE",
            message=f"Unknown pool shape token: {token}",
            pool_code=pool_code,
            details={"token": token, "valid": ["KRU", "OBD", "OBD-O"]}
        )


class UnknownTypeError(PoolCodeError):
    """Plumbing type token is not SK or PR."""

    def __init__(self, pool_code: Optional[str], token: str):
        super().__init__(
            code="POOL_CODE_UNKNOWN_TYPE",
            message=f"Unknown pool type token: {token}",
            pool_code=pool_code,
            details={"token": token, "valid": ["SK", "PR"]}
        )


class InvalidDimensionsError(PoolCodeError):
    """Dimension tokens are missing, non-numeric or out of range."""

    def __init__(self, pool_code: Optional[str], reason: str, dimensions: Optional[list] = None):
        super().__init__(
            code="POOL_CODE_INVALID_DIMENSIONS",
            message=reason,
            pool_code=pool_code,
            details={"dimensions": dimensions or []}
        )


# ===================
# PRICING ERRORS
# ===================

class PricingError(ValidationError):
    """Base for catalog pricing data defects."""
    pass


class MissingPricingInputError(PricingError):
    """A pricing strategy lacks the data it needs."""

    def __init__(self, product_id: str, missing: str):
        super().__init__(
            code="PRICING_MISSING_INPUT",
            message=f"Product {product_id} cannot be priced: missing {missing}",
            details={"product_id": product_id, "missing": missing}
        )


class PriceReferenceNotFoundError(MissingPricingInputError):
    """Percentage price points at a product that is not in the catalog."""

    def __init__(self, product_id: str, reference_id: str):
        super().__init__(product_id, missing=f"reference product {reference_id}")
        self.code = "PRICING_REFERENCE_NOT_FOUND"
        self.details["reference_product_id"] = reference_id


class CyclicPriceReferenceError(PricingError):
    """Percentage price references loop back on themselves."""

    def __init__(self, chain: list[str]):
        super().__init__(
            code="PRICING_CYCLIC_REFERENCE",
            message="Cyclic price reference: " + " -> ".join(chain),
            details={"chain": chain}
        )


# ===================
# MAPPING RULE ERRORS
# ===================

class MissingProductAssignmentError(ValidationError):
    """A mapping rule fired but has no catalog product assigned."""

    def __init__(self, rule_id: str, rule_name: Optional[str] = None):
        super().__init__(
            code="MAPPING_RULE_UNASSIGNED",
            message=f"Mapping rule '{rule_name or rule_id}' has no product assigned",
            details={"rule_id": rule_id}
        )


# ===================
# QUOTE VERSION ERRORS
# ===================

class VersionNotFoundError(NotFoundError):
    """Quote version not found or belongs to another quote."""

    def __init__(self, quote_id: str, version_id: str):
        super().__init__(
            resource="Quote version",
            identifier=version_id,
            code="QUOTE_VERSION_NOT_FOUND"
        )
        self.details["quote_id"] = quote_id


class EmptySnapshotError(ValidationError):
    """Stored snapshot payload has no quote header."""

    def __init__(self, version_id: str):
        super().__init__(
            code="QUOTE_VERSION_EMPTY",
            message="Version snapshot is missing the quote header",
            details={"version_id": version_id}
        )
