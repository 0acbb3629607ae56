"""
Custom exceptions module.

Codec and rule errors are recoverable; pricing and version errors abort.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    DatabaseError,

    # Lookups
    ProductNotFoundError,
    ConfigurationNotFoundError,
    QuoteNotFoundError,

    # Pool codes
    PoolCodeError,
    MalformedCodeError,
    UnknownShapeError,
    UnknownTypeError,
    InvalidDimensionsError,

    # Pricing
    PricingError,
    MissingPricingInputError,
    PriceReferenceNotFoundError,
    CyclicPriceReferenceError,

    # Mapping rules
    MissingProductAssignmentError,

    # Quote versions
    VersionNotFoundError,
    EmptySnapshotError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "DatabaseError",

    # Lookups
    "ProductNotFoundError",
    "ConfigurationNotFoundError",
    "QuoteNotFoundError",

    # Pool codes
    "PoolCodeError",
    "MalformedCodeError",
    "UnknownShapeError",
    "UnknownTypeError",
    "InvalidDimensionsError",

    # Pricing
    "PricingError",
    "MissingPricingInputError",
    "PriceReferenceNotFoundError",
    "CyclicPriceReferenceError",

    # Mapping rules
    "MissingProductAssignmentError",

    # Quote versions
    "VersionNotFoundError",
    "EmptySnapshotError",
]
