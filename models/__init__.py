"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, FrozenSchema
from models.pool import (
    PoolShape,
    PoolType,
    CircleDimensions,
    RectangleDimensions,
    PoolDimensions,
    PoolDescriptor,
    Configuration,
    PoolCodeEncodeRequest,
    PoolCodeResponse,
)
from models.catalog import (
    PriceType,
    CoefficientUnit,
    CatalogProduct,
    MappingRule,
    Catalog,
)
from models.quote import (
    ItemSource,
    QuoteLineItem,
    QuoteWarning,
    GeneratedQuote,
    PriceResolution,
    PrerequisiteCheckResult,
    QuoteSnapshot,
    RestoreResult,
    GenerateItemsRequest,
    VersionCreate,
    PrerequisiteCheckRequest,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",
    # Pool
    "PoolShape",
    "PoolType",
    "CircleDimensions",
    "RectangleDimensions",
    "PoolDimensions",
    "PoolDescriptor",
    "Configuration",
    "PoolCodeEncodeRequest",
    "PoolCodeResponse",
    # Catalog
    "PriceType",
    "CoefficientUnit",
    "CatalogProduct",
    "MappingRule",
    "Catalog",
    # Quote
    "ItemSource",
    "QuoteLineItem",
    "QuoteWarning",
    "GeneratedQuote",
    "PriceResolution",
    "PrerequisiteCheckResult",
    "QuoteSnapshot",
    "RestoreResult",
    "GenerateItemsRequest",
    "VersionCreate",
    "PrerequisiteCheckRequest",
]
