"""
Business logic services.

Each service handles one part of configuration-to-quote resolution.
"""

from services.pool_code_service import (
    encode,
    decode,
    try_decode,
    is_pool_code,
    format_dimensions,
    pool_surface,
    pool_perimeter,
    pool_volume,
)
from services.pricing_service import (
    PriceResolver,
    round_price,
    format_price,
    describe_price,
)
from services.prerequisite_service import (
    PrerequisiteService,
    get_prerequisite_service,
    check_prerequisites,
    get_prerequisite_products,
    should_skip_prerequisites,
)
from services.mapping_rule_service import resolve_quote_items, rule_fires
from services.catalog_service import CatalogService, get_catalog_service
from services.quote_generation_service import QuoteGenerationService, get_quote_generation_service
from services.quote_version_service import QuoteVersionService, get_quote_version_service

__all__ = [
    # Pool codes
    "encode",
    "decode",
    "try_decode",
    "is_pool_code",
    "format_dimensions",
    "pool_surface",
    "pool_perimeter",
    "pool_volume",
    # Pricing
    "PriceResolver",
    "round_price",
    "format_price",
    "describe_price",
    # Prerequisites
    "PrerequisiteService",
    "get_prerequisite_service",
    "check_prerequisites",
    "get_prerequisite_products",
    "should_skip_prerequisites",
    # Mapping rules
    "resolve_quote_items",
    "rule_fires",
    # Catalog & quotes
    "CatalogService",
    "get_catalog_service",
    "QuoteGenerationService",
    "get_quote_generation_service",
    "QuoteVersionService",
    "get_quote_version_service",
]
