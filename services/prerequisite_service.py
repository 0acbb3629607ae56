"""
Product prerequisite checks for manual quote edits.

A product may list prerequisite products that must already be on the
quote. The requirement is waived for the pool shapes listed in
prerequisite_pool_shapes (e.g. 8mm liner needs sharp-corner reinforcement
on rectangles, but nothing on circles).
"""

from typing import Iterable, Optional, Union

import structlog

from config import get_supabase_client
from models.catalog import Catalog, CatalogProduct
from models.pool import PoolShape
from models.quote import PrerequisiteCheckResult, QuoteLineItem
from exceptions import DatabaseError, QuoteNotFoundError
from services.catalog_service import CatalogService

logger = structlog.get_logger(__name__)

ItemLike = Union[QuoteLineItem, dict]


def _item_product_id(item: ItemLike) -> Optional[str]:
    if isinstance(item, dict):
        return item.get("product_id")
    return item.product_id


def _coerce_shape(pool_shape: Union[PoolShape, str, None]) -> Optional[PoolShape]:
    if pool_shape is None or isinstance(pool_shape, PoolShape):
        return pool_shape
    try:
        return PoolShape(pool_shape)
    except ValueError:
        logger.warning("unknown_pool_shape", pool_shape=pool_shape)
        return None


def should_skip_prerequisites(
    product: CatalogProduct,
    pool_shape: Union[PoolShape, str, None]
) -> bool:
    """True when the pool shape waives the product's prerequisites."""
    shape = _coerce_shape(pool_shape)
    if shape is None:
        return False
    return shape in product.prerequisite_pool_shapes


def get_prerequisite_products(product: CatalogProduct, catalog: Catalog) -> list[CatalogProduct]:
    """Catalog records of a product's prerequisites, in declared order."""
    return [
        prerequisite
        for prerequisite in (catalog.get(pid) for pid in product.prerequisite_product_ids)
        if prerequisite is not None
    ]


def check_prerequisites(
    candidate: CatalogProduct,
    current_items: Iterable[ItemLike],
    pool_shape: Union[PoolShape, str, None],
    catalog: Catalog
) -> PrerequisiteCheckResult:
    """
    Decide whether a product may be added to a quote.

    Args:
        candidate: Product being added
        current_items: Lines already on the quote (models or raw rows)
        pool_shape: Shape of the quoted pool, if known
        catalog: Lookup for naming missing products

    Returns:
        PrerequisiteCheckResult; never modifies the items
    """
    if not candidate.prerequisite_product_ids:
        return PrerequisiteCheckResult(allowed=True)

    if should_skip_prerequisites(candidate, pool_shape):
        return PrerequisiteCheckResult(allowed=True, waived_by_shape=True)

    present = {pid for pid in map(_item_product_id, current_items) if pid is not None}
    missing_ids = [pid for pid in candidate.prerequisite_product_ids if pid not in present]

    if not missing_ids:
        return PrerequisiteCheckResult(allowed=True)

    missing = [p for p in (catalog.get(pid) for pid in missing_ids) if p is not None]
    if missing:
        names = ", ".join(p.name for p in missing)
        message = f"Add {names} before adding \"{candidate.name}\""
    else:
        message = f"\"{candidate.name}\" requires products that are not in the catalog"

    logger.info(
        "prerequisites_missing",
        product_id=candidate.id,
        missing_ids=missing_ids
    )

    return PrerequisiteCheckResult(
        allowed=False,
        missing=missing,
        missing_ids=missing_ids,
        message=message
    )


class PrerequisiteService:
    """
    Prerequisite checks against stored quotes.

    Reads the quote's items and pool configuration, never writes.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.quotes_table = "quotes"
        self.items_table = "quote_items"
        self.catalog_service = CatalogService()

    def check_for_quote(self, quote_id: str, product_id: str) -> PrerequisiteCheckResult:
        """
        Check whether a catalog product may be added to a quote.

        Args:
            quote_id: Quote UUID
            product_id: Candidate product UUID

        Raises:
            QuoteNotFoundError: Quote does not exist
            ProductNotFoundError: Product not in the active catalog
        """
        logger.info("checking_prerequisites", quote_id=quote_id, product_id=product_id)

        try:
            quote = (
                self.db.table(self.quotes_table)
                .select("id, pool_config")
                .eq("id", quote_id)
                .execute()
            )
            items = (
                self.db.table(self.items_table)
                .select("product_id")
                .eq("quote_id", quote_id)
                .execute()
            )
        except Exception as e:
            logger.error("prerequisite_lookup_failed", quote_id=quote_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not quote.data:
            raise QuoteNotFoundError(quote_id)

        catalog = self.catalog_service.load_catalog()
        candidate = catalog.require(product_id)

        pool_config = quote.data[0].get("pool_config") or {}
        pool_shape = pool_config.get("pool_shape") if isinstance(pool_config, dict) else None

        return check_prerequisites(candidate, items.data or [], pool_shape, catalog)


# Singleton instance
_service: Optional[PrerequisiteService] = None


def get_prerequisite_service() -> PrerequisiteService:
    """Get or create PrerequisiteService instance."""
    global _service
    if _service is None:
        _service = PrerequisiteService()
    return _service
