"""
Catalog service: read-only access to products, mapping rules and
configurator submissions.

Catalog administration owns these tables; nothing here writes to them.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from models.catalog import Catalog, CatalogProduct, MappingRule
from models.pool import Configuration
from exceptions import ConfigurationNotFoundError, DatabaseError

logger = structlog.get_logger(__name__)


class CatalogService:
    """
    Catalog read operations.

    Every call hits the database; callers build a request-scoped
    Catalog from the result.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.products_table = "products"
        self.rules_table = "product_mapping_rules"
        self.configurations_table = "configurations"

    def get_active_products(self) -> list[CatalogProduct]:
        """
        Get all active catalog products.

        Returns:
            List of CatalogProduct
        """
        logger.debug("getting_active_products")

        try:
            result = (
                self.db.table(self.products_table)
                .select("*")
                .eq("active", True)
                .execute()
            )
        except Exception as e:
            logger.error("get_active_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

        products = [CatalogProduct.model_validate(row) for row in result.data]
        logger.info("active_products_retrieved", count=len(products))
        return products

    def load_catalog(self) -> Catalog:
        """Index of the active catalog for one request."""
        return Catalog(self.get_active_products())

    def get_active_rules(self) -> list[MappingRule]:
        """
        Get active mapping rules ordered by sort_order.

        Returns:
            List of MappingRule
        """
        logger.debug("getting_active_mapping_rules")

        try:
            result = (
                self.db.table(self.rules_table)
                .select("*")
                .eq("active", True)
                .order("sort_order")
                .execute()
            )
        except Exception as e:
            logger.error("get_active_mapping_rules_failed", error=str(e))
            raise DatabaseError("select", str(e))

        rules = [MappingRule.model_validate(row) for row in result.data]
        logger.info("active_mapping_rules_retrieved", count=len(rules))
        return rules

    def get_configuration(self, configuration_id: str) -> Configuration:
        """
        Get a configurator submission by ID.

        Args:
            configuration_id: Configuration UUID

        Returns:
            Configuration

        Raises:
            ConfigurationNotFoundError: If no such configuration
        """
        logger.debug("getting_configuration", configuration_id=configuration_id)

        try:
            result = (
                self.db.table(self.configurations_table)
                .select("*")
                .eq("id", configuration_id)
                .execute()
            )
        except Exception as e:
            logger.error(
                "get_configuration_failed",
                configuration_id=configuration_id,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ConfigurationNotFoundError(configuration_id)

        return Configuration.model_validate(result.data[0])


# Singleton instance
_service: Optional[CatalogService] = None


def get_catalog_service() -> CatalogService:
    """Get or create CatalogService instance."""
    global _service
    if _service is None:
        _service = CatalogService()
    return _service
