"""
Quote generation: loads a stored configuration with the active catalog
and rules, then runs the mapping rule engine.

Returns the generated lines; the quote editor decides whether to save them.
"""

from typing import Optional
import structlog

from models.quote import GeneratedQuote
from services.catalog_service import CatalogService
from services.mapping_rule_service import resolve_quote_items

logger = structlog.get_logger(__name__)


class QuoteGenerationService:
    """Generates quote items for stored configurations."""

    def __init__(self):
        self.catalog_service = CatalogService()

    def generate_for_configuration(self, configuration_id: str) -> GeneratedQuote:
        """
        Generate priced quote items for a configuration.

        Args:
            configuration_id: Configuration UUID

        Returns:
            GeneratedQuote

        Raises:
            ConfigurationNotFoundError: If the configuration does not exist
            PricingError: If a selected product cannot be priced
            DatabaseError: If loading catalog data fails
        """
        logger.info("generating_quote_items", configuration_id=configuration_id)

        configuration = self.catalog_service.get_configuration(configuration_id)
        catalog = self.catalog_service.load_catalog()
        rules = self.catalog_service.get_active_rules()

        return resolve_quote_items(configuration, rules, catalog)


# Singleton instance
_service: Optional[QuoteGenerationService] = None


def get_quote_generation_service() -> QuoteGenerationService:
    """Get or create QuoteGenerationService instance."""
    global _service
    if _service is None:
        _service = QuoteGenerationService()
    return _service
