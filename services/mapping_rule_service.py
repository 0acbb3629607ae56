"""
Mapping rule engine: configuration -> priced quote lines.

Rules are data. One matcher evaluates every rule; adding a configurator
option means adding rule rows, not code.

Generation order:
1. Base pool product, looked up by catalog code
2. Products of firing rules, by ascending sort_order
3. Required surcharges of everything emitted so far
4. Delivery line, when nothing emitted is a delivery item
"""

from collections import deque
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from config import Settings, get_settings
from models.catalog import Catalog, CatalogProduct, MappingRule
from models.pool import Configuration, PoolDescriptor
from models.quote import GeneratedQuote, ItemSource, QuoteLineItem, QuoteWarning
from exceptions import MissingProductAssignmentError, PoolCodeError
from services.pool_code_service import encode
from services.pricing_service import PriceResolver, describe_price

logger = structlog.get_logger(__name__)

# Categories renamed since the first catalog import
LEGACY_CATEGORIES = {
    "bazeny": "skelety",
    "prislusenstvi": "jine",
}


def normalize_category(category: Optional[str]) -> str:
    """Map legacy category names to current ones."""
    if not category:
        return "jine"
    return LEGACY_CATEGORIES.get(category, category)


def rule_fires(
    rule: MappingRule,
    configuration: Configuration,
    skip_values: Iterable[str] = ("none",)
) -> bool:
    """
    Check whether a rule applies to a configuration.

    A rule fires when the configured value(s) of its field contain its
    value, that value is not a skip value, and the pool shape and type
    satisfy the rule's constraints (empty constraint = any).
    """
    if rule.config_value in skip_values:
        return False

    if rule.config_value not in configuration.resolve_values(rule.config_field):
        return False

    if rule.pool_shape and configuration.pool_shape not in rule.pool_shape:
        return False

    if rule.pool_type and configuration.pool_type not in rule.pool_type:
        return False

    return True


class _QuoteBuilder:
    """Accumulates lines and warnings for one generation run."""

    def __init__(self, catalog: Catalog, resolver: PriceResolver):
        self.catalog = catalog
        self.resolver = resolver
        self.items: list[QuoteLineItem] = []
        self.warnings: list[QuoteWarning] = []
        self.emitted: list[CatalogProduct] = []
        self.emitted_ids: set[str] = set()

    def add_product(
        self,
        product: CatalogProduct,
        source: ItemSource,
        quantity: int = 1,
        rule_id: Optional[str] = None
    ) -> QuoteLineItem:
        resolution = self.resolver.resolve(product)
        unit_price = resolution.price
        item = QuoteLineItem(
            product_id=product.id,
            name=product.name,
            description=product.description,
            category=normalize_category(product.category),
            quantity=Decimal(quantity),
            unit=product.unit or "ks",
            unit_price=unit_price,
            total_price=unit_price * quantity,
            sort_order=len(self.items),
            source=source,
            rule_id=rule_id,
            price_note=describe_price(resolution)
        )
        self.items.append(item)
        self.emitted.append(product)
        self.emitted_ids.add(product.id)
        return item

    def add_line(self, **fields) -> QuoteLineItem:
        item = QuoteLineItem(sort_order=len(self.items), **fields)
        self.items.append(item)
        return item

    def warn(self, code: str, message: str, **context) -> None:
        self.warnings.append(QuoteWarning(code=code, message=message, **context))

    def result(self, pool_code: Optional[str]) -> GeneratedQuote:
        subtotal = sum((item.total_price for item in self.items), Decimal("0"))
        return GeneratedQuote(
            items=self.items,
            subtotal=subtotal,
            warnings=self.warnings,
            pool_code=pool_code
        )


def _add_base_pool(
    builder: _QuoteBuilder,
    configuration: Configuration,
    descriptor: Optional[PoolDescriptor]
) -> Optional[str]:
    """Emit the pool skeleton line. Returns the catalog code used."""
    if descriptor is None:
        return None

    code = encode(descriptor)
    product = builder.catalog.find_by_code(code)

    if product is None:
        logger.warning(
            "pool_product_not_found",
            code=code,
            configuration_id=configuration.id
        )
        builder.warn("POOL_PRODUCT_NOT_FOUND", f"No active product with code {code}")
        return code

    builder.add_product(product, ItemSource.POOL_BASE_PRICE)
    return code


def _apply_rules(
    builder: _QuoteBuilder,
    configuration: Configuration,
    rules: Iterable[MappingRule],
    skip_values: list[str]
) -> None:
    """Emit products of firing rules in ascending sort_order."""
    active = sorted((r for r in rules if r.active), key=lambda r: r.sort_order)

    for rule in active:
        if not rule_fires(rule, configuration, skip_values):
            continue

        if not rule.product_id:
            error = MissingProductAssignmentError(rule.id, rule.name)
            logger.warning("mapping_rule_unassigned", rule_id=rule.id, rule_name=rule.name)
            builder.warn(error.code, error.message, rule_id=rule.id)
            continue

        product = builder.catalog.get(rule.product_id)
        if product is None or not product.active:
            logger.warning(
                "mapping_rule_product_unavailable",
                rule_id=rule.id,
                product_id=rule.product_id
            )
            builder.warn(
                "MAPPING_RULE_PRODUCT_UNAVAILABLE",
                f"Product of rule '{rule.name or rule.id}' is not in the active catalog",
                rule_id=rule.id,
                product_id=rule.product_id
            )
            continue

        if product.id in builder.emitted_ids:
            logger.debug("mapping_rule_duplicate_product", rule_id=rule.id, product_id=product.id)
            continue

        builder.add_product(product, ItemSource.MAPPING_RULE, rule.quantity, rule.id)


def _add_required_surcharges(builder: _QuoteBuilder) -> None:
    """Emit surcharges required by emitted products, transitively."""
    seen = set(builder.emitted_ids)
    pending: deque[str] = deque()

    for product in builder.emitted:
        for surcharge_id in product.required_surcharge_ids:
            if surcharge_id not in seen:
                seen.add(surcharge_id)
                pending.append(surcharge_id)

    while pending:
        surcharge_id = pending.popleft()
        surcharge = builder.catalog.get(surcharge_id)

        if surcharge is None or not surcharge.active:
            logger.warning("required_surcharge_not_found", product_id=surcharge_id)
            builder.warn(
                "REQUIRED_SURCHARGE_NOT_FOUND",
                f"Required surcharge {surcharge_id} is not in the active catalog",
                product_id=surcharge_id
            )
            continue

        builder.add_product(surcharge, ItemSource.REQUIRED_SURCHARGE)

        for nested_id in surcharge.required_surcharge_ids:
            if nested_id not in seen:
                seen.add(nested_id)
                pending.append(nested_id)


def resolve_quote_items(
    configuration: Configuration,
    rules: Iterable[MappingRule],
    catalog: Catalog,
    settings: Optional[Settings] = None
) -> GeneratedQuote:
    """
    Generate priced quote lines for a configuration.

    Args:
        configuration: Customer configuration
        rules: Mapping rules (inactive ones are ignored)
        catalog: Active catalog products
        settings: Generation settings (defaults to app settings)

    Returns:
        GeneratedQuote with lines in emission order

    Raises:
        PricingError: A selected product cannot be priced
    """
    settings = settings or get_settings()

    descriptor = None
    warnings: list[QuoteWarning] = []

    try:
        descriptor = configuration.descriptor()
    except PoolCodeError as e:
        logger.warning(
            "pool_descriptor_invalid",
            configuration_id=configuration.id,
            error=e.message
        )
        warnings.append(QuoteWarning(code=e.code, message=e.message))

    builder = _QuoteBuilder(catalog, PriceResolver(catalog, descriptor))
    builder.warnings.extend(warnings)

    pool_code = _add_base_pool(builder, configuration, descriptor)
    _apply_rules(builder, configuration, rules, settings.skip_config_values)
    _add_required_surcharges(builder)

    if settings.include_delivery_item and not any(
        item.category == settings.delivery_category for item in builder.items
    ):
        builder.add_line(
            product_id=None,
            name=settings.delivery_item_name,
            category=settings.delivery_category,
            quantity=Decimal("1"),
            unit="ks",
            unit_price=Decimal("0"),
            total_price=Decimal("0"),
            source=ItemSource.DELIVERY
        )

    quote = builder.result(pool_code)

    logger.info(
        "quote_items_resolved",
        configuration_id=configuration.id,
        pool_code=pool_code,
        item_count=len(quote.items),
        warning_count=len(quote.warnings),
        subtotal=str(quote.subtotal)
    )

    return quote
