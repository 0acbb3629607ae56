"""
Product price resolution.

Each catalog product is priced by its price_type:
- fixed: unit_price as stored
- percentage: share of another product's resolved price, optionally floored
- coefficient: rate × pool measurement (surface, perimeter or volume)

A PriceResolver is created per request; it memoizes every price it
resolves and is thrown away afterwards.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import structlog

from config import settings
from models.catalog import Catalog, CatalogProduct, CoefficientUnit, PriceType
from models.pool import PoolDescriptor
from models.quote import PriceResolution
from exceptions import (
    CyclicPriceReferenceError,
    MissingPricingInputError,
    PriceReferenceNotFoundError,
)
from services.pool_code_service import pool_perimeter, pool_surface, pool_volume

logger = structlog.get_logger(__name__)

HUNDRED = Decimal("100")
WHOLE_UNIT = Decimal("1")

MEASUREMENTS = {
    CoefficientUnit.M2: pool_surface,
    CoefficientUnit.M: pool_perimeter,
    CoefficientUnit.BM: pool_perimeter,
    CoefficientUnit.M3: pool_volume,
}


def round_price(value: Decimal) -> Decimal:
    """Round to whole currency units, halves away from zero."""
    return Decimal(value).quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def format_price(value: Decimal, currency: Optional[str] = None) -> str:
    """
    Format a price the Czech way: '12 500 Kč'.

    Args:
        value: Price
        currency: Symbol to append (defaults to settings.currency_symbol)
    """
    symbol = settings.currency_symbol if currency is None else currency
    number = f"{int(round_price(value)):,}".replace(",", " ")
    return f"{number} {symbol}".strip()


class PriceResolver:
    """
    Resolves unit prices against one catalog and one pool.

    Usage:
        resolver = PriceResolver(catalog, descriptor)
        price = resolver.price(product)
    """

    def __init__(self, catalog: Catalog, descriptor: Optional[PoolDescriptor] = None):
        self.catalog = catalog
        self.descriptor = descriptor
        self._resolved: dict[str, PriceResolution] = {}

    def price(self, product: CatalogProduct) -> Decimal:
        """Resolved unit price of a product."""
        return self.resolve(product).price

    def resolve(self, product: CatalogProduct) -> PriceResolution:
        """
        Resolve a product's unit price.

        Percentage references are followed until a product that is either
        already resolved or not percentage-priced; the chain is then priced
        back to front.

        Raises:
            MissingPricingInputError: Strategy lacks its inputs
            PriceReferenceNotFoundError: Reference id not in the catalog
            CyclicPriceReferenceError: References loop back on themselves
        """
        if product.id in self._resolved:
            return self._resolved[product.id]

        chain = [product]
        visited = {product.id}
        current = product

        while current.price_type == PriceType.PERCENTAGE and current.id not in self._resolved:
            reference_id = self._require_percentage_inputs(current)
            reference = self.catalog.get(reference_id)
            if reference is None:
                raise PriceReferenceNotFoundError(current.id, reference_id)
            if reference.id in visited:
                cycle = [p.id for p in chain] + [reference.id]
                logger.error("cyclic_price_reference", chain=cycle)
                raise CyclicPriceReferenceError(cycle)
            visited.add(reference.id)
            chain.append(reference)
            current = reference

        tail = chain[-1]
        if tail.id not in self._resolved:
            self._resolved[tail.id] = self._resolve_direct(tail)

        for item in reversed(chain[:-1]):
            reference = self._resolved[item.price_reference_product_id]
            self._resolved[item.id] = self._apply_percentage(item, reference.price)

        return self._resolved[product.id]

    # ===================
    # STRATEGIES
    # ===================

    def _require_percentage_inputs(self, product: CatalogProduct) -> str:
        if not product.price_reference_product_id:
            raise MissingPricingInputError(product.id, "price_reference_product_id")
        if product.price_percentage is None:
            raise MissingPricingInputError(product.id, "price_percentage")
        return product.price_reference_product_id

    def _apply_percentage(self, product: CatalogProduct, reference_price: Decimal) -> PriceResolution:
        raw = reference_price * product.price_percentage / HUNDRED
        floored, minimum_applied = self._apply_minimum(product, raw)

        return PriceResolution(
            product_id=product.id,
            price=round_price(floored),
            price_type=PriceType.PERCENTAGE.value,
            reference_product_id=product.price_reference_product_id,
            reference_price=reference_price,
            percentage_applied=product.price_percentage,
            minimum_applied=minimum_applied
        )

    def _resolve_direct(self, product: CatalogProduct) -> PriceResolution:
        if product.price_type == PriceType.COEFFICIENT:
            return self._resolve_coefficient(product)

        return PriceResolution(
            product_id=product.id,
            price=product.unit_price,
            price_type=PriceType.FIXED.value
        )

    def _resolve_coefficient(self, product: CatalogProduct) -> PriceResolution:
        if product.price_coefficient is None:
            raise MissingPricingInputError(product.id, "price_coefficient")
        if self.descriptor is None:
            raise MissingPricingInputError(product.id, "pool dimensions")

        unit = product.coefficient_unit or CoefficientUnit.M2
        measurement = MEASUREMENTS[unit](self.descriptor)
        raw = product.price_coefficient * measurement
        floored, minimum_applied = self._apply_minimum(product, raw)

        return PriceResolution(
            product_id=product.id,
            price=round_price(floored),
            price_type=PriceType.COEFFICIENT.value,
            measurement_used=measurement,
            measurement_unit=unit.value,
            coefficient_used=product.price_coefficient,
            minimum_applied=minimum_applied
        )

    @staticmethod
    def _apply_minimum(product: CatalogProduct, value: Decimal) -> tuple[Decimal, bool]:
        if product.price_minimum is not None and value < product.price_minimum:
            return product.price_minimum, True
        return value, False


def describe_price(resolution: PriceResolution, currency: Optional[str] = None) -> str:
    """Short Czech explanation of how a price was reached."""
    if resolution.price_type == PriceType.PERCENTAGE.value:
        percentage = format(resolution.percentage_applied.normalize(), "f")
        text = f"{percentage}% z {format_price(resolution.reference_price, currency)}"
        if resolution.minimum_applied:
            text += " (použito minimum)"
        return text

    if resolution.price_type == PriceType.COEFFICIENT.value:
        unit_label = {"m2": "m²", "m3": "m³"}.get(resolution.measurement_unit, "bm")
        measurement = resolution.measurement_used.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        text = f"{measurement} {unit_label} × {format_price(resolution.coefficient_used, currency)}"
        if resolution.minimum_applied:
            text += " (použito minimum)"
        return text

    return "Fixní cena"
