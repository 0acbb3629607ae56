"""
Catalog schemas: products and mapping rules.

Catalog administration is the only writer of these records; the quote
engine reads them.
"""

from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import Field, field_validator

from models.base import BaseSchema
from models.pool import PoolShape, PoolType
from exceptions import ProductNotFoundError


class PriceType(str, Enum):
    """How a product's unit price is determined."""
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    COEFFICIENT = "coefficient"


class CoefficientUnit(str, Enum):
    """Pool measurement a price coefficient is multiplied with."""
    M2 = "m2"   # surface, walls + bottom
    M = "m"     # perimeter
    BM = "bm"   # perimeter (running meter)
    M3 = "m3"   # water volume


class CatalogProduct(BaseSchema):
    """
    Catalog product as stored in the products table.

    Strategy-specific pricing fields are only meaningful for the
    matching price_type.
    """

    id: str = Field(..., min_length=1, description="Product UUID")
    name: str = Field(..., description="Display name")
    code: Optional[str] = Field(None, description="Catalog code, BAZ-... for pool skeletons")
    description: Optional[str] = None
    category: str = Field(default="jine", description="Item category")
    unit: str = Field(default="ks", description="Unit of measure")
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, description="List price")
    active: bool = True

    price_type: PriceType = PriceType.FIXED
    price_reference_product_id: Optional[str] = None
    price_percentage: Optional[Decimal] = Field(None, ge=0)
    price_minimum: Optional[Decimal] = Field(None, ge=0)
    price_coefficient: Optional[Decimal] = Field(None, ge=0)
    coefficient_unit: Optional[CoefficientUnit] = None

    prerequisite_product_ids: list[str] = Field(default_factory=list)
    prerequisite_pool_shapes: list[PoolShape] = Field(default_factory=list)
    required_surcharge_ids: list[str] = Field(default_factory=list)

    @field_validator("price_type", mode="before")
    @classmethod
    def default_price_type(cls, v):
        """Rows created before dynamic pricing have no price_type."""
        return v or PriceType.FIXED

    @field_validator("unit_price", mode="before")
    @classmethod
    def default_unit_price(cls, v):
        return Decimal("0") if v is None else v

    @field_validator(
        "prerequisite_product_ids",
        "prerequisite_pool_shapes",
        "required_surcharge_ids",
        mode="before"
    )
    @classmethod
    def null_list_to_empty(cls, v):
        return v or []


class MappingRule(BaseSchema):
    """
    Declarative rule: configuration field/value -> catalog product.

    Null or empty shape/type constraint sets mean unconstrained.
    """

    id: str = Field(..., min_length=1, description="Rule UUID")
    name: str = Field(default="", description="Admin label")
    description: Optional[str] = None
    config_field: str = Field(..., min_length=1, description="Configuration attribute, e.g. technology")
    config_value: str = Field(..., description="Value the attribute must hold")
    pool_shape: Optional[list[PoolShape]] = None
    pool_type: Optional[list[PoolType]] = None
    quantity: int = Field(default=1, ge=1)
    product_id: Optional[str] = None
    active: bool = True
    sort_order: int = 0

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, v):
        return v or 1


class Catalog:
    """
    Request-scoped index over catalog products.

    Usage:
        catalog = Catalog(products)
        pool = catalog.find_by_code("BAZ-KRU-SK-3-1.2")
    """

    def __init__(self, products: Iterable[CatalogProduct]):
        self._products = list(products)
        self._by_id = {p.id: p for p in self._products}
        self._by_code = {
            p.code.strip().upper(): p
            for p in self._products
            if p.code and p.active
        }

    def get(self, product_id: Optional[str]) -> Optional[CatalogProduct]:
        """Get a product by id, or None."""
        if product_id is None:
            return None
        return self._by_id.get(product_id)

    def require(self, product_id: str) -> CatalogProduct:
        """
        Get a product by id.

        Raises:
            ProductNotFoundError: If the id is unknown
        """
        product = self.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def find_by_code(self, code: str) -> Optional[CatalogProduct]:
        """Find an active product by catalog code (case-insensitive)."""
        return self._by_code.get(code.strip().upper())
