"""
Quote schemas: line items, generation output and version history.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, model_validator

from models.base import BaseSchema
from models.catalog import CatalogProduct


class ItemSource(str, Enum):
    """Where a quote line came from."""
    POOL_BASE_PRICE = "pool_base_price"
    MAPPING_RULE = "mapping_rule"
    REQUIRED_SURCHARGE = "required_surcharge"
    DELIVERY = "delivery"
    MANUAL = "manual"


class QuoteLineItem(BaseSchema):
    """
    One line of a quote.

    total_price is derived from unit_price × quantity when not given.
    """

    product_id: Optional[str] = Field(None, description="Catalog product, None for manual lines")
    name: str
    description: Optional[str] = None
    category: str = "jine"
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    unit: str = "ks"
    unit_price: Decimal
    total_price: Decimal
    sort_order: int = 0
    source: ItemSource = ItemSource.MANUAL
    rule_id: Optional[str] = None
    price_note: Optional[str] = Field(None, description="How the unit price was reached")

    @model_validator(mode="before")
    @classmethod
    def fill_total_price(cls, data: Any) -> Any:
        if (
            isinstance(data, dict)
            and data.get("total_price") is None
            and data.get("unit_price") is not None
        ):
            quantity = data.get("quantity")
            quantity = Decimal("1") if quantity is None else Decimal(str(quantity))
            data = {**data, "total_price": Decimal(str(data["unit_price"])) * quantity}
        return data


class QuoteWarning(BaseSchema):
    """A rule or product skipped during generation."""

    code: str
    message: str
    rule_id: Optional[str] = None
    product_id: Optional[str] = None


class GeneratedQuote(BaseSchema):
    """Priced items generated from a configuration."""

    items: list[QuoteLineItem]
    subtotal: Decimal
    warnings: list[QuoteWarning] = Field(default_factory=list)
    pool_code: Optional[str] = Field(None, description="Catalog code looked up for the base pool")


class PriceResolution(BaseSchema):
    """Resolved unit price with the inputs that produced it."""

    product_id: str
    price: Decimal
    price_type: str
    reference_product_id: Optional[str] = None
    reference_price: Optional[Decimal] = None
    percentage_applied: Optional[Decimal] = None
    measurement_used: Optional[Decimal] = None
    measurement_unit: Optional[str] = None
    coefficient_used: Optional[Decimal] = None
    minimum_applied: bool = False


class PrerequisiteCheckResult(BaseSchema):
    """Outcome of a prerequisite check. The check never mutates the quote."""

    allowed: bool
    waived_by_shape: bool = False
    missing: list[CatalogProduct] = Field(default_factory=list)
    missing_ids: list[str] = Field(default_factory=list)
    message: Optional[str] = None


class QuoteSnapshot(BaseSchema):
    """Immutable copy of a quote header and its items."""

    id: str
    quote_id: str
    version_number: int = Field(..., ge=1)
    snapshot: dict[str, Any]
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    @property
    def header(self) -> Optional[dict]:
        return self.snapshot.get("quote") if self.snapshot else None

    @property
    def items(self) -> list[dict]:
        return (self.snapshot or {}).get("items") or []


class RestoreResult(BaseSchema):
    """Outcome of restoring a quote to an earlier version."""

    quote_id: str
    restored_version: int
    backup_version: int
    items_restored: int
    message: str


# ===================
# REQUEST BODIES
# ===================

class GenerateItemsRequest(BaseSchema):
    """Generate quote items for a stored configuration."""

    configuration_id: str = Field(..., min_length=1)


class VersionCreate(BaseSchema):
    """Create a version of the current quote state."""

    notes: Optional[str] = Field(None, max_length=500)


class PrerequisiteCheckRequest(BaseSchema):
    """Check whether a product may be added to a quote."""

    product_id: str = Field(..., min_length=1)
