"""
Unit tests for price resolution.

Run: pytest tests/unit/test_pricing_service.py -v
"""

import pytest
from decimal import Decimal

from services.pricing_service import (
    PriceResolver,
    describe_price,
    format_price,
    round_price,
)
from models.catalog import Catalog, CatalogProduct
from models.pool import PoolDescriptor
from exceptions import (
    CyclicPriceReferenceError,
    MissingPricingInputError,
    PriceReferenceNotFoundError,
    PricingError,
)
from tests.factories import CatalogProductFactory


def make_catalog(*rows) -> Catalog:
    return Catalog(CatalogProduct.model_validate(row) for row in rows)


@pytest.fixture
def rectangle_pool() -> PoolDescriptor:
    """3 × 6 × 1.2 m: surface 39.6 m², perimeter 18 m, volume 21.6 m³."""
    return PoolDescriptor.from_parts("rectangle_rounded", "skimmer", {"width": 3, "length": 6, "depth": 1.2})


# ===================
# FIXED
# ===================

class TestFixedPrice:
    """Tests for fixed pricing"""

    def test_returns_unit_price_unchanged(self):
        catalog = make_catalog(CatalogProductFactory.create(id="a", unit_price=1234.5))

        resolution = PriceResolver(catalog).resolve(catalog.require("a"))

        assert resolution.price == Decimal("1234.5")
        assert resolution.price_type == "fixed"

    def test_missing_price_type_is_fixed(self):
        catalog = make_catalog(CatalogProductFactory.create(id="a", unit_price=500, price_type=None))

        assert PriceResolver(catalog).price(catalog.require("a")) == Decimal("500")


# ===================
# PERCENTAGE
# ===================

class TestPercentagePrice:
    """Tests for percentage pricing"""

    def test_percentage_of_reference(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="base", unit_price=10000),
            CatalogProductFactory.percentage(id="extra", reference_id="base", percentage=15),
        )

        resolution = PriceResolver(catalog).resolve(catalog.require("extra"))

        assert resolution.price == Decimal("1500")
        assert resolution.reference_price == Decimal("10000")
        assert resolution.minimum_applied is False

    def test_minimum_floor_applies(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="base", unit_price=10000),
            CatalogProductFactory.percentage(id="extra", reference_id="base", percentage=15, minimum=2000),
        )

        resolution = PriceResolver(catalog).resolve(catalog.require("extra"))

        assert resolution.price == Decimal("2000")
        assert resolution.minimum_applied is True

    def test_result_rounded_half_up(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="base", unit_price=1001),
            CatalogProductFactory.percentage(id="extra", reference_id="base", percentage=50),
        )

        assert PriceResolver(catalog).price(catalog.require("extra")) == Decimal("501")

    def test_chain_uses_rounded_intermediate_prices(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="a", unit_price=1001),
            CatalogProductFactory.percentage(id="b", reference_id="a", percentage=50),
            CatalogProductFactory.percentage(id="c", reference_id="b", percentage=10),
        )
        resolver = PriceResolver(catalog)

        # b = round(500.5) = 501, c = round(50.1) = 50
        assert resolver.price(catalog.require("c")) == Decimal("50")
        assert resolver.price(catalog.require("b")) == Decimal("501")

    def test_reference_may_be_coefficient_priced(self, rectangle_pool):
        catalog = make_catalog(
            CatalogProductFactory.coefficient(id="liner", coefficient=1000, unit="m2"),
            CatalogProductFactory.percentage(id="extra", reference_id="liner", percentage=10),
        )

        assert PriceResolver(catalog, rectangle_pool).price(catalog.require("extra")) == Decimal("3960")

    def test_two_product_cycle_detected(self):
        catalog = make_catalog(
            CatalogProductFactory.percentage(id="x", reference_id="y", percentage=10),
            CatalogProductFactory.percentage(id="y", reference_id="x", percentage=10),
        )

        with pytest.raises(CyclicPriceReferenceError) as exc_info:
            PriceResolver(catalog).resolve(catalog.require("x"))

        assert exc_info.value.details["chain"] == ["x", "y", "x"]

    def test_self_reference_detected(self):
        catalog = make_catalog(
            CatalogProductFactory.percentage(id="x", reference_id="x", percentage=10),
        )

        with pytest.raises(CyclicPriceReferenceError):
            PriceResolver(catalog).resolve(catalog.require("x"))

    def test_unknown_reference(self):
        catalog = make_catalog(
            CatalogProductFactory.percentage(id="x", reference_id="ghost", percentage=10),
        )

        with pytest.raises(PriceReferenceNotFoundError) as exc_info:
            PriceResolver(catalog).resolve(catalog.require("x"))

        assert isinstance(exc_info.value, MissingPricingInputError)
        assert exc_info.value.code == "PRICING_REFERENCE_NOT_FOUND"

    def test_missing_percentage(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="base"),
            CatalogProductFactory.create(
                id="x",
                price_type="percentage",
                price_reference_product_id="base"
            ),
        )

        with pytest.raises(MissingPricingInputError):
            PriceResolver(catalog).resolve(catalog.require("x"))

    def test_missing_reference_id_never_defaults_to_zero(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="x", price_type="percentage", price_percentage=10),
        )

        with pytest.raises(PricingError):
            PriceResolver(catalog).price(catalog.require("x"))


# ===================
# COEFFICIENT
# ===================

class TestCoefficientPrice:
    """Tests for coefficient pricing"""

    @pytest.mark.parametrize("unit,expected", [
        ("m2", Decimal("3960")),   # 39.6 m² × 100
        ("m", Decimal("1800")),    # 18 m × 100
        ("bm", Decimal("1800")),
        ("m3", Decimal("2160")),   # 21.6 m³ × 100
    ])
    def test_measurement_per_unit(self, rectangle_pool, unit, expected):
        catalog = make_catalog(CatalogProductFactory.coefficient(id="c", coefficient=100, unit=unit))

        resolution = PriceResolver(catalog, rectangle_pool).resolve(catalog.require("c"))

        assert resolution.price == expected
        assert resolution.measurement_unit == unit

    def test_minimum_floor_applies(self, rectangle_pool):
        catalog = make_catalog(CatalogProductFactory.coefficient(id="c", coefficient=10, unit="bm", minimum=500))

        resolution = PriceResolver(catalog, rectangle_pool).resolve(catalog.require("c"))

        assert resolution.price == Decimal("500")
        assert resolution.minimum_applied is True

    def test_missing_descriptor(self):
        catalog = make_catalog(CatalogProductFactory.coefficient(id="c", coefficient=100))

        with pytest.raises(MissingPricingInputError):
            PriceResolver(catalog).resolve(catalog.require("c"))

    def test_missing_coefficient(self, rectangle_pool):
        catalog = make_catalog(CatalogProductFactory.create(id="c", price_type="coefficient", coefficient_unit="m2"))

        with pytest.raises(MissingPricingInputError):
            PriceResolver(catalog, rectangle_pool).resolve(catalog.require("c"))


# ===================
# FORMATTING
# ===================

class TestFormatting:
    """Tests for round_price, format_price and describe_price"""

    def test_round_price_half_up(self):
        assert round_price(Decimal("2.5")) == Decimal("3")
        assert round_price(Decimal("2.49")) == Decimal("2")

    def test_format_price(self):
        assert format_price(Decimal("12500")) == "12 500 Kč"
        assert format_price(Decimal("999.6"), currency="CZK") == "1 000 CZK"

    def test_describe_percentage_with_minimum(self):
        catalog = make_catalog(
            CatalogProductFactory.create(id="base", unit_price=10000),
            CatalogProductFactory.percentage(id="extra", reference_id="base", percentage=15, minimum=2000),
        )
        resolution = PriceResolver(catalog).resolve(catalog.require("extra"))

        assert describe_price(resolution) == "15% z 10 000 Kč (použito minimum)"

    def test_describe_fixed(self):
        catalog = make_catalog(CatalogProductFactory.create(id="a"))

        assert describe_price(PriceResolver(catalog).resolve(catalog.require("a"))) == "Fixní cena"
