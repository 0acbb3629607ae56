"""
Pool configuration schemas.

A pool is described by shape, plumbing type and shape-specific dimensions
(meters). Circle pools carry diameter and depth; both rectangle shapes
carry width, length and depth.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import ConfigDict, Field, ValidationError as PydanticValidationError, model_validator

from models.base import BaseSchema, FrozenSchema
from exceptions import InvalidDimensionsError, UnknownShapeError, UnknownTypeError


# Plausibility ceilings in meters
MAX_SPAN_M = Decimal("12")
MAX_DEPTH_M = Decimal("3")


class PoolShape(str, Enum):
    """Pool shapes offered by the configurator."""
    CIRCLE = "circle"
    RECTANGLE_ROUNDED = "rectangle_rounded"
    RECTANGLE_SHARP = "rectangle_sharp"

    @property
    def is_rectangle(self) -> bool:
        return self is not PoolShape.CIRCLE


class PoolType(str, Enum):
    """Pool plumbing type."""
    SKIMMER = "skimmer"
    OVERFLOW = "overflow"


class CircleDimensions(FrozenSchema):
    """Circle pool dimensions in meters."""

    kind: Literal["circle"] = "circle"
    diameter: Decimal = Field(..., gt=0, le=MAX_SPAN_M, description="Diameter (m)")
    depth: Decimal = Field(..., gt=0, le=MAX_DEPTH_M, description="Depth (m)")


class RectangleDimensions(FrozenSchema):
    """Rectangle pool dimensions in meters."""

    kind: Literal["rectangle"] = "rectangle"
    width: Decimal = Field(..., gt=0, le=MAX_SPAN_M, description="Width (m)")
    length: Decimal = Field(..., gt=0, le=MAX_SPAN_M, description="Length (m)")
    depth: Decimal = Field(..., gt=0, le=MAX_DEPTH_M, description="Depth (m)")


PoolDimensions = Annotated[
    Union[CircleDimensions, RectangleDimensions],
    Field(discriminator="kind")
]


def dimensions_kind(shape: PoolShape) -> str:
    """Dimension variant tag required by a shape."""
    return "rectangle" if shape.is_rectangle else "circle"


class PoolDescriptor(FrozenSchema):
    """
    Immutable shape/plumbing/dimensions triple.

    The dimensions variant always matches the shape.
    """

    shape: PoolShape
    plumbing: PoolType
    dimensions: PoolDimensions

    @model_validator(mode="after")
    def dimensions_match_shape(self) -> "PoolDescriptor":
        if self.dimensions.kind != dimensions_kind(self.shape):
            raise ValueError(
                f"{self.shape.value} pools need {dimensions_kind(self.shape)} dimensions, "
                f"got {self.dimensions.kind}"
            )
        return self

    @classmethod
    def from_parts(
        cls,
        shape: Union[PoolShape, str],
        plumbing: Union[PoolType, str],
        dimensions: dict[str, Any]
    ) -> "PoolDescriptor":
        """
        Build a descriptor from loose configurator input.

        The dimensions dict may carry keys of the other variant (e.g. a
        null diameter on a rectangle); they are ignored.
        """
        shape = PoolShape(shape)
        payload = {k: v for k, v in dimensions.items() if v is not None}
        payload["kind"] = dimensions_kind(shape)
        return cls(shape=shape, plumbing=PoolType(plumbing), dimensions=payload)


# Configuration fields renamed since the first configurator release
CONFIG_FIELD_ALIASES = {
    "waterTreatment": "water_treatment",
}

OptionValue = Optional[Union[str, list[str]]]


class Configuration(BaseSchema):
    """
    Customer configuration as persisted by the configurator.

    Option fields hold a single value or a list of values (multi-select).
    Fields not declared here are kept as extras so mapping rules can
    target them.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    pool_shape: Optional[str] = None
    pool_type: Optional[str] = None
    dimensions: Optional[dict[str, Any]] = None

    color: OptionValue = None
    stairs: OptionValue = None
    technology: OptionValue = None
    lighting: OptionValue = None
    counterflow: OptionValue = None
    water_treatment: OptionValue = None
    heating: OptionValue = None
    roofing: OptionValue = None

    def resolve_values(self, field: str) -> list[str]:
        """
        Get the configured value(s) for a field as a list.

        Args:
            field: Field name (legacy aliases accepted)

        Returns:
            List of string values, empty when the field is unset
        """
        name = CONFIG_FIELD_ALIASES.get(field, field)
        if name in type(self).model_fields:
            value = getattr(self, name)
        else:
            value = (self.model_extra or {}).get(name)

        if value is None:
            return []
        if isinstance(value, (list, tuple, set)):
            return [str(v) for v in value if v is not None]
        return [str(value)]

    def descriptor(self) -> PoolDescriptor:
        """
        Build the pool descriptor for this configuration.

        Raises:
            UnknownShapeError: Shape missing or not recognised
            UnknownTypeError: Pool type missing or not recognised
            InvalidDimensionsError: Dimensions missing or out of range
        """
        try:
            shape = PoolShape(self.pool_shape)
        except ValueError:
            raise UnknownShapeError(None, str(self.pool_shape))

        try:
            plumbing = PoolType(self.pool_type)
        except ValueError:
            raise UnknownTypeError(None, str(self.pool_type))

        if not self.dimensions:
            raise InvalidDimensionsError(None, "Configuration has no dimensions")

        try:
            return PoolDescriptor.from_parts(shape, plumbing, self.dimensions)
        except PydanticValidationError as e:
            raise InvalidDimensionsError(
                None,
                f"Invalid {shape.value} dimensions",
                dimensions=[str(v) for v in self.dimensions.values()]
            ) from e


# ===================
# API SCHEMAS
# ===================

class PoolCodeEncodeRequest(BaseSchema):
    """Pool description to encode into a catalog code."""

    pool_shape: str = Field(..., description="circle, rectangle_rounded or rectangle_sharp")
    pool_type: str = Field(..., description="skimmer or overflow")
    dimensions: dict[str, Any] = Field(..., description="Dimensions in meters")


class PoolCodeResponse(BaseSchema):
    """Catalog code with its decoded pool and measurements."""

    code: str
    descriptor: PoolDescriptor
    dimensions_label: str
    surface_m2: Decimal
    perimeter_m: Decimal
    volume_m3: Decimal
