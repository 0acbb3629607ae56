"""
Pool code codec and pool geometry.

Catalog code format: BAZ-{SHAPE}-{TYPE}-{DIMENSIONS}

    BAZ-KRU-SK-3-1.2       circle, skimmer, diameter 3 m, depth 1.2 m
    BAZ-OBD-PR-4-8-1.5     rectangle (rounded corners), overflow, 4 × 8 × 1.5 m
    BAZ-OBD-O-SK-3-6-1.2   rectangle (sharp corners), skimmer, 3 × 6 × 1.2 m

Older catalog rows encode dimensions in decimeters without a decimal
point (BAZ-OBD-SK-30-60-15); decode recovers them by dividing any value
above its plausibility ceiling by 10.
"""

import math
import re
from decimal import Decimal
from typing import Optional

import structlog

from models.pool import (
    MAX_DEPTH_M,
    MAX_SPAN_M,
    CircleDimensions,
    PoolDescriptor,
    PoolShape,
    PoolType,
    RectangleDimensions,
)
from exceptions import (
    InvalidDimensionsError,
    MalformedCodeError,
    PoolCodeError,
    UnknownShapeError,
    UnknownTypeError,
)

logger = structlog.get_logger(__name__)

CODE_PREFIX = "BAZ"
DECIMETERS_PER_METER = Decimal("10")
PI = Decimal(str(math.pi))

SHAPE_TOKENS = {
    PoolShape.CIRCLE: "KRU",
    PoolShape.RECTANGLE_ROUNDED: "OBD",
    PoolShape.RECTANGLE_SHARP: "OBD-O",
}
SHAPE_BY_TOKEN = {token: shape for shape, token in SHAPE_TOKENS.items()}

TYPE_TOKENS = {
    PoolType.SKIMMER: "SK",
    PoolType.OVERFLOW: "PR",
}
TYPE_BY_TOKEN = {token: pool_type for pool_type, token in TYPE_TOKENS.items()}

_DIMENSION_TOKEN = re.compile(r"^\d+(?:\.\d+)?$")


# ===================
# ENCODE
# ===================

def format_dimension(value: Decimal) -> str:
    """Plain decimal literal without exponent or trailing zeros (3.0 -> '3')."""
    return format(value.normalize(), "f")


def encode(descriptor: PoolDescriptor) -> str:
    """
    Build the catalog code for a pool.

    Args:
        descriptor: Pool shape, plumbing and dimensions

    Returns:
        Catalog code, e.g. "BAZ-OBD-SK-3-6-1.2"
    """
    dims = descriptor.dimensions
    if isinstance(dims, CircleDimensions):
        values = [dims.diameter, dims.depth]
    elif isinstance(dims, RectangleDimensions):
        values = [dims.width, dims.length, dims.depth]
    else:
        raise TypeError(f"Unsupported dimensions: {type(dims).__name__}")

    return "-".join([
        CODE_PREFIX,
        SHAPE_TOKENS[descriptor.shape],
        TYPE_TOKENS[descriptor.plumbing],
        *(format_dimension(v) for v in values),
    ])


# ===================
# DECODE
# ===================

def _parse_shape(tokens: list[str], code: str) -> tuple[PoolShape, int]:
    """Resolve the shape token(s). Returns (shape, tokens consumed)."""
    if len(tokens) >= 2 and f"{tokens[0]}-{tokens[1]}" in SHAPE_BY_TOKEN:
        return SHAPE_BY_TOKEN[f"{tokens[0]}-{tokens[1]}"], 2
    if tokens[0] in SHAPE_BY_TOKEN:
        return SHAPE_BY_TOKEN[tokens[0]], 1
    raise UnknownShapeError(code, tokens[0])


def _parse_dimension(token: str, ceiling: Decimal, code: str, tokens: list[str]) -> Decimal:
    """Parse one dimension token, recovering decimeter values."""
    if not _DIMENSION_TOKEN.match(token):
        raise InvalidDimensionsError(code, f"Dimension is not a number: '{token}'", tokens)

    value = Decimal(token)
    if value <= 0:
        raise InvalidDimensionsError(code, f"Dimension must be positive: {token}", tokens)

    if value > ceiling:
        value = value / DECIMETERS_PER_METER
        if value > ceiling:
            raise InvalidDimensionsError(
                code,
                f"Dimension {token} exceeds {ceiling} m even as decimeters",
                tokens
            )

    return value


def decode(code: Optional[str]) -> PoolDescriptor:
    """
    Parse a catalog code back into a pool descriptor.

    Args:
        code: Catalog code (case-insensitive, surrounding whitespace ignored)

    Returns:
        PoolDescriptor

    Raises:
        MalformedCodeError: Not a BAZ- code, or shape/type/dimensions missing
        UnknownShapeError: Shape token not recognised
        UnknownTypeError: Type token not recognised
        InvalidDimensionsError: Wrong number of dimensions, or a value that is
            non-numeric, non-positive or implausibly large
    """
    if not code or not code.strip():
        raise MalformedCodeError(code, "Code is empty")

    normalized = code.strip().upper()
    if not normalized.startswith(f"{CODE_PREFIX}-"):
        raise MalformedCodeError(code)

    tokens = normalized[len(CODE_PREFIX) + 1:].split("-")
    if tokens == [""]:
        raise MalformedCodeError(code, "Code is missing the pool shape")
    shape, consumed = _parse_shape(tokens, code)

    if len(tokens) <= consumed:
        raise MalformedCodeError(code, "Code is missing the pool type")

    type_token = tokens[consumed]
    if type_token not in TYPE_BY_TOKEN:
        raise UnknownTypeError(code, type_token)
    plumbing = TYPE_BY_TOKEN[type_token]

    dim_tokens = tokens[consumed + 1:]
    if not dim_tokens:
        raise MalformedCodeError(code, "Code is missing the dimensions")

    if shape.is_rectangle:
        if len(dim_tokens) != 3:
            raise InvalidDimensionsError(code, "Rectangle codes need width-length-depth", dim_tokens)
        dimensions = RectangleDimensions(
            width=_parse_dimension(dim_tokens[0], MAX_SPAN_M, code, dim_tokens),
            length=_parse_dimension(dim_tokens[1], MAX_SPAN_M, code, dim_tokens),
            depth=_parse_dimension(dim_tokens[2], MAX_DEPTH_M, code, dim_tokens),
        )
    else:
        if len(dim_tokens) != 2:
            raise InvalidDimensionsError(code, "Circle codes need diameter-depth", dim_tokens)
        dimensions = CircleDimensions(
            diameter=_parse_dimension(dim_tokens[0], MAX_SPAN_M, code, dim_tokens),
            depth=_parse_dimension(dim_tokens[1], MAX_DEPTH_M, code, dim_tokens),
        )

    return PoolDescriptor(shape=shape, plumbing=plumbing, dimensions=dimensions)


def try_decode(code: Optional[str]) -> Optional[PoolDescriptor]:
    """Decode a code, returning None instead of raising."""
    try:
        return decode(code)
    except PoolCodeError as e:
        logger.debug("pool_code_not_decodable", code=code, reason=e.code)
        return None


def is_pool_code(code: Optional[str]) -> bool:
    """Check whether a product code describes a pool skeleton."""
    return try_decode(code) is not None


def format_dimensions(descriptor: PoolDescriptor) -> str:
    """Human-readable dimensions, e.g. '3×6×1.2m' or '4×1.5m'."""
    dims = descriptor.dimensions
    if isinstance(dims, CircleDimensions):
        parts = [dims.diameter, dims.depth]
    else:
        parts = [dims.width, dims.length, dims.depth]
    return "×".join(format_dimension(p) for p in parts) + "m"


# ===================
# GEOMETRY
# ===================

def pool_surface(descriptor: PoolDescriptor) -> Decimal:
    """Lined surface in m²: walls plus bottom."""
    dims = descriptor.dimensions
    if isinstance(dims, CircleDimensions):
        radius = dims.diameter / 2
        return PI * dims.diameter * dims.depth + PI * radius * radius
    walls = 2 * dims.width * dims.depth + 2 * dims.length * dims.depth
    return walls + dims.width * dims.length


def pool_perimeter(descriptor: PoolDescriptor) -> Decimal:
    """Rim length in meters."""
    dims = descriptor.dimensions
    if isinstance(dims, CircleDimensions):
        return PI * dims.diameter
    return 2 * (dims.width + dims.length)


def pool_volume(descriptor: PoolDescriptor) -> Decimal:
    """Water volume in m³."""
    dims = descriptor.dimensions
    if isinstance(dims, CircleDimensions):
        radius = dims.diameter / 2
        return PI * radius * radius * dims.depth
    return dims.width * dims.length * dims.depth
