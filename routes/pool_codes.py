"""
Pool code API routes.

Encode and decode catalog codes (BAZ-...) for the catalog editor.
"""

from decimal import Decimal, ROUND_HALF_UP

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from models.pool import Configuration, PoolCodeEncodeRequest, PoolCodeResponse, PoolDescriptor
from services.pool_code_service import (
    decode,
    encode,
    format_dimensions,
    pool_perimeter,
    pool_surface,
    pool_volume,
)
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()

TWO_PLACES = Decimal("0.01")


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _describe(code: str, descriptor: PoolDescriptor) -> PoolCodeResponse:
    return PoolCodeResponse(
        code=code,
        descriptor=descriptor,
        dimensions_label=format_dimensions(descriptor),
        surface_m2=pool_surface(descriptor).quantize(TWO_PLACES, ROUND_HALF_UP),
        perimeter_m=pool_perimeter(descriptor).quantize(TWO_PLACES, ROUND_HALF_UP),
        volume_m3=pool_volume(descriptor).quantize(TWO_PLACES, ROUND_HALF_UP),
    )


# ===================
# ROUTES
# ===================

@router.get("/decode", response_model=PoolCodeResponse)
async def decode_pool_code(code: str = Query(..., min_length=1, description="Catalog code")):
    """
    Decode a catalog code.

    Legacy decimeter codes are returned in meters.

    Raises:
        422: Code is malformed or describes an impossible pool
    """
    try:
        descriptor = decode(code)
        return _describe(encode(descriptor), descriptor)

    except Exception as e:
        return handle_error(e)


@router.post("/encode", response_model=PoolCodeResponse)
async def encode_pool_code(data: PoolCodeEncodeRequest):
    """
    Build the catalog code for a pool.

    Raises:
        422: Unknown shape or type, or invalid dimensions
    """
    try:
        configuration = Configuration(
            pool_shape=data.pool_shape,
            pool_type=data.pool_type,
            dimensions=data.dimensions
        )
        descriptor = configuration.descriptor()
        return _describe(encode(descriptor), descriptor)

    except Exception as e:
        return handle_error(e)
