"""
Quote API routes.

Item generation, prerequisite checks and version history for the
quote editor.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from models.quote import (
    GeneratedQuote,
    GenerateItemsRequest,
    PrerequisiteCheckRequest,
    PrerequisiteCheckResult,
    QuoteSnapshot,
    RestoreResult,
    VersionCreate,
)
from services.quote_generation_service import get_quote_generation_service
from services.quote_version_service import get_quote_version_service
from services.prerequisite_service import get_prerequisite_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter()


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
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


# ===================
# GENERATION
# ===================

@router.post("/generate-items", response_model=GeneratedQuote)
async def generate_items(data: GenerateItemsRequest):
    """
    Generate priced quote items from a stored configuration.

    Skipped rules and a missing pool product are reported in warnings.

    Raises:
        404: Configuration not found
        422: A selected product cannot be priced
    """
    try:
        service = get_quote_generation_service()
        return service.generate_for_configuration(data.configuration_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{quote_id}/prerequisites", response_model=PrerequisiteCheckResult)
async def check_prerequisites(quote_id: str, data: PrerequisiteCheckRequest):
    """
    Check whether a product may be added to a quote.

    Raises:
        404: Quote or product not found
    """
    try:
        service = get_prerequisite_service()
        return service.check_for_quote(quote_id, data.product_id)

    except Exception as e:
        return handle_error(e)


# ===================
# VERSIONS
# ===================

@router.get("/{quote_id}/versions", response_model=list[QuoteSnapshot])
async def list_versions(quote_id: str):
    """Get all versions of a quote, newest first."""
    try:
        service = get_quote_version_service()
        return service.list_versions(quote_id)

    except Exception as e:
        return handle_error(e)


@router.post("/{quote_id}/versions", response_model=QuoteSnapshot, status_code=201)
async def create_version(quote_id: str, data: VersionCreate):
    """
    Save the current state of a quote as a new version.

    Raises:
        404: Quote not found
    """
    try:
        service = get_quote_version_service()
        return service.snapshot(quote_id, notes=data.notes)

    except Exception as e:
        return handle_error(e)


@router.post("/{quote_id}/versions/{version_id}/restore", response_model=RestoreResult)
async def restore_version(quote_id: str, version_id: str):
    """
    Restore a quote to an earlier version.

    The current state is saved as a backup version first.

    Raises:
        404: Quote or version not found
        422: Version snapshot has no quote header
    """
    try:
        service = get_quote_version_service()
        return service.restore(quote_id, version_id)

    except Exception as e:
        return handle_error(e)
