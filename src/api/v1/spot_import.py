"""API endpoint for importing a place from a pasted URL."""

from typing import Annotated

from fastapi import APIRouter, Depends

from core.error_handler import StructuredLogger
from dependencies.url_import import get_import_pipeline
from schemas.api import ApiResponse
from schemas.spot_import import SpotImportRequest
from services.url_import import ImportPipeline, ImportResult


router = APIRouter(prefix="/spot-import", tags=["spot-import"])
logger = StructuredLogger(__name__)


@router.post(
    "",
    summary="Import a place from a URL",
    response_model=ApiResponse[ImportResult],
    description=(
        "Classify the link, extract a draft place with the matching provider "
        "strategy and enrich missing fields. Every field carries a confidence "
        "level; `requires_confirmation` is true unless name, city, country and "
        "coordinates are all high confidence."
    ),
    responses={
        200: {"description": "Draft extracted (possibly degraded, see warnings)"},
        400: {"description": "The URL is malformed or not allowed"},
        502: {"description": "Every extraction fallback failed"},
    },
)
async def import_spot(
    request: SpotImportRequest,
    pipeline: Annotated[ImportPipeline, Depends(get_import_pipeline)],
) -> ApiResponse[ImportResult]:
    """Return the draft and extraction metadata for ``request.url``.

    Raises:
        URLValidationError: Mapped to 400 by the global exception handler
        ExtractionFailedError: Mapped to 502 by the global exception handler
    """
    result = await pipeline.import_from_url(request.url)
    logger.info(
        "Spot import completed",
        provider=result.meta.provider.value,
        method=result.meta.method,
        requires_confirmation=result.meta.requires_confirmation,
        warning_count=len(result.meta.warnings),
    )
    message = (
        "Draft extracted; please confirm the details"
        if result.meta.requires_confirmation
        else "Draft extracted"
    )
    return ApiResponse(data=result, message=message)
