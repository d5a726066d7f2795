from typing import Annotated

from fastapi import APIRouter, Depends

from core.config import Settings, get_settings
from schemas.api import ApiResponse


router = APIRouter()


@router.get("/health", response_model=ApiResponse[dict[str, str]])
def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[dict[str, str]]:
    """Health check endpoint for monitoring and load balancer health checks.

    Also reports which optional providers are configured, without exposing keys.
    """

    def _state(key: str | None) -> str:
        return "configured" if key else "disabled"

    return ApiResponse(
        success=True,
        data={
            "status": "healthy",
            "message": f"{settings.APP_NAME} API is running",
            "google_places": _state(settings.GOOGLE_MAPS_API_KEY),
            "yelp": _state(settings.YELP_API_KEY),
            "ai_enrichment": _state(settings.GEMINI_API_KEY),
        },
        message="Health check successful",
    )
