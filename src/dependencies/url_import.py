"""FastAPI dependency providing the URL import pipeline.

Override ``get_import_pipeline`` in tests to inject a pipeline built around
an ``httpx.MockTransport`` client or a fake inference backend.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from core.config import Settings, get_settings
from services.url_import import ImportPipeline


def get_import_pipeline(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImportPipeline:
    return ImportPipeline.from_settings(settings)
