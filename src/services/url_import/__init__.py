"""URL-to-place import pipeline.

Turns a pasted URL (map link, review page, pin, social post or plain
website) into a draft place record annotated with per-field confidence.
"""

from .models import ImportResult
from .pipeline import ImportPipeline


__all__ = ["ImportPipeline", "ImportResult"]
