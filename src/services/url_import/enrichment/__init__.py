"""Deterministic and AI-assisted enrichment passes."""

from .ai import PydanticAIInferenceBackend, apply_suggestions, enrich_with_ai
from .deterministic import enrich_deterministically


__all__ = [
    "PydanticAIInferenceBackend",
    "apply_suggestions",
    "enrich_deterministically",
    "enrich_with_ai",
]
