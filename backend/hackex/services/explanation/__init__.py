from hackex.services.explanation.backend import OpenAIExplanationBackend
from hackex.services.explanation.parser import parse_explanation
from hackex.services.explanation.service import ExplanationService
from hackex.services.explanation.templates import FALLBACK_TEMPLATES, fallback_for

__all__ = [
    "ExplanationService",
    "FALLBACK_TEMPLATES",
    "OpenAIExplanationBackend",
    "fallback_for",
    "parse_explanation",
]
