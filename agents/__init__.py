"""Text-generation stages for the Stancecheck pipeline.

OpenRouterBackend:
    PydanticAI agents over OpenRouter's OpenAI-compatible API, with a
    per-call deadline and budget ledger recording.

Summarizer:
    Batched, budget-aware statement summarization with a deterministic
    local fallback for every statement the backend does not cover.

ContradictionDetector:
    AI contradiction detection over all glosses, with a lexical antonym
    detector over candidate pairs as fallback.

Example:
    >>> from agents import OpenRouterBackend, Summarizer, ContradictionDetector
    >>> backend = OpenRouterBackend(config, ledger)
    >>> summarizer = Summarizer(config, backend, ledger)
"""

from agents.backend import OpenRouterBackend, TextBackend
from agents.detector import ContradictionDetector, DetectionResult
from agents.summarizer import SummarizationResult, Summarizer

__all__ = [
    "OpenRouterBackend",
    "TextBackend",
    "ContradictionDetector",
    "DetectionResult",
    "SummarizationResult",
    "Summarizer",
]
