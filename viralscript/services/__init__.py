"""
Services layer for the ViralScript studio.

Provides clean separation between prompt construction (prompt_compiler),
model access (GeminiGateway + resilience), response handling
(response_normalizer + schemas), and the operation services built on them.
"""

from .models import (
    WritingMode,
    PersonaProfile,
    Segment,
    Citation,
    ScriptDocument,
    AnalysisResult,
    GeneratorConfig,
    GeneratedImage,
)

__all__ = [
    "WritingMode",
    "PersonaProfile",
    "Segment",
    "Citation",
    "ScriptDocument",
    "AnalysisResult",
    "GeneratorConfig",
    "GeneratedImage",
]
