from plantdx.services.llm.gemini_client import (
    GeminiVisionClient,
    GenerationSettings,
    VisionAuthError,
    VisionModelError,
    VisionQuotaError,
)

__all__ = [
    "GeminiVisionClient",
    "GenerationSettings",
    "VisionAuthError",
    "VisionModelError",
    "VisionQuotaError",
]
