"""
Diagnosis Orchestrator - entry point of the diagnose_plant_health tool.

Runs one request through:
1. Preflight (vision client configured)
2. Image decoding (ImageCodec)
3. Crop validation (CropCatalog snapshot)
4. Prompt composition (PromptComposer)
5. Vision model call (bounded timeout)
6. Result mapping into DiagnosisSuccess / DiagnosisFailure
"""
import asyncio
import logging
from typing import Dict, Optional

from plantdx.api.schemas import (
    DiagnosisFailure,
    DiagnosisOutcome,
    DiagnosisRequest,
    DiagnosisSuccess,
    FailureKind,
)
from plantdx.core.config import AdvisoryMode, ServiceConfig
from plantdx.core.errors import DiagnosisError, UnknownCropError
from plantdx.services.crop_catalog import CropCatalog, normalize_crop_name
from plantdx.services.image_codec import decode_image
from plantdx.services.llm.gemini_client import (
    GenerationSettings,
    VisionAuthError,
    VisionQuotaError,
)
from plantdx.services.prompt_composer import PromptComposer

logger = logging.getLogger(__name__)

USER_MESSAGES: Dict[FailureKind, str] = {
    FailureKind.SERVICE_UNAVAILABLE: "Plant diagnosis service is currently unavailable. Please try again later.",
    FailureKind.UPSTREAM_AUTH_ERROR: "Plant diagnosis service configuration error. Please contact support.",
    FailureKind.UPSTREAM_QUOTA_EXCEEDED: (
        "Plant diagnosis service is temporarily unavailable due to high demand. Please try again later."
    ),
    FailureKind.UPSTREAM_UNKNOWN_ERROR: (
        "Unable to analyze the plant image. Please ensure the image clearly shows the plant and try again."
    ),
}

AUTH_MARKERS = ("api key", "api_key", "permission", "unauthenticated", "credential")
QUOTA_MARKERS = ("quota", "rate limit", "resource exhausted", "resource_exhausted", "too many requests")

GENERATION_SETTINGS: Dict[AdvisoryMode, GenerationSettings] = {
    AdvisoryMode.FULL_ADVISORY: GenerationSettings(max_output_tokens=2048),
    AdvisoryMode.DIAGNOSIS_ONLY: GenerationSettings(max_output_tokens=1024),
}


def classify_upstream_error(exc: BaseException) -> FailureKind:
    if isinstance(exc, VisionAuthError):
        return FailureKind.UPSTREAM_AUTH_ERROR
    if isinstance(exc, VisionQuotaError):
        return FailureKind.UPSTREAM_QUOTA_EXCEEDED

    message = str(exc).lower()
    if any(m in message for m in AUTH_MARKERS):
        return FailureKind.UPSTREAM_AUTH_ERROR
    if any(m in message for m in QUOTA_MARKERS):
        return FailureKind.UPSTREAM_QUOTA_EXCEEDED
    return FailureKind.UPSTREAM_UNKNOWN_ERROR


def failure(kind: FailureKind, message: Optional[str] = None) -> DiagnosisFailure:
    return DiagnosisFailure(kind=kind, user_message=message or USER_MESSAGES[kind])


class DiagnosisOrchestrator:
    """
    Coordinates a single plant diagnosis.

    Holds no per-request state, so one instance serves concurrent requests.

    Usage:
        orchestrator = DiagnosisOrchestrator(config, catalog, vision_client)
        outcome = await orchestrator.diagnose(DiagnosisRequest(image=data_uri))
    """

    def __init__(
        self,
        config: ServiceConfig,
        catalog: CropCatalog,
        vision_client,
        composer: Optional[PromptComposer] = None,
        timeout_seconds: float = 60,
    ):
        self.config = config
        self.catalog = catalog
        self.vision_client = vision_client
        self.composer = composer or PromptComposer(config)
        self.timeout_seconds = timeout_seconds
        self.generation = GENERATION_SETTINGS[config.advisory_mode]

    def validate_crop(self, crop: Optional[str]) -> Optional[str]:
        """
        Normalize crop and check it against the current catalog snapshot.

        An empty snapshot accepts any crop as free text.
        """
        if crop is None or not crop.strip():
            return None

        normalized = normalize_crop_name(crop)
        snapshot = self.catalog.snapshot
        if snapshot.size and not snapshot.contains(normalized):
            raise UnknownCropError(
                f"Unrecognized crop {crop!r}. Please use one of the supported crop identifiers."
            )
        return normalized

    async def diagnose(self, request: DiagnosisRequest) -> DiagnosisOutcome:
        logger.info(
            "diagnose_plant_health called" + (f" for crop: {request.crop!r}" if request.crop else "")
        )

        if not self.vision_client.configured:
            logger.warning("Diagnosis rejected: vision model not configured")
            return failure(FailureKind.SERVICE_UNAVAILABLE)

        try:
            image = decode_image(request.image, self.config.max_image_size_mb)
            crop = self.validate_crop(request.crop)
        except DiagnosisError as e:
            logger.info(f"Diagnosis rejected ({e.kind.value}): {e.user_message}")
            return failure(e.kind, e.user_message)

        logger.info(
            f"Analyzing image ({image.size_mb:.2f}MB, {image.mime_type})"
            + (f" for {crop}" if crop else "")
        )
        prompt = self.composer.compose(crop)

        try:
            text = await asyncio.wait_for(
                self.vision_client.generate(prompt, image, self.generation, timeout=self.timeout_seconds),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Vision model timed out after {self.timeout_seconds}s")
            return failure(FailureKind.UPSTREAM_UNKNOWN_ERROR)
        except Exception as e:
            kind = classify_upstream_error(e)
            logger.error(f"Vision model call failed ({kind.value}): {e}")
            return failure(kind)

        if not isinstance(text, str) or not text.strip():
            logger.error("Vision model returned an empty report")
            return failure(FailureKind.UPSTREAM_UNKNOWN_ERROR)

        logger.info("Diagnosis completed successfully")
        return DiagnosisSuccess(report_text=text)
