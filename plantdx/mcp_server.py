"""
MCP tool surface for plant diagnosis.
"""
from typing import Annotated, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from plantdx.api.schemas import DiagnosisRequest
from plantdx.services.crop_catalog import CropCatalog
from plantdx.services.orchestrator import DiagnosisOrchestrator

SERVER_NAME = "gap-plant-diagnosis"
TOOL_NAME = "diagnose_plant_health"

IMAGE_DESCRIPTION = "Base64 data URI of the plant photo (JPEG, PNG, WebP). Max {max_mb:g}MB."
CROP_DESCRIPTION = "Crop identifier (optional, helps improve accuracy), e.g. maize, sweet_potato"


async def run_diagnosis_tool(
    orchestrator: DiagnosisOrchestrator,
    image: str,
    crop: Optional[str] = None,
) -> str:
    """Run one diagnosis; failures surface as ToolError carrying only the fixed user message."""
    outcome = await orchestrator.diagnose(DiagnosisRequest(image=image or "", crop=crop))
    if not outcome.ok:
        raise ToolError(outcome.user_message)
    return outcome.report_text


def build_mcp(orchestrator: DiagnosisOrchestrator, catalog: CropCatalog) -> FastMCP:
    mcp = FastMCP(name=SERVER_NAME)
    image_help = IMAGE_DESCRIPTION.format(max_mb=orchestrator.config.max_image_size_mb)

    async def diagnose_plant_health(
        image: Annotated[str, Field(description=image_help)],
        crop: Annotated[Optional[str], Field(description=CROP_DESCRIPTION)] = None,
    ) -> str:
        return await run_diagnosis_tool(orchestrator, image, crop)

    mcp.tool(
        diagnose_plant_health,
        name=TOOL_NAME,
        description=orchestrator.composer.describe_tool(),
    )

    @mcp.resource("resource://crops")
    def supported_crops() -> dict:
        """Current crop catalog snapshot."""
        snapshot = catalog.snapshot
        return {"crops": list(snapshot.crops), "source": snapshot.source, "loaded": snapshot.loaded}

    return mcp
