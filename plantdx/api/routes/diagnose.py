from fastapi import APIRouter, Depends

from plantdx.api.deps import get_orchestrator
from plantdx.api.schemas import DiagnosisRequest, ToolResult
from plantdx.services.orchestrator import DiagnosisOrchestrator

router = APIRouter(tags=["diagnose"])


@router.post("/diagnose", response_model=ToolResult, response_model_exclude_none=True)
async def diagnose(
    req: DiagnosisRequest,
    orchestrator: DiagnosisOrchestrator = Depends(get_orchestrator),
):
    """
    Diagnose plant health from a data-URI image.

    Mirrors the diagnose_plant_health tool result: handled failures come
    back with HTTP 200 and isError=true in the body.
    """
    outcome = await orchestrator.diagnose(req)
    return outcome.to_tool_result()
