from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from plantdx.api.deps import get_catalog
from plantdx.api.schemas import CropListResponse
from plantdx.services.crop_catalog import CropCatalog

router = APIRouter(tags=["crops"])


def _as_response(catalog: CropCatalog) -> CropListResponse:
    snapshot = catalog.snapshot
    return CropListResponse(
        crops=list(snapshot.crops),
        total=snapshot.size,
        source=snapshot.source,
        loaded=snapshot.loaded,
    )


@router.get("/crops", response_model=CropListResponse)
def list_crops(catalog: CropCatalog = Depends(get_catalog)):
    """List the crop identifiers accepted by the diagnosis tool."""
    return _as_response(catalog)


@router.post("/crops/refresh", response_model=CropListResponse)
async def refresh_crops(catalog: CropCatalog = Depends(get_catalog)):
    """Re-fetch the crop catalog. Falls back to the static list on failure."""
    await run_in_threadpool(catalog.refresh)
    return _as_response(catalog)
