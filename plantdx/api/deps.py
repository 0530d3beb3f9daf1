from fastapi import Request

from plantdx.services.crop_catalog import CropCatalog
from plantdx.services.orchestrator import DiagnosisOrchestrator


def get_orchestrator(request: Request) -> DiagnosisOrchestrator:
    return request.app.state.orchestrator


def get_catalog(request: Request) -> CropCatalog:
    return request.app.state.catalog
