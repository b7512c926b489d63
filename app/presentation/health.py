# app/presentation/health.py
from fastapi import APIRouter, Depends

from app.container import get_catalog_repo, get_llm
from app.domain.ports import CatalogRepoPort, LlmPort
from app.presentation.schemas import HealthResponse

router = APIRouter()

@router.get("/health", response_model=HealthResponse)
async def health(catalog: CatalogRepoPort = Depends(get_catalog_repo), llm: LlmPort = Depends(get_llm)):
    # liveness stays ok even when the store is down; `db` tells the UI which
    up = await catalog.ping()
    return HealthResponse(ok=True, db="up" if up else "down", llm_configured=llm.configured)
