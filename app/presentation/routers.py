# app/presentation/routers.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.infra.api.security import require_api_key
from app.domain.errors import StoreUnavailable, UpstreamError
from app.domain.ports import CatalogRepoPort, LlmPort

from app.presentation.schemas import (
    ProductList, IngredientList,
    MixRequest, MixResponse,
    PredictRequest, PredictResponse,
    CompareRequest, CompareResponse,
    RecommendationRequest, RecommendationResponse,
    ChatRequest,
)

from app.container import (
    get_catalog_repo, get_llm, get_mix_uc, get_compare_uc, get_predict_uc, get_recommend_uc,
)
from app.application.mix_use_case import MixUseCase
from app.application.compare_use_case import CompareUseCase
from app.application.predict_interactions_use_case import PredictInteractionsUseCase
from app.application.recommend_use_case import RecommendUseCase

# ──────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────
logger = logging.getLogger("aimed.api")

MAX_PRODUCT_LIMIT = 100

# Expected absence-of-data comes back as 200 with an `error` code; see schemas.
router = APIRouter(dependencies=[Depends(require_api_key)])

# ── CATALOG ───────────────────────────────────────────────────────
@router.get("/products", response_model=ProductList, response_model_exclude_none=True)
async def list_products(q: str = "", limit: int = 20, catalog: CatalogRepoPort = Depends(get_catalog_repo)):
    limit = min(max(limit, 1), MAX_PRODUCT_LIMIT)
    try:
        items = await catalog.search_products(q, limit=limit)
    except StoreUnavailable:
        return ProductList(items=[], error="database_unavailable")
    return ProductList(items=items)

@router.get("/ingredients", response_model=IngredientList, response_model_exclude_none=True)
async def list_ingredients(q: str = "", catalog: CatalogRepoPort = Depends(get_catalog_repo)):
    if not q.strip():
        return IngredientList(items=[])
    try:
        items = await catalog.search_ingredients(q, limit=20)
    except StoreUnavailable:
        return IngredientList(items=[], error="database_unavailable")
    return IngredientList(items=items)

# ── MIX ───────────────────────────────────────────────────────────
@router.post("/mix", response_model=MixResponse, response_model_exclude_none=True)
async def mix(req: MixRequest, uc: MixUseCase = Depends(get_mix_uc)):
    out = await uc.run(req.items)
    logger.info("[mix] items=%d resolved=%d interactions=%d error=%s",
        len(req.items), len(out["resolved"]), len(out["interactions"]), out.get("error"))
    return out

# ── COMPARE ───────────────────────────────────────────────────────
@router.post("/compare", response_model=CompareResponse, response_model_exclude_none=True)
async def compare(req: CompareRequest, uc: CompareUseCase = Depends(get_compare_uc)):
    return await uc.run(req.products)

# ── PREDICT ───────────────────────────────────────────────────────
@router.post("/predict-interactions", response_model=PredictResponse, response_model_exclude_none=True)
async def predict_interactions(req: PredictRequest, uc: PredictInteractionsUseCase = Depends(get_predict_uc)):
    out = await uc.run(req.items)
    logger.info("[predict] items=%d interactions=%d error=%s",
        len(req.items), len(out["interactions"]), out.get("error"))
    return out

# ── RECOMMENDATIONS ───────────────────────────────────────────────
@router.post("/recommendations", response_model=RecommendationResponse, response_model_exclude_none=True)
async def recommendations(req: RecommendationRequest, uc: RecommendUseCase = Depends(get_recommend_uc)):
    return await uc.run(
        symptoms=req.symptoms,
        medications=req.medications,
        supplements=req.supplements,
        considerations=req.medicalConsiderations.model_dump(),
        preferences=req.preferences.model_dump(),
    )

# ── K2 CHAT ───────────────────────────────────────────────────────
# Raw pass-through: failures use HTTP status codes, not the 200-with-error convention.
@router.post("/k2/chat")
async def k2_chat(req: ChatRequest, llm: LlmPort = Depends(get_llm)):
    if not llm.configured:
        return JSONResponse(status_code=500, content={"error": "missing_k2_api_key"})
    messages = req.messages
    if not isinstance(messages, list) or not messages or not all(isinstance(m, dict) for m in messages):
        return JSONResponse(status_code=400, content={"error": "messages_required"})
    try:
        return await llm.chat(messages, model=req.model)
    except UpstreamError as e:
        logger.warning("[k2/chat] upstream status=%s", e.status)
        if e.status is None:
            return JSONResponse(status_code=500, content={"error": "k2_request_error"})
        return JSONResponse(status_code=e.status, content={"error": "k2_request_failed", "details": e.details})
