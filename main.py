# main.py
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.container import get_settings, get_catalog_repo, get_interaction_repo
from app.domain.errors import StoreUnavailable
from app.presentation.routers import router as api_router
from app.presentation.health import router as health_router

settings = get_settings()

# logging first, before anything logs
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# own request logger, not uvicorn.access
app_logger = logging.getLogger("aimed.request")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # the API still serves (with db="down" / database_unavailable) if Mongo is away
    try:
        await get_catalog_repo().ensure_indexes()
        await get_interaction_repo().ensure_indexes()
    except StoreUnavailable:
        app_logger.warning("index setup skipped: store unavailable")
    if not settings.llm_configured:
        app_logger.warning("LLM_API_KEY not set: prediction and recommendations run in fallback mode")
    yield


app = FastAPI(title="AIMED", version="0.1.0", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    app_logger.info("Incoming %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        app_logger.info("Completed %s %s -> %s", request.method, request.url.path, response.status_code)
        return response
    except Exception:
        app_logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        raise

# ─────────────────────────────────────────────────────────────
# CORS (env: CORS_ALLOW_ORIGINS="https://foo.com,https://bar.com")
# ─────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials="*" not in settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────
app.include_router(health_router, tags=["health"])
app.include_router(api_router, tags=["api"])

@app.get("/")
async def root():
    return {"name": "AIMED", "version": app.version, "ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
