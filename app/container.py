# app/container.py
from functools import lru_cache

from fastapi import Depends

from app.config import Settings
from app.domain.ports import CatalogRepoPort, InteractionRepoPort, LlmPort
from app.infra.llm.openai_adapter import OpenAILlm
from app.infra.rate_limit import RateLimiter
from app.infra.repo.mongo_repo import MongoCatalogRepo, MongoInteractionRepo, open_database
from app.services.prompt_service import PromptService

from app.application.compare_use_case import CompareUseCase
from app.application.lookup_use_case import InteractionLookup
from app.application.mix_use_case import MixUseCase
from app.application.predict_interactions_use_case import PredictInteractionsUseCase
from app.application.predict_use_case import InteractionPredictor
from app.application.recommend_use_case import RecommendUseCase
from app.application.resolve_use_case import CatalogResolver

# Long-lived adapters are cached; use cases are cheap and built per request from
# the dependencies below, so tests can swap any port via app.dependency_overrides.

@lru_cache
def get_settings() -> Settings: return Settings.from_env()

@lru_cache
def _db(): return open_database(get_settings())

@lru_cache
def _catalog() -> MongoCatalogRepo: return MongoCatalogRepo(_db())

@lru_cache
def _interactions() -> MongoInteractionRepo: return MongoInteractionRepo(_db())

@lru_cache
def _llm() -> OpenAILlm: return OpenAILlm(get_settings())

@lru_cache
def _prompts(prompt_dir: str) -> PromptService: return PromptService(prompt_dir)

@lru_cache
def _limiter(min_interval: float) -> RateLimiter: return RateLimiter(min_interval)

def get_catalog_repo() -> CatalogRepoPort: return _catalog()
def get_interaction_repo() -> InteractionRepoPort: return _interactions()
def get_llm() -> LlmPort: return _llm()

def get_prompt_service(settings: Settings = Depends(get_settings)) -> PromptService:
    return _prompts(str(settings.prompt_path))

def get_rate_limiter(settings: Settings = Depends(get_settings)) -> RateLimiter:
    return _limiter(settings.predict_min_interval)

def get_resolver(catalog: CatalogRepoPort = Depends(get_catalog_repo)) -> CatalogResolver:
    return CatalogResolver(catalog)

def get_predictor(
    settings: Settings = Depends(get_settings),
    llm: LlmPort = Depends(get_llm),
    prompts: PromptService = Depends(get_prompt_service),
    interactions: InteractionRepoPort = Depends(get_interaction_repo),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> InteractionPredictor:
    return InteractionPredictor(
        llm, prompts, interactions,
        limiter=limiter,
        reasoning_marker=settings.reasoning_marker,
        persist=settings.persist_predictions,
    )

def get_mix_uc(
    settings: Settings = Depends(get_settings),
    resolver: CatalogResolver = Depends(get_resolver),
    catalog: CatalogRepoPort = Depends(get_catalog_repo),
    interactions: InteractionRepoPort = Depends(get_interaction_repo),
    predictor: InteractionPredictor = Depends(get_predictor),
) -> MixUseCase:
    return MixUseCase(
        resolver, InteractionLookup(interactions, catalog), predictor,
        predict_missing=settings.mix_predict_missing,
        max_items=settings.max_pair_items,
    )

def get_compare_uc(
    resolver: CatalogResolver = Depends(get_resolver),
    catalog: CatalogRepoPort = Depends(get_catalog_repo),
) -> CompareUseCase:
    return CompareUseCase(resolver, catalog)

def get_predict_uc(
    settings: Settings = Depends(get_settings),
    resolver: CatalogResolver = Depends(get_resolver),
    predictor: InteractionPredictor = Depends(get_predictor),
) -> PredictInteractionsUseCase:
    return PredictInteractionsUseCase(resolver, predictor, max_items=settings.max_pair_items)

def get_recommend_uc(
    settings: Settings = Depends(get_settings),
    llm: LlmPort = Depends(get_llm),
    prompts: PromptService = Depends(get_prompt_service),
) -> RecommendUseCase:
    return RecommendUseCase(llm, prompts, reasoning_marker=settings.reasoning_marker)
