# ingestion/jobs/common.py
import logging
from typing import Tuple

from dotenv import load_dotenv

from app.config import Settings
from app.infra.repo.mongo_repo import MongoCatalogRepo, MongoInteractionRepo, open_database


def job_settings() -> Settings:
    """.env → Settings, plus the same log format the API uses."""
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return settings


async def open_repos(settings: Settings) -> Tuple[MongoCatalogRepo, MongoInteractionRepo]:
    db = open_database(settings)
    catalog, interactions = MongoCatalogRepo(db), MongoInteractionRepo(db)
    await catalog.ensure_indexes()
    await interactions.ensure_indexes()
    return catalog, interactions
