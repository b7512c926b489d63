# app/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from app.domain.errors import ConfigError


def env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _split_csv(raw: str) -> List[str]:
    return [o.strip().rstrip("/") for o in (raw or "").split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration, built once at startup and handed to each component.

    Nothing else in the codebase reads os.environ directly; the container and the
    ingestion jobs construct a Settings and pass it down.
    """
    # ── Storage ──────────────────────────────────────────────────
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "aimed"

    # ── External model (OpenAI-compatible chat completions) ──────
    llm_base_url: str = "https://api.k2think.ai/v1"
    llm_api_key: str = ""
    llm_model: str = "MBZUAI-IFM/K2-Think-v2"
    llm_temperature: float = 0.3
    llm_timeout: float = 30.0
    reasoning_marker: str = "</think>"

    # ── Prediction policy ────────────────────────────────────────
    predict_min_interval: float = 3.0
    max_pair_items: int = 6
    persist_predictions: bool = True
    mix_predict_missing: bool = True

    # ── HTTP ─────────────────────────────────────────────────────
    port: int = 5000
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    service_api_key: str = ""
    log_level: str = "INFO"

    # ── Ingestion ────────────────────────────────────────────────
    dsld_data_dir: Optional[str] = None
    ingest_batch_size: int = 2000
    prompt_dir: str = "config/prompts"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mongo_uri=os.getenv("MONGO_URI", cls.mongo_uri),
            mongo_db=os.getenv("MONGO_DB", cls.mongo_db),
            llm_base_url=os.getenv("LLM_BASE_URL", cls.llm_base_url),
            llm_api_key=os.getenv("LLM_API_KEY") or os.getenv("K2_API_KEY", ""),
            llm_model=os.getenv("LLM_MODEL", cls.llm_model),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", str(cls.llm_temperature))),
            llm_timeout=float(os.getenv("LLM_TIMEOUT", str(cls.llm_timeout))),
            reasoning_marker=os.getenv("REASONING_MARKER", cls.reasoning_marker),
            predict_min_interval=float(os.getenv("PREDICT_MIN_INTERVAL", str(cls.predict_min_interval))),
            max_pair_items=int(os.getenv("MAX_PAIR_ITEMS", str(cls.max_pair_items))),
            persist_predictions=env_flag("PERSIST_PREDICTIONS", cls.persist_predictions),
            mix_predict_missing=env_flag("MIX_PREDICT_MISSING", cls.mix_predict_missing),
            port=int(os.getenv("PORT", str(cls.port))),
            cors_allow_origins=_split_csv(os.getenv("CORS_ALLOW_ORIGINS", "*")),
            service_api_key=os.getenv("SERVICE_API_KEY", ""),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            dsld_data_dir=os.getenv("DSLD_DATA_DIR") or None,
            ingest_batch_size=int(os.getenv("INGEST_BATCH_SIZE", str(cls.ingest_batch_size))),
            prompt_dir=os.getenv("PROMPT_DIR", cls.prompt_dir),
        )

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_key)

    @property
    def prompt_path(self) -> Path:
        p = Path(self.prompt_dir)
        if p.is_absolute() or p.exists():
            return p
        # relative to the repo root when started from elsewhere
        return Path(__file__).resolve().parent.parent / self.prompt_dir

    def require(self, *names: str) -> None:
        """Raise ConfigError naming every listed setting that is empty."""
        missing = [n for n in names if not getattr(self, n, None)]
        if missing:
            raise ConfigError("missing required configuration: " + ", ".join(n.upper() for n in missing))
