# app/infra/llm/openai_adapter.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from openai import APIStatusError, AsyncOpenAI, OpenAIError

from app.config import Settings
from app.domain.errors import UpstreamError
from app.domain.ports import LlmPort

log = logging.getLogger("aimed.llm")


class OpenAILlm(LlmPort):
    """
    Chat-completions client for any OpenAI-compatible endpoint (K2 Think by default).

    `complete` never raises: timeouts, HTTP errors and empty choices all come back
    as None so one failed pair cannot break a batch. `chat` is the raw pass-through
    behind /k2/chat and raises UpstreamError instead.
    """

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self.settings.llm_configured or self._client is not None

    @property
    def model(self) -> str:
        return self.settings.llm_model

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.llm_api_key,
                base_url=self.settings.llm_base_url,
                timeout=self.settings.llm_timeout,
                max_retries=0,
            )
        return self._client

    async def complete(self, *, system: str, user: str, temperature: Optional[float] = None) -> Optional[str]:
        if not self.configured:
            return None
        client = self._ensure_client()
        try:
            rsp = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self.settings.llm_temperature if temperature is None else temperature,
            )
        except OpenAIError as e:
            log.warning("completion failed: %s", e.__class__.__name__)
            return None
        if not rsp.choices:
            log.warning("completion returned no choices")
            return None
        content = rsp.choices[0].message.content
        if not content:
            log.warning("completion returned empty content")
            return None
        return content

    async def chat(self, messages: List[Dict[str, Any]], model: Optional[str] = None) -> Dict[str, Any]:
        # pass-through for clients that build their own conversation
        client = self._ensure_client()
        try:
            rsp = await client.chat.completions.create(model=model or self.model, messages=messages)
        except APIStatusError as e:
            log.warning("chat failed upstream: %s", e.status_code)
            raise UpstreamError(e.status_code, e.body) from e
        except OpenAIError as e:
            log.warning("chat failed: %s", e.__class__.__name__)
            raise UpstreamError() from e
        return rsp.model_dump(exclude_none=True)
