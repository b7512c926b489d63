# app/infra/api/security.py
from fastapi import Depends, HTTPException, status
from fastapi.security.api_key import APIKeyHeader
import logging

from app.config import Settings
from app.container import get_settings

log = logging.getLogger("aimed.api")

API_KEY_NAME = "X-Api-Key"
_api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


async def require_api_key(
    api_key: str = Depends(_api_key_header),
    settings: Settings = Depends(get_settings),
):
    """No-op unless SERVICE_API_KEY is set; then every call must carry it."""
    if not settings.service_api_key:
        return
    if not api_key or api_key != settings.service_api_key:
        log.warning("Auth fail: missing or wrong %s", API_KEY_NAME)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
