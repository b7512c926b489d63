# ingestion/http_client.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx

UA = "AIMED-ingest/0.1 (+contact)"
TIMEOUT = 30.0
RETRY_STATUS = (429, 503)
RETRY_SLEEP = 2.0

log = logging.getLogger("aimed.ingest.http")


@asynccontextmanager
async def client(transport: Optional[httpx.AsyncBaseTransport] = None):
    """Shared AsyncClient for one job run; tests pass an httpx.MockTransport."""
    headers = {"User-Agent": UA, "Accept": "application/json"}
    async with httpx.AsyncClient(headers=headers, timeout=TIMEOUT, follow_redirects=True, transport=transport) as c:
        yield c


async def fetch_json(c: httpx.AsyncClient, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """GET → decoded JSON. One retry on 429/503; other HTTP errors raise httpx.HTTPStatusError."""
    r = await c.get(url, params=params)
    if r.status_code in RETRY_STATUS:
        log.info("%s -> %s, retrying once", url, r.status_code)
        await asyncio.sleep(RETRY_SLEEP)
        r = await c.get(url, params=params)
    r.raise_for_status()
    return r.json()
