# app/domain/errors.py
from typing import Any, Optional


class StoreUnavailable(Exception):
    """Catalog/interaction store unreachable or the query failed."""


class LookupFailed(StoreUnavailable):
    """Stored-interaction query failed; callers may fall back to prediction."""


class DuplicateRecord(Exception):
    """Insert rejected by a uniqueness constraint."""


class ConfigError(Exception):
    pass


class UpstreamError(Exception):
    """Model endpoint call failed; `status` is the upstream HTTP status, None when it never answered."""

    def __init__(self, status: Optional[int] = None, details: Any = None):
        super().__init__(f"upstream status {status}")
        self.status = status
        self.details = details
