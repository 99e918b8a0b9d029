from typing import List, Optional

from pydantic import BaseModel

from wpsearch.catalog.models import CacheEntrySummary


class BaseResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class HealthResponse(BaseResponse):
    timestamp: str
    version: str
    upstream_url: str


class CacheClearResponse(BaseResponse):
    deleted: int
    timestamp: str


class CacheDebugResponse(BaseModel):
    total_transients: int
    transients: List[CacheEntrySummary]
