import hmac
import traceback
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.logger import logger

from wpsearch.api.dtos import CacheClearResponse, CacheDebugResponse
from wpsearch.cache.store import QueryCache
from wpsearch.config.settings import config
from wpsearch.db.session import get_db_manager


def require_admin(x_admin_token: Optional[str] = Header(None)):
    if not config.admin_token:
        return
    if not x_admin_token or not hmac.compare_digest(x_admin_token, config.admin_token):
        raise HTTPException(status_code=401, detail="Invalid admin token")


router = APIRouter(
    prefix="/wordpress-plugin-search/v1",
    tags=["Plugin Search Cache"],
    dependencies=[Depends(require_admin)],
)


def _cache() -> QueryCache:
    return QueryCache(get_db_manager(), config.cache_prefix)


@router.post("/clear-cache", response_model=CacheClearResponse)
def clear_cache():
    try:
        deleted = _cache().clear_namespace()
        return CacheClearResponse(
            message="Plugin search cache cleared",
            deleted=deleted,
            timestamp=datetime.now().isoformat(timespec="seconds"),
        )
    except Exception as e:
        logger.error(f"Error clearing plugin search cache: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/cache-debug", response_model=CacheDebugResponse)
def cache_debug():
    try:
        entries = _cache().list_entries()
        return CacheDebugResponse(total_transients=len(entries), transients=entries)
    except Exception as e:
        logger.error(f"Error listing plugin search cache: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))
