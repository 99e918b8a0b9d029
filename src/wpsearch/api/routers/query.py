import traceback
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.logger import logger
from fastapi.responses import JSONResponse

from wpsearch.api.dtos import HealthResponse
from wpsearch.catalog.errors import BrowseError
from wpsearch.catalog.service import BrowseService
from wpsearch.config.settings import config
from wpsearch.version import get_version

router = APIRouter(prefix="/wordpress-plugin-search/v1", tags=["Plugin Search"])


# Parameters are taken as raw strings: out-of-range values are clamped by the
# service rather than rejected here.
@router.get("/query")
def query_plugins(
    action: Optional[str] = Query(None, description="Must be 'query_plugins'"),
    search: Optional[str] = Query(None, description="Free text search term"),
    browse: Optional[str] = Query(None, description="popular, new or updated"),
    per_page: Optional[str] = Query(None, description="Results per page (1-100)"),
    page: Optional[str] = Query(None, description="Page number (>= 1)"),
):
    params = {
        "action": action,
        "search": search,
        "browse": browse,
        "per_page": per_page,
        "page": page,
    }
    try:
        service = BrowseService()
        response = service.browse(params)
        return JSONResponse(content=response.to_payload())
    except BrowseError as exc:
        logger.warning(f"Plugin query failed ({exc.code}): {exc.message}")
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    except Exception as e:
        logger.error(f"Error querying plugins: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/test", response_model=HealthResponse)
def test_endpoint():
    return HealthResponse(
        message="Plugin search API is working",
        timestamp=datetime.now().isoformat(timespec="seconds"),
        version=get_version(),
        upstream_url=config.upstream_url,
    )
