from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


QUERY_ACTION = "query_plugins"
MAX_PER_PAGE = 100
DEFAULT_PER_PAGE = 100


class BrowseMode(str, Enum):
    POPULAR = "popular"
    NEW = "new"
    UPDATED = "updated"


class Query(BaseModel):
    model_config = ConfigDict(frozen=True)

    search: Optional[str] = None
    browse: BrowseMode = BrowseMode.POPULAR
    per_page: int = Field(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE)
    page: int = Field(1, ge=1)


class CatalogItem(BaseModel):
    slug: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None
    author_profile: Optional[str] = None
    requires: Optional[str] = None
    tested: Optional[str] = None
    requires_php: Optional[str] = None
    last_updated: Optional[str] = None
    added: Optional[str] = None
    homepage: Optional[str] = None
    download_link: Optional[str] = None
    name: Optional[str] = None
    short_description: Optional[str] = None
    rating: Optional[int] = Field(None, ge=0, le=100)
    num_ratings: Optional[int] = None
    active_installs: Optional[int] = None
    downloaded: Optional[int] = None
    icons: Optional[Dict[str, str]] = None


class CatalogInfo(BaseModel):
    results: int = 0
    page: Optional[int] = None
    pages: Optional[int] = None


class CatalogResponse(BaseModel):
    plugins: List[CatalogItem] = Field(default_factory=list)
    info: CatalogInfo = Field(default_factory=CatalogInfo)

    def to_payload(self) -> Dict:
        """JSON-ready dict with absent fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)


class CacheEntrySummary(BaseModel):
    key: str
    has_data: bool
    plugin_count: int = 0
    expires_at: int
