from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wpsearch.catalog.models import MAX_PER_PAGE, BrowseMode, CatalogItem
from wpsearch.catalog.sanitizer import coerce_int, sanitize_text_field

DEFAULT_RESULTS_PER_PAGE = 12


class PluginListing(CatalogItem):
    """A catalog item as shown by the widget, with its guessed screenshot URLs."""

    screenshots: List[str] = Field(default_factory=list)


class BrowseState(BaseModel):
    current_page: int = 1
    per_page: int = DEFAULT_RESULTS_PER_PAGE
    sort: BrowseMode = BrowseMode.POPULAR
    only_with_screenshots: bool = False
    plugins: List[PluginListing] = Field(default_factory=list)
    total_results: int = 0
    has_more_pages: bool = False
    is_loading: bool = False
    is_loading_more: bool = False
    error: Optional[str] = None
    # slug -> first screenshot loaded; kept for the controller's lifetime
    screenshot_cache: Dict[str, bool] = Field(default_factory=dict)


class BlockAttributes(BaseModel):
    """Attributes a site stores on one embedded widget block."""

    model_config = ConfigDict(populate_by_name=True)

    search_term: str = Field("", alias="searchTerm")
    results_per_page: int = Field(DEFAULT_RESULTS_PER_PAGE, alias="resultsPerPage")
    default_sort: BrowseMode = Field(BrowseMode.POPULAR, alias="defaultSort")
    show_filters: bool = Field(True, alias="showFilters")

    @field_validator("search_term", mode="before")
    @classmethod
    def _clean_search_term(cls, value: Any) -> str:
        return sanitize_text_field(value) or ""

    @field_validator("results_per_page", mode="before")
    @classmethod
    def _clamp_results_per_page(cls, value: Any) -> int:
        number = coerce_int(value)
        if not number:
            return DEFAULT_RESULTS_PER_PAGE
        return max(1, min(MAX_PER_PAGE, number))

    @field_validator("default_sort", mode="before")
    @classmethod
    def _known_sort(cls, value: Any) -> BrowseMode:
        try:
            return BrowseMode(value)
        except ValueError:
            return BrowseMode.POPULAR

    @field_validator("show_filters", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        if isinstance(value, str):
            return value.strip().lower() not in ("false", "0", "no", "")
        return bool(value) if value is not None else True


def parse_last_updated(value: Optional[str]) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        # Directory format, e.g. "2024-05-01 3:12pm GMT"
        for fmt, text in (("%Y-%m-%d %I:%M%p GMT", value), ("%Y-%m-%d", value[:10])):
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_hidden_gem(plugin: CatalogItem, now: Optional[datetime] = None) -> bool:
    """Well rated, not widely installed and updated within the last year."""
    now = now or datetime.now(timezone.utc)
    has_good_rating = plugin.rating is not None and plugin.rating >= 80
    has_low_installs = not plugin.active_installs or plugin.active_installs < 10000
    updated = parse_last_updated(plugin.last_updated)
    has_recent_update = updated is not None and updated > now - timedelta(days=365)
    return has_good_rating and has_low_installs and has_recent_update
