import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import httpx

from wpsearch.catalog.models import MAX_PER_PAGE, QUERY_ACTION, BrowseMode, CatalogResponse
from wpsearch.widget.models import BlockAttributes, BrowseState, PluginListing
from wpsearch.widget.screenshots import ScreenshotFilter, screenshot_urls

logger = logging.getLogger(__name__)

# Over-fetch factor while the screenshot filter is on, since some plugins
# will be filtered out.
SCREENSHOT_FILTER_OVERFETCH = 3

ERROR_MESSAGES = {
    503: "WordPress.org plugin directory is temporarily unavailable. Please try again later.",
    502: "Unable to connect to plugin directory. Please check your internet connection.",
    404: "Search service not found. Please refresh the page and try again.",
}
NETWORK_ERROR_MESSAGE = "Network error. Please check your internet connection."
DEFAULT_ERROR_MESSAGE = "Failed to search plugins."


class FetchOutcome(str, Enum):
    COMMITTED = "committed"
    SUPERSEDED = "superseded"
    FAILED = "failed"


def describe_error(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return ERROR_MESSAGES.get(exc.response.status_code, DEFAULT_ERROR_MESSAGE)
    if isinstance(exc, httpx.TransportError):
        return NETWORK_ERROR_MESSAGE
    return DEFAULT_ERROR_MESSAGE


class BrowseController:
    """Paginated browsing state for one widget instance.

    Only the most recent request may change state: starting a fetch cancels the
    one in flight, and every result is checked against the current generation
    before it is committed.
    """

    def __init__(
        self,
        endpoint_url: str,
        http: httpx.AsyncClient,
        attributes: Optional[BlockAttributes] = None,
        screenshot_base_url: Optional[str] = None,
    ):
        self.endpoint_url = endpoint_url
        self.http = http
        self.attributes = attributes or BlockAttributes()
        self.screenshot_base_url = screenshot_base_url
        self.state = BrowseState(
            per_page=self.attributes.results_per_page,
            sort=self.attributes.default_sort,
        )
        self.screenshots = ScreenshotFilter(
            http, self.state.screenshot_cache, base_url=screenshot_base_url
        )
        self._current_request: Optional[asyncio.Task] = None
        self._generation = 0

    def _begin(self) -> int:
        self._generation += 1
        if self._current_request is not None and not self._current_request.done():
            self._current_request.cancel()
        self._current_request = None
        return self._generation

    def _reset(self):
        self.state.current_page = 1
        self.state.plugins = []
        self.state.has_more_pages = False

    def request_params(self) -> Dict[str, str]:
        per_page = self.state.per_page
        if self.state.only_with_screenshots:
            per_page = min(MAX_PER_PAGE, per_page * SCREENSHOT_FILTER_OVERFETCH)
        params = {
            "action": QUERY_ACTION,
            "browse": self.state.sort.value,
            "per_page": str(per_page),
            "page": str(self.state.current_page),
        }
        if self.attributes.search_term:
            params["search"] = self.attributes.search_term
        return params

    async def _request_page(self, params: Dict[str, str]) -> CatalogResponse:
        response = await self.http.get(
            self.endpoint_url, params=params, headers={"Accept": "application/json"}
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Invalid response format from server")
        plugins = data.get("plugins")
        return CatalogResponse.model_validate(
            {
                "plugins": plugins if isinstance(plugins, list) else [],
                "info": data.get("info") if isinstance(data.get("info"), dict) else {},
            }
        )

    def _to_listings(self, response: CatalogResponse) -> List[PluginListing]:
        return [
            PluginListing(
                **item.model_dump(exclude_none=True),
                screenshots=screenshot_urls(item.slug, self.screenshot_base_url),
            )
            for item in response.plugins
        ]

    def _merge(self, plugins: List[PluginListing], append: bool):
        if not (append and self.state.plugins):
            self.state.plugins = plugins
            return

        seen = {plugin.slug for plugin in self.state.plugins if plugin.slug}
        merged = list(self.state.plugins)
        for plugin in plugins:
            if plugin.slug and plugin.slug in seen:
                continue
            if plugin.slug:
                seen.add(plugin.slug)
            merged.append(plugin)
        self.state.plugins = merged

    async def fetch_page(self, append: bool = False) -> FetchOutcome:
        generation = self._begin()
        if not append:
            self.state.is_loading = True

        params = self.request_params()
        logger.debug("Browse params: %s", params)
        request = asyncio.ensure_future(self._request_page(params))
        self._current_request = request
        try:
            try:
                response = await request
            except asyncio.CancelledError:
                if generation != self._generation:
                    logger.debug("Discarding superseded browse request %s", params)
                    return FetchOutcome.SUPERSEDED
                raise
            except (httpx.HTTPError, ValueError) as exc:
                if generation != self._generation:
                    return FetchOutcome.SUPERSEDED
                logger.error("Browse request failed: %s", exc)
                self.state.error = describe_error(exc)
                return FetchOutcome.FAILED

            plugins = self._to_listings(response)
            if self.state.only_with_screenshots:
                plugins = await self.screenshots.filter(plugins)

            if generation != self._generation:
                logger.debug("Discarding stale browse result %s", params)
                return FetchOutcome.SUPERSEDED

            total = response.info.results
            self.state.total_results = total
            self.state.has_more_pages = self.state.current_page * self.state.per_page < total
            self._merge(plugins, append)
            self.state.error = None
            return FetchOutcome.COMMITTED
        finally:
            if generation == self._generation:
                self.state.is_loading = False
                self._current_request = None

    async def load(self) -> FetchOutcome:
        return await self.fetch_page(append=False)

    async def load_more(self) -> Optional[FetchOutcome]:
        if (
            not self.state.has_more_pages
            or self.state.is_loading_more
            or self.state.is_loading
        ):
            return None

        self.state.current_page += 1
        requested_page = self.state.current_page
        self.state.is_loading_more = True
        try:
            outcome = await self.fetch_page(append=True)
            # An uncommitted page is requested again by the next load_more,
            # unless a reset has already moved the page back to 1
            if (
                outcome is not FetchOutcome.COMMITTED
                and self.state.current_page == requested_page
            ):
                self.state.current_page -= 1
            return outcome
        finally:
            self.state.is_loading_more = False

    async def set_sort_mode(self, mode: Union[BrowseMode, str]) -> FetchOutcome:
        self.state.sort = BrowseMode(mode)
        self._reset()
        return await self.fetch_page(append=False)

    async def set_preview_only_filter(self, enabled: bool) -> Optional[FetchOutcome]:
        self.state.only_with_screenshots = enabled
        if enabled and self.state.plugins:
            await self.apply_screenshot_filter()
            return None

        self._reset()
        return await self.fetch_page(append=False)

    async def apply_screenshot_filter(self):
        """Filter the loaded plugins in place, without a new request."""
        generation = self._begin()
        self.state.is_loading = True
        try:
            filtered = await self.screenshots.filter(self.state.plugins)
            if generation == self._generation:
                self.state.plugins = filtered
        finally:
            if generation == self._generation:
                self.state.is_loading = False

    async def reset_filters(self) -> FetchOutcome:
        self.state.sort = self.attributes.default_sort
        self.state.only_with_screenshots = False
        self._reset()
        return await self.fetch_page(append=False)

    def results_summary(self) -> str:
        count = len(self.state.plugins)
        if not count:
            return ""
        text = f"Showing {count:,} plugin{'s' if count != 1 else ''}"
        if self.state.only_with_screenshots:
            text += " with screenshots"
        elif self.state.has_more_pages:
            text += f" ({self.state.total_results:,} total available)"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return self.state.model_dump(mode="json", exclude={"screenshot_cache"})
