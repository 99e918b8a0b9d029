import asyncio
import logging
from typing import Dict, List, Optional, Sequence

import httpx

from wpsearch.config.settings import config
from wpsearch.widget.models import PluginListing

logger = logging.getLogger(__name__)

MAX_SCREENSHOTS = 10
PROBE_TIMEOUT_SECONDS = 2.0
PROBE_BATCH_SIZE = 3
PROBE_BATCH_DELAY_SECONDS = 0.15


def screenshot_urls(slug: Optional[str], base_url: str = None) -> List[str]:
    """Candidate screenshot URLs for a plugin.

    The directory does not list screenshots, so these follow the asset host's
    naming pattern and may not exist. Only probing tells.
    """
    if not slug:
        return []
    base_url = (base_url or config.asset_base_url).rstrip("/")
    return [
        f"{base_url}/{slug}/assets/screenshot-{index}.png"
        for index in range(1, MAX_SCREENSHOTS + 1)
    ]


class ScreenshotFilter:
    def __init__(
        self,
        http: httpx.AsyncClient,
        cache: Dict[str, bool],
        base_url: str = None,
        timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
        batch_size: int = PROBE_BATCH_SIZE,
        batch_delay_seconds: float = PROBE_BATCH_DELAY_SECONDS,
    ):
        self.http = http
        self.cache = cache
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self._pending: Dict[str, asyncio.Future] = {}

    async def _load_image(self, url: str) -> bool:
        async with self.http.stream("GET", url) as response:
            content_type = response.headers.get("content-type", "")
            return response.is_success and content_type.startswith("image/")

    async def _probe(self, slug: str, url: str) -> bool:
        try:
            available = await asyncio.wait_for(
                self._load_image(url), timeout=self.timeout_seconds
            )
        except (httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError):
            # A missing or slow image simply means no preview
            available = False

        self.cache[slug] = available
        return available

    async def has_screenshot(self, plugin: PluginListing) -> bool:
        slug = plugin.slug
        if not slug:
            return False
        if slug in self.cache:
            return self.cache[slug]

        # Concurrent lookups of one slug share a single probe
        probe = self._pending.get(slug)
        if probe is None:
            urls = plugin.screenshots or screenshot_urls(slug, self.base_url)
            probe = asyncio.ensure_future(self._probe(slug, urls[0]))
            self._pending[slug] = probe
            probe.add_done_callback(lambda _: self._pending.pop(slug, None))
        return await asyncio.shield(probe)

    async def filter(self, plugins: Sequence[PluginListing]) -> List[PluginListing]:
        """Keep the plugins whose first screenshot loads, in their original order."""
        if not plugins:
            return []

        kept: List[PluginListing] = []
        batches = [
            plugins[start:start + self.batch_size]
            for start in range(0, len(plugins), self.batch_size)
        ]
        for index, batch in enumerate(batches):
            results = await asyncio.gather(*(self.has_screenshot(p) for p in batch))
            kept.extend(plugin for plugin, ok in zip(batch, results) if ok)
            if index < len(batches) - 1:
                await asyncio.sleep(self.batch_delay_seconds)

        logger.debug(
            "Filtered %s plugins down to %s with screenshots", len(plugins), len(kept)
        )
        return kept
