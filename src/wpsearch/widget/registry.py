import asyncio
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

import httpx

from wpsearch.widget.controller import BrowseController, FetchOutcome
from wpsearch.widget.models import BlockAttributes

logger = logging.getLogger(__name__)


class WidgetRegistry:
    """Independent browse controllers, one per embedded block.

    Built once at startup; instances never share state.
    """

    def __init__(
        self,
        endpoint_url: str,
        http: httpx.AsyncClient,
        screenshot_base_url: Optional[str] = None,
    ):
        self.endpoint_url = endpoint_url
        self.http = http
        self.screenshot_base_url = screenshot_base_url
        self._controllers: Dict[str, BrowseController] = {}

    @classmethod
    def from_blocks(
        cls,
        blocks: Iterable[Mapping[str, Any]],
        endpoint_url: str,
        http: httpx.AsyncClient,
        screenshot_base_url: Optional[str] = None,
    ) -> "WidgetRegistry":
        registry = cls(endpoint_url, http, screenshot_base_url=screenshot_base_url)
        for index, block in enumerate(blocks):
            block = dict(block)
            block_id = str(block.pop("id", None) or f"block-{index + 1}")
            registry.register(block_id, BlockAttributes.model_validate(block))
        return registry

    def register(self, block_id: str, attributes: BlockAttributes) -> BrowseController:
        if block_id in self._controllers:
            raise ValueError(f"Widget '{block_id}' is already registered")
        controller = BrowseController(
            self.endpoint_url,
            self.http,
            attributes=attributes,
            screenshot_base_url=self.screenshot_base_url,
        )
        self._controllers[block_id] = controller
        logger.debug("Registered widget %s: %s", block_id, attributes)
        return controller

    def get(self, block_id: str) -> Optional[BrowseController]:
        return self._controllers.get(block_id)

    def __iter__(self) -> Iterator[str]:
        return iter(self._controllers)

    def __len__(self) -> int:
        return len(self._controllers)

    def items(self):
        return self._controllers.items()

    async def load_all(self) -> Dict[str, FetchOutcome]:
        block_ids: List[str] = list(self._controllers)
        outcomes = await asyncio.gather(
            *(self._controllers[block_id].load() for block_id in block_ids)
        )
        return dict(zip(block_ids, outcomes))
