import logging
from typing import List, Optional

from wpsearch.widget.models import PluginListing

logger = logging.getLogger(__name__)


class PreviewViewer:
    """Lightbox over one plugin's screenshots."""

    def __init__(self):
        self.is_open = False
        self.plugin: Optional[PluginListing] = None
        self.screenshots: List[str] = []
        self.current_index = 0

    def open(self, plugin: Optional[PluginListing], initial_index: int = 0) -> bool:
        if not plugin or not plugin.screenshots:
            logger.warning("Plugin has no screenshots")
            return False

        self.is_open = True
        self.plugin = plugin
        self.screenshots = list(plugin.screenshots)
        self.current_index = max(0, min(initial_index, len(self.screenshots) - 1))
        return True

    def close(self):
        if not self.is_open:
            return
        self.is_open = False
        self.plugin = None
        self.screenshots = []
        self.current_index = 0

    def navigate(self, direction: int):
        if not self.is_open or len(self.screenshots) <= 1:
            return
        self.current_index = (self.current_index + direction) % len(self.screenshots)

    def next(self):
        self.navigate(1)

    def previous(self):
        self.navigate(-1)

    @property
    def show_navigation(self) -> bool:
        return len(self.screenshots) > 1

    @property
    def current_url(self) -> Optional[str]:
        if not self.screenshots:
            return None
        return self.screenshots[self.current_index]

    @property
    def counter(self) -> str:
        if not self.screenshots:
            return ""
        return f"{self.current_index + 1} / {len(self.screenshots)}"

    @property
    def alt_text(self) -> str:
        name = (self.plugin.name if self.plugin else None) or "Plugin"
        return f"{name} screenshot {self.current_index + 1}"
