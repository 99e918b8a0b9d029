import json
import logging
from http.client import HTTPException
from typing import Any, Dict, List, Tuple
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from wpsearch.catalog.errors import UpstreamMalformed, UpstreamUnavailable
from wpsearch.catalog.models import QUERY_ACTION, Query

logger = logging.getLogger(__name__)

# Attributes requested from the directory; everything else is left out to
# keep payloads small.
REQUESTED_FIELDS = [
    "icons",
    "active_installs",
    "short_description",
    "rating",
    "num_ratings",
    "last_updated",
    "downloaded",
    "requires",
    "tested",
    "download_link",
    "homepage",
]


class PluginDirectoryClient:
    def __init__(self, base_url: str, timeout_seconds: int = 15):
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

    def build_url(self, query: Query) -> str:
        params: List[Tuple[str, Any]] = [
            ("action", QUERY_ACTION),
            ("request[browse]", query.browse.value),
            ("request[per_page]", query.per_page),
            ("request[page]", query.page),
        ]
        if query.search:
            params.append(("request[search]", query.search))
        params.extend((f"request[fields][{field}]", 1) for field in REQUESTED_FIELDS)
        separator = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{separator}{urlencode(params)}"

    def query_plugins(self, query: Query) -> Dict[str, Any]:
        url = self.build_url(query)
        logger.debug("Querying plugin directory: %s", url)
        request = Request(url, headers={"Accept": "application/json"})
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                payload = response.read().decode("utf-8")
            data = json.loads(payload)
        except (OSError, HTTPException) as exc:
            # OSError covers URLError and socket timeouts
            raise UpstreamUnavailable(f"Plugin directory request failed: {exc}") from exc
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise UpstreamUnavailable(
                f"Plugin directory returned undecodable payload: {exc}"
            ) from exc

        self._validate_payload(data)
        return data

    def _validate_payload(self, data: Any):
        if not isinstance(data, dict):
            raise UpstreamMalformed("Plugin directory payload must be a JSON object")
        if not isinstance(data.get("plugins"), list):
            raise UpstreamMalformed(
                "Plugin directory payload missing required 'plugins' array"
            )
