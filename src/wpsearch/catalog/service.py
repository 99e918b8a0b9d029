import logging
from typing import Any, Mapping, Optional

from wpsearch.cache.store import QueryCache
from wpsearch.catalog.cache_key import build_cache_key, canonical_query
from wpsearch.catalog.client import PluginDirectoryClient
from wpsearch.catalog.errors import (
    BadGateway,
    InvalidAction,
    ServiceUnavailable,
    UpstreamMalformed,
    UpstreamUnavailable,
)
from wpsearch.catalog.models import (
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    QUERY_ACTION,
    BrowseMode,
    CatalogResponse,
    Query,
)
from wpsearch.catalog.sanitizer import coerce_int, sanitize_response, sanitize_text_field
from wpsearch.config.settings import config
from wpsearch.db.session import get_db_manager

logger = logging.getLogger(__name__)


def normalize_query(raw: Mapping[str, Any]) -> Query:
    """Validate raw request parameters into a ``Query``.

    Only the action is strict. Everything else is defaulted or clamped into
    range.
    """
    # Compared after sanitizing, so surrounding whitespace is tolerated
    action = sanitize_text_field(raw.get("action"))
    if action != QUERY_ACTION:
        raise InvalidAction()

    try:
        browse = BrowseMode(sanitize_text_field(raw.get("browse")))
    except ValueError:
        browse = BrowseMode.POPULAR

    search = sanitize_text_field(raw.get("search")) or None

    per_page = coerce_int(raw.get("per_page"))
    if per_page is None:
        per_page = DEFAULT_PER_PAGE
    per_page = max(1, min(MAX_PER_PAGE, per_page))

    page = coerce_int(raw.get("page"))
    if page is None:
        page = 1
    page = max(1, page)

    return Query(search=search, browse=browse, per_page=per_page, page=page)


class BrowseService:
    def __init__(
        self,
        cache: Optional[QueryCache] = None,
        client: Optional[PluginDirectoryClient] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.cache = cache or QueryCache(get_db_manager(), config.cache_prefix)
        self.client = client or PluginDirectoryClient(
            config.upstream_url, timeout_seconds=config.http_timeout_seconds
        )
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.cache_ttl_seconds

    def browse(self, raw: Mapping[str, Any]) -> CatalogResponse:
        query = normalize_query(raw)
        cache_key = build_cache_key(query, self.cache.prefix)
        logger.debug("Cache key: %s params: %s", cache_key, canonical_query(query))

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("Returning cached response for key %s", cache_key)
            return cached

        logger.info("No cache entry for key %s, querying plugin directory", cache_key)
        try:
            payload = self.client.query_plugins(query)
        except UpstreamUnavailable as exc:
            logger.error("Plugin directory unavailable: %s", exc)
            raise ServiceUnavailable() from exc
        except UpstreamMalformed as exc:
            logger.error("Invalid plugin directory response: %s", exc)
            raise BadGateway() from exc

        response = sanitize_response(payload)
        if len(response.plugins) > query.per_page:
            response = CatalogResponse(
                plugins=response.plugins[: query.per_page], info=response.info
            )

        self.cache.put(cache_key, response, self.ttl_seconds)
        return response
