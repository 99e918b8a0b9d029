import hashlib
import json

from wpsearch.catalog.models import Query


def canonical_query(query: Query) -> dict:
    # Insertion order is the canonical field order.
    canonical = {"browse": query.browse.value}
    if query.search:
        canonical["search"] = query.search
    canonical["per_page"] = query.per_page
    canonical["page"] = query.page
    return canonical


def build_cache_key(query: Query, prefix: str) -> str:
    """Namespace prefix followed by the SHA-256 of the canonical query."""
    serialized = json.dumps(
        canonical_query(query), separators=(",", ":"), ensure_ascii=False
    )
    digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    return f"{prefix}{digest}"
