import os

class Config:
    database_url = os.getenv("WPSEARCH_DATABASE_URL", "sqlite:///wpsearch.db")

    # Upstream plugin directory
    upstream_url = os.getenv(
        "WPSEARCH_UPSTREAM_URL", "https://api.wordpress.org/plugins/info/1.2/"
    )
    http_timeout_seconds = int(os.getenv("WPSEARCH_HTTP_TIMEOUT_SECONDS", "15"))
    asset_base_url = os.getenv("WPSEARCH_ASSET_BASE_URL", "https://ps.w.org")

    # Query cache
    cache_ttl_seconds = int(os.getenv("WPSEARCH_CACHE_TTL_SECONDS", "3600"))
    cache_prefix = os.getenv("WPSEARCH_CACHE_PREFIX", "wps_")

    # Admin endpoints are open when no token is configured
    admin_token = os.getenv("WPSEARCH_ADMIN_TOKEN", "")

    cors_origins = [
        origin.strip()
        for origin in os.getenv("WPSEARCH_CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]

config = Config()
