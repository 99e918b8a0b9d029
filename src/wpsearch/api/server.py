from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wpsearch.api.routers import cache, query
from wpsearch.config.settings import config
from wpsearch.version import get_version

app = FastAPI(
    title="WordPress Plugin Search API",
    description="A caching proxy for browsing the WordPress.org plugin directory.",
    version=get_version(),
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(query.router)
app.include_router(cache.router)
