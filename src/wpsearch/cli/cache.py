import click
import json

@click.group()
def cache():
    """Manage the plugin search cache."""
    pass

def _query_cache():
    from wpsearch.cache.store import QueryCache
    from wpsearch.config.settings import config
    from wpsearch.db.session import get_db_manager
    return QueryCache(get_db_manager(), config.cache_prefix)

@cache.command(name='clear')
def clear_cache():
    """Delete every cached plugin query."""
    deleted = _query_cache().clear_namespace()
    click.echo(f"Cleared {deleted} cache entries.")

@cache.command(name='list')
def list_cache():
    """List cached plugin queries."""
    entries = _query_cache().list_entries()
    click.echo(json.dumps([entry.model_dump() for entry in entries], indent=4))
