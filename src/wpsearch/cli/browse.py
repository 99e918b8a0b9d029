import asyncio
import json

import click
import yaml

from wpsearch.catalog.models import BrowseMode

DEFAULT_ENDPOINT = "http://127.0.0.1:8000/wordpress-plugin-search/v1/query"


def _echo_plugins(plugins):
    from wpsearch.widget.models import is_hidden_gem

    for plugin in plugins:
        rating = f"{plugin.rating}%" if plugin.rating is not None else "-"
        installs = f"{plugin.active_installs:,}+" if plugin.active_installs else "-"
        gem = " [hidden gem]" if is_hidden_gem(plugin) else ""
        click.echo(f"{plugin.slug or '?':40} {rating:>5} {installs:>12}  {plugin.name or ''}{gem}")


async def _browse(endpoint, attributes, pages, screenshots_only):
    import httpx

    from wpsearch.widget.controller import BrowseController, FetchOutcome

    async with httpx.AsyncClient(timeout=15) as http:
        controller = BrowseController(endpoint, http, attributes=attributes)
        if screenshots_only:
            controller.state.only_with_screenshots = True
        await controller.load()
        for _ in range(pages - 1):
            if await controller.load_more() is not FetchOutcome.COMMITTED:
                break
        return controller


@click.command()
@click.option('--endpoint', default=DEFAULT_ENDPOINT, show_default=True, help='Plugin search endpoint URL.')
@click.option('--sort', type=click.Choice([mode.value for mode in BrowseMode]), default='popular', help='Browse order.')
@click.option('--search', default='', help='Free text search term.')
@click.option('--per-page', default=12, help='Results per page (1-100).')
@click.option('--pages', default=1, type=click.IntRange(min=1), help='Number of pages to load.')
@click.option('--screenshots-only', is_flag=True, help='Only show plugins with screenshots.')
@click.option('--json', 'as_json', is_flag=True, help='Print the widget state as JSON.')
def browse(endpoint, sort, search, per_page, pages, screenshots_only, as_json):
    """Browse the plugin directory through the search endpoint."""
    from wpsearch.widget.models import BlockAttributes

    attributes = BlockAttributes(search_term=search, results_per_page=per_page, default_sort=sort)
    controller = asyncio.run(_browse(endpoint, attributes, pages, screenshots_only))

    if as_json:
        click.echo(json.dumps(controller.to_dict(), indent=4))
        return
    if controller.state.error:
        raise click.ClickException(controller.state.error)
    _echo_plugins(controller.state.plugins)
    summary = controller.results_summary()
    click.echo(summary or "No plugins available at the moment.")


async def _load_widgets(endpoint, blocks):
    import httpx

    from wpsearch.widget.registry import WidgetRegistry

    async with httpx.AsyncClient(timeout=15) as http:
        registry = WidgetRegistry.from_blocks(blocks, endpoint, http)
        await registry.load_all()
        return registry


@click.command()
@click.option('--config', 'config_path', required=True, type=click.Path(exists=True, dir_okay=False), help='YAML file listing widget blocks.')
@click.option('--endpoint', default=DEFAULT_ENDPOINT, show_default=True, help='Plugin search endpoint URL.')
def widgets(config_path, endpoint):
    """Load every widget described in a YAML file."""
    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    blocks = data.get("widgets") if isinstance(data, dict) else data
    if not isinstance(blocks, list):
        raise click.UsageError("Expected a 'widgets' list in the configuration file.")

    registry = asyncio.run(_load_widgets(endpoint, blocks))
    for block_id, controller in registry.items():
        status = controller.state.error or controller.results_summary() or "No plugins available at the moment."
        click.echo(f"{block_id}: {status}")
