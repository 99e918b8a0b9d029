import click
import logging

from wpsearch.cli.browse import browse, widgets
from wpsearch.cli.cache import cache

@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging.')
@click.pass_context
def main(ctx, debug):
    """WordPress plugin search CLI"""
    ctx.ensure_object(dict)
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)

main.add_command(cache)
main.add_command(browse)
main.add_command(widgets)

@main.command()
@click.option('--host', default='127.0.0.1', help='The host to bind to.')
@click.option('--port', default=8000, help='The port to bind to.')
def server(host, port):
    """Run the FastAPI server."""
    import uvicorn

    from wpsearch.api.server import app
    uvicorn.run(app, host=host, port=port)
