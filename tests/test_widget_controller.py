import asyncio

import httpx
import pytest

from wpsearch.catalog.models import BrowseMode
from wpsearch.widget.controller import (
    ERROR_MESSAGES,
    NETWORK_ERROR_MESSAGE,
    BrowseController,
    FetchOutcome,
)
from wpsearch.widget.models import BlockAttributes
from wpsearch.widget.screenshots import ScreenshotFilter

ENDPOINT = "http://site.example/wordpress-plugin-search/v1/query"


def _page(slugs, total):
    return {
        "plugins": [{"slug": slug, "name": slug.title(), "rating": 90} for slug in slugs],
        "info": {"results": total},
    }


class FakeSite:
    """Serves the browse endpoint and screenshot assets."""

    def __init__(self, pages=None, with_screenshots=(), status=200):
        self.pages = pages or {}
        self.with_screenshots = set(with_screenshots)
        self.status = status
        self.requests = []
        self.delays = {}
        self.fail_with = None

    async def handler(self, request):
        if request.url.path.endswith("/query"):
            params = dict(request.url.params)
            self.requests.append(params)
            delay = self.delays.get(params.get("browse"))
            if delay:
                await asyncio.sleep(delay)
            if self.fail_with:
                raise self.fail_with(request)
            if self.status != 200:
                return httpx.Response(self.status, json={"detail": "error"})
            key = (params.get("browse"), int(params.get("page")))
            return httpx.Response(200, json=self.pages.get(key, _page([], 0)))

        slug = request.url.path.split("/")[1]
        if slug in self.with_screenshots:
            return httpx.Response(200, headers={"content-type": "image/png"}, content=b"")
        return httpx.Response(404)

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def _controller(http, per_page=3, **attributes):
    controller = BrowseController(
        ENDPOINT,
        http,
        attributes=BlockAttributes(results_per_page=per_page, **attributes),
        screenshot_base_url="https://assets.example",
    )
    controller.screenshots = ScreenshotFilter(
        http,
        controller.state.screenshot_cache,
        timeout_seconds=0.5,
        batch_delay_seconds=0,
    )
    return controller


@pytest.mark.asyncio
async def test_initial_load_populates_state():
    site = FakeSite(pages={("popular", 1): _page(["a", "b", "c"], 7)})
    async with site.client() as http:
        controller = _controller(http)
        outcome = await controller.load()

    assert outcome is FetchOutcome.COMMITTED
    assert [p.slug for p in controller.state.plugins] == ["a", "b", "c"]
    assert controller.state.total_results == 7
    assert controller.state.has_more_pages is True
    assert controller.state.is_loading is False
    assert controller.state.plugins[0].screenshots[0] == (
        "https://assets.example/a/assets/screenshot-1.png"
    )
    assert site.requests[0] == {
        "action": "query_plugins",
        "browse": "popular",
        "per_page": "3",
        "page": "1",
    }


@pytest.mark.asyncio
async def test_load_more_appends_and_drops_duplicate_slugs():
    site = FakeSite(
        pages={
            ("popular", 1): _page(["a", "b", "c"], 6),
            ("popular", 2): _page(["c", "d", "e"], 6),
        }
    )
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        outcome = await controller.load_more()

    assert outcome is FetchOutcome.COMMITTED
    assert [p.slug for p in controller.state.plugins] == ["a", "b", "c", "d", "e"]
    assert controller.state.current_page == 2
    assert controller.state.has_more_pages is False
    assert controller.state.is_loading_more is False


@pytest.mark.asyncio
async def test_load_more_is_a_no_op_without_more_pages():
    site = FakeSite(pages={("popular", 1): _page(["a"], 1)})
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        outcome = await controller.load_more()

    assert outcome is None
    assert len(site.requests) == 1


@pytest.mark.asyncio
async def test_set_sort_mode_resets_and_refetches():
    site = FakeSite(
        pages={
            ("popular", 1): _page(["a", "b", "c"], 9),
            ("popular", 2): _page(["d", "e", "f"], 9),
            ("new", 1): _page(["x", "y"], 2),
        }
    )
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        await controller.load_more()
        await controller.set_sort_mode("new")

    assert controller.state.sort == BrowseMode.NEW
    assert controller.state.current_page == 1
    assert [p.slug for p in controller.state.plugins] == ["x", "y"]
    assert site.requests[-1]["browse"] == "new"
    assert site.requests[-1]["page"] == "1"


@pytest.mark.asyncio
async def test_newer_request_supersedes_in_flight_one():
    site = FakeSite(
        pages={
            ("popular", 1): _page(["slow"], 1),
            ("updated", 1): _page(["fast"], 1),
        }
    )
    site.delays["popular"] = 0.5
    async with site.client() as http:
        controller = _controller(http)
        first = asyncio.create_task(controller.load())
        await asyncio.sleep(0.05)
        second = await controller.set_sort_mode(BrowseMode.UPDATED)
        first_outcome = await first

    assert first_outcome is FetchOutcome.SUPERSEDED
    assert second is FetchOutcome.COMMITTED
    assert [p.slug for p in controller.state.plugins] == ["fast"]
    assert controller.state.is_loading is False


@pytest.mark.asyncio
async def test_enabling_filter_filters_loaded_plugins_in_place():
    slugs = [f"p{index}" for index in range(12)]
    available = ["p0", "p3", "p4", "p9", "p10"]
    site = FakeSite(
        pages={("popular", 1): _page(slugs, 120)}, with_screenshots=available
    )
    async with site.client() as http:
        controller = _controller(http, per_page=12)
        await controller.load()
        await controller.set_preview_only_filter(True)

    assert [p.slug for p in controller.state.plugins] == available
    assert len(site.requests) == 1
    assert controller.state.screenshot_cache["p1"] is False
    assert controller.results_summary() == "Showing 5 plugins with screenshots"


@pytest.mark.asyncio
async def test_filtered_fetch_overfetches_and_disabling_restores_full_set():
    slugs = ["a", "b", "c", "d"]
    site = FakeSite(pages={("popular", 1): _page(slugs, 4)}, with_screenshots=["b", "d"])
    async with site.client() as http:
        controller = _controller(http, per_page=2)
        controller.state.only_with_screenshots = True
        await controller.load()
        filtered = [p.slug for p in controller.state.plugins]
        await controller.set_preview_only_filter(False)

    assert site.requests[0]["per_page"] == "6"
    assert filtered == ["b", "d"]
    assert site.requests[1]["per_page"] == "2"
    assert [p.slug for p in controller.state.plugins] == slugs


@pytest.mark.asyncio
async def test_overfetch_is_capped_at_one_hundred():
    site = FakeSite()
    async with site.client() as http:
        controller = _controller(http, per_page=40)
        controller.state.only_with_screenshots = True

        assert controller.request_params()["per_page"] == "100"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [503, 502, 404])
async def test_http_errors_keep_loaded_plugins(status):
    site = FakeSite(pages={("popular", 1): _page(["a", "b", "c"], 9)})
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        site.status = status
        outcome = await controller.load_more()

    assert outcome is FetchOutcome.FAILED
    assert controller.state.error == ERROR_MESSAGES[status]
    assert [p.slug for p in controller.state.plugins] == ["a", "b", "c"]
    assert controller.state.current_page == 1


@pytest.mark.asyncio
async def test_load_more_interrupted_by_filter_requests_same_page_again():
    site = FakeSite(
        pages={
            ("popular", 1): _page(["a", "b", "c"], 6),
            ("popular", 2): _page(["d", "e", "f"], 6),
        },
        with_screenshots=["a", "b", "c", "d", "e", "f"],
    )
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        site.delays["popular"] = 0.3
        pending = asyncio.create_task(controller.load_more())
        await asyncio.sleep(0.05)
        await controller.set_preview_only_filter(True)
        interrupted = await pending

        assert interrupted is FetchOutcome.SUPERSEDED
        assert controller.state.current_page == 1

        site.delays.clear()
        outcome = await controller.load_more()

    assert outcome is FetchOutcome.COMMITTED
    assert site.requests[-1]["page"] == "2"
    assert [p.slug for p in controller.state.plugins] == ["a", "b", "c", "d", "e", "f"]


@pytest.mark.asyncio
async def test_load_more_interrupted_by_sort_change_keeps_reset_page():
    site = FakeSite(
        pages={
            ("popular", 1): _page(["a", "b", "c"], 6),
            ("new", 1): _page(["x", "y"], 2),
        }
    )
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        site.delays["popular"] = 0.3
        pending = asyncio.create_task(controller.load_more())
        await asyncio.sleep(0.05)
        await controller.set_sort_mode("new")
        interrupted = await pending

    assert interrupted is FetchOutcome.SUPERSEDED
    assert controller.state.current_page == 1
    assert [p.slug for p in controller.state.plugins] == ["x", "y"]


@pytest.mark.asyncio
async def test_connection_error_shows_network_message_and_keeps_plugins():
    site = FakeSite(pages={("popular", 1): _page(["a", "b", "c"], 9)})
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        site.fail_with = lambda request: httpx.ConnectError("refused", request=request)
        outcome = await controller.load_more()

    assert outcome is FetchOutcome.FAILED
    assert controller.state.error == NETWORK_ERROR_MESSAGE
    assert [p.slug for p in controller.state.plugins] == ["a", "b", "c"]
    assert controller.state.is_loading is False


@pytest.mark.asyncio
async def test_successful_retry_clears_error():
    site = FakeSite(pages={("popular", 1): _page(["a"], 1)}, status=503)
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()
        assert controller.state.error is not None
        site.status = 200
        await controller.load()

    assert controller.state.error is None
    assert [p.slug for p in controller.state.plugins] == ["a"]


@pytest.mark.asyncio
async def test_reset_filters_restores_block_defaults():
    site = FakeSite(pages={("new", 1): _page(["n"], 1), ("updated", 1): _page(["u"], 1)})
    async with site.client() as http:
        controller = _controller(http, default_sort="new", search_term="forms")
        await controller.set_sort_mode("updated")
        controller.state.only_with_screenshots = True
        await controller.reset_filters()

    assert controller.state.sort == BrowseMode.NEW
    assert controller.state.only_with_screenshots is False
    assert [p.slug for p in controller.state.plugins] == ["n"]
    assert site.requests[-1]["search"] == "forms"


@pytest.mark.asyncio
async def test_results_summary_mentions_total_while_more_pages_exist():
    site = FakeSite(pages={("popular", 1): _page(["a", "b", "c"], 1234)})
    async with site.client() as http:
        controller = _controller(http)
        await controller.load()

    assert controller.results_summary() == "Showing 3 plugins (1,234 total available)"
