from wpsearch.widget.models import PluginListing
from wpsearch.widget.screenshots import screenshot_urls
from wpsearch.widget.viewer import PreviewViewer


def _plugin(count=10):
    return PluginListing(
        slug="akismet", name="Akismet", screenshots=screenshot_urls("akismet")[:count]
    )


def test_open_clamps_initial_index():
    viewer = PreviewViewer()

    assert viewer.open(_plugin(), initial_index=42)
    assert viewer.current_index == 9
    assert viewer.counter == "10 / 10"
    assert viewer.alt_text == "Akismet screenshot 10"


def test_navigation_wraps_around():
    viewer = PreviewViewer()
    viewer.open(_plugin(3))

    viewer.previous()
    assert viewer.current_index == 2
    viewer.next()
    assert viewer.current_index == 0
    viewer.next()
    assert viewer.current_url.endswith("screenshot-2.png")


def test_single_screenshot_hides_navigation():
    viewer = PreviewViewer()
    viewer.open(_plugin(1))

    viewer.next()

    assert viewer.show_navigation is False
    assert viewer.current_index == 0


def test_open_without_screenshots_is_refused():
    viewer = PreviewViewer()

    assert viewer.open(PluginListing(slug="empty")) is False
    assert viewer.open(None) is False
    assert viewer.is_open is False


def test_close_resets_viewer():
    viewer = PreviewViewer()
    viewer.open(_plugin(), initial_index=3)

    viewer.close()
    viewer.next()

    assert viewer.is_open is False
    assert viewer.current_url is None
    assert viewer.counter == ""
