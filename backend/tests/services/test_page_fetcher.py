import httpx
import pytest

from backend.app.services.page_fetcher import FetchError, HttpxFetcher, PlaywrightFetcher


def make_transport(handler):
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_httpx_fetcher_returns_page_body_with_user_agent():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["user_agent"] = request.headers.get("User-Agent")
        return httpx.Response(200, text="<html><body>inventory</body></html>")

    async with HttpxFetcher(transport=make_transport(handler), user_agent="TestAgent/1.0") as fetcher:
        html = await fetcher.render("https://dealer.test/inventory", wait_for=".vlp-image-slider")

    assert html == "<html><body>inventory</body></html>"
    assert seen["user_agent"] == "TestAgent/1.0"


@pytest.mark.asyncio
async def test_httpx_fetcher_raises_fetch_error_on_http_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    async with HttpxFetcher(transport=make_transport(handler)) as fetcher:
        with pytest.raises(FetchError):
            await fetcher.render("https://dealer.test/inventory")


@pytest.mark.asyncio
async def test_httpx_fetcher_raises_fetch_error_on_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async with HttpxFetcher(transport=make_transport(handler)) as fetcher:
        with pytest.raises(FetchError, match="Timed out"):
            await fetcher.render("https://dealer.test/inventory")


@pytest.mark.asyncio
async def test_fetchers_require_open_session():
    with pytest.raises(FetchError):
        await HttpxFetcher().render("https://dealer.test/inventory")
    with pytest.raises(FetchError):
        await PlaywrightFetcher().render("https://dealer.test/inventory")


class _Closable:
    def __init__(self, calls, name, error=None):
        self.calls = calls
        self.name = name
        self.error = error

    async def _finish(self):
        self.calls.append(self.name)
        if self.error is not None:
            raise self.error

    close = _finish
    stop = _finish


@pytest.mark.asyncio
async def test_playwright_fetcher_shuts_down_browser_when_context_close_fails():
    calls = []
    fetcher = PlaywrightFetcher()
    fetcher._context = _Closable(calls, "context", RuntimeError("context already gone"))
    fetcher._browser = _Closable(calls, "browser")
    fetcher._playwright = _Closable(calls, "driver")

    with pytest.raises(RuntimeError, match="context already gone"):
        await fetcher.__aexit__(None, None, None)

    assert calls == ["context", "browser", "driver"]
    with pytest.raises(FetchError):
        await fetcher.render("https://dealer.test/inventory")
