"""
Tests for the webpage strategies against a mocked network.
"""
import httpx
import pytest

from conftest import make_png, sample_palette, unreachable_transport
from palettesniffer.config import ExtractorConfig
from palettesniffer.services.reliability import StrategyFailed
from palettesniffer.services.strategies import WebpageStrategies, build_strategies


PAGE_URL = "https://zzqx.io/"
LONG_PAGE = (
    "<html><head><style>body { color: #123456; }</style></head>"
    "<body><p>" + "lorem ipsum " * 60 + "</p></body></html>"
)


class ScreenshotRecorder:
    def __init__(self):
        self.screenshots = []

    async def __call__(self, content):
        self.screenshots.append(content)
        return sample_palette("#0f0f0f")


def routed(routes, requested=None):
    """Transport answering by host; unknown hosts get a 500."""
    def handler(request):
        if requested is not None:
            requested.append(request.url.host)
        respond = routes.get(request.url.host)
        if respond is None:
            return httpx.Response(500, text="upstream error")
        return respond(request)
    return httpx.MockTransport(handler)


class TestBuildStrategies:
    """Test strategy list composition"""

    def test_default_flags(self):
        names = [s.name for s in build_strategies(ExtractorConfig(), None, ScreenshotRecorder())]
        assert names == ["css_analysis", "metadata"]

    def test_all_enabled_in_order(self):
        config = ExtractorConfig(enable_headless_providers=True, enable_ssr_providers=True)
        names = [s.name for s in build_strategies(config, None, ScreenshotRecorder())]

        assert names == ["headless", "server_side_rendering", "css_analysis", "metadata"]

    def test_external_extraction_disabled(self):
        config = ExtractorConfig(enable_external_url_extraction=False,
                                 enable_headless_providers=True, enable_ssr_providers=True)
        names = [s.name for s in build_strategies(config, None, ScreenshotRecorder())]

        assert names == ["metadata"]


class TestMetadataStrategy:
    """Test brand lookup and theme meta extraction"""

    @pytest.mark.asyncio
    async def test_brand_needs_no_network(self):
        async with httpx.AsyncClient(transport=unreachable_transport()) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            palette = await impl.metadata("https://github.com/features")

        assert palette.dominant[0].hex == "#24292e"

    @pytest.mark.asyncio
    async def test_theme_color_through_metadata_proxy(self):
        def allorigins(request):
            assert request.url.params["url"] == PAGE_URL
            return httpx.Response(200, json={
                "contents": '<meta name="theme-color" content="#ff5500">',
            })

        transport = routed({"api.allorigins.win": allorigins})
        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            palette = await impl.metadata(PAGE_URL)

        assert palette.dominant[0].hex == "#ff5500"
        assert palette.secondary[0].hex == "#8b5cf6"

    @pytest.mark.asyncio
    async def test_no_metadata_colors(self):
        transport = routed({
            "api.allorigins.win": lambda request: httpx.Response(200, json={"contents": "<p>hi</p>"}),
        })
        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            with pytest.raises(StrategyFailed, match="No metadata colors found"):
                await impl.metadata(PAGE_URL)

    @pytest.mark.asyncio
    async def test_metadata_proxy_unreachable(self):
        async with httpx.AsyncClient(transport=unreachable_transport()) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            with pytest.raises(StrategyFailed):
                await impl.metadata(PAGE_URL)


class TestCssAnalysis:
    """Test proxy, stylesheet and direct fetch methods"""

    @pytest.mark.asyncio
    async def test_first_proxy_with_long_html(self):
        requested = []
        transport = routed({
            "api.codetabs.com": lambda request: httpx.Response(200, text=LONG_PAGE),
        }, requested)
        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            palette = await impl.cors_proxy(PAGE_URL)

        assert palette.dominant[0].hex == "#123456"
        assert requested == ["api.codetabs.com"]

    @pytest.mark.asyncio
    async def test_short_proxy_html_falls_through_to_direct_fetch(self):
        requested = []
        transport = routed({
            "api.codetabs.com": lambda request: httpx.Response(200, text="<html></html>"),
            "zzqx.io": lambda request: httpx.Response(200, text='<div style="color: #654321"></div>'),
        }, requested)
        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            palette = await impl.cors_proxy(PAGE_URL)

        assert palette.dominant[0].hex == "#654321"
        assert requested == ["api.codetabs.com", "corsproxy.io",
                             "cors-anywhere.herokuapp.com", "zzqx.io"]

    @pytest.mark.asyncio
    async def test_linked_stylesheets_are_tallied(self):
        def page(request):
            if request.url.path == "/static/site.css":
                return httpx.Response(200, text="body { background: #0a0b0c; color: #0a0b0c }")
            return httpx.Response(200, text='<link rel="stylesheet" href="static/site.css">')

        transport = routed({"zzqx.io": page})
        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            palette = await impl.linked_stylesheets(PAGE_URL)

        assert palette.dominant[0].hex == "#0a0b0c"

    @pytest.mark.asyncio
    async def test_page_without_stylesheets(self):
        transport = routed({"zzqx.io": lambda request: httpx.Response(200, text="<p>plain</p>")})
        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            with pytest.raises(StrategyFailed, match="no linked stylesheets"):
                await impl.linked_stylesheets(PAGE_URL)

    @pytest.mark.asyncio
    async def test_every_method_failing(self):
        async with httpx.AsyncClient(transport=routed({})) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            with pytest.raises(StrategyFailed, match="All CSS analysis methods failed"):
                await impl.css_analysis(PAGE_URL)


class TestRenderingProviders:
    """Test screenshot providers"""

    @pytest.mark.asyncio
    async def test_first_provider_failure_moves_to_next(self):
        screenshot = make_png((0, 128, 0, 255))
        requested = []
        transport = routed({
            "chrome.browserless.io": lambda request: httpx.Response(503),
            "api.puppeteer.dev": lambda request: httpx.Response(200, content=screenshot),
        }, requested)
        recorder = ScreenshotRecorder()

        async with httpx.AsyncClient(transport=transport) as client:
            impl = WebpageStrategies(ExtractorConfig(enable_headless_providers=True), client, recorder)
            palette = await impl.headless(PAGE_URL)

        assert palette.dominant[0].hex == "#0f0f0f"
        assert recorder.screenshots == [screenshot]
        assert requested == ["chrome.browserless.io", "api.puppeteer.dev"]

    @pytest.mark.asyncio
    async def test_all_providers_failing(self):
        async with httpx.AsyncClient(transport=unreachable_transport()) as client:
            impl = WebpageStrategies(ExtractorConfig(), client, ScreenshotRecorder())
            with pytest.raises(StrategyFailed, match="All headless browser APIs failed"):
                await impl.headless(PAGE_URL)
            with pytest.raises(StrategyFailed, match="All server-side rendering proxies failed"):
                await impl.server_side_rendering(PAGE_URL)
