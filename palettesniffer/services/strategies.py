"""
Palette Sniffer URL Strategies
Network strategies that acquire color evidence for a webpage.

Each strategy is an immutable ``(name, execute)`` pair whose ``execute(url)``
coroutine returns a palette or raises. The list is built once from an
``ExtractorConfig``; the resolver decides retries and ordering.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote, urljoin, urlsplit

import httpx
from loguru import logger

from ..config import ExtractorConfig, ProviderDescriptor
from .colors.css_parsing import (
    extract_colors_from_style_string,
    extract_meta_colors_from_html,
    parse_html,
)
from .colors.palette import Palette, palette_from_color_map, sanitize_palette
from .fallback import get_domain_based_colors
from .reliability import PaletteSnifferError, StrategyFailed


ScreenshotAnalyzer = Callable[[bytes], Awaitable[Palette]]


@dataclass(frozen=True)
class Strategy:
    """A named way of turning a URL into a palette."""
    name: str
    execute: Callable[[str], Awaitable[Any]]


class WebpageStrategies:
    """
    Strategy implementations sharing one HTTP client.

    Screenshots returned by rendering providers are handed to
    ``analyze_screenshot``; HTML returned by proxies or direct fetches is
    tallied with the CSS evidence parser.
    """

    def __init__(self, config: ExtractorConfig, client: httpx.AsyncClient,
                 analyze_screenshot: ScreenshotAnalyzer):
        self.config = config
        self.client = client
        self.analyze_screenshot = analyze_screenshot

    # ------------------------------------------------------------------
    # Rendering providers
    # ------------------------------------------------------------------

    async def headless(self, url: str) -> Palette:
        palette = await self._render_with(self.config.headless_providers, url,
                                          self.config.timeout_headless)
        if palette is None:
            raise StrategyFailed("All headless browser APIs failed")
        return palette

    async def server_side_rendering(self, url: str) -> Palette:
        palette = await self._render_with(self.config.ssr_providers, url, self.config.timeout_ssr)
        if palette is None:
            raise StrategyFailed("All server-side rendering proxies failed")
        return palette

    async def _render_with(self, providers: Tuple[ProviderDescriptor, ...], url: str,
                           timeout: float) -> Optional[Palette]:
        for provider in providers:
            try:
                logger.debug(f"Trying {provider.name} rendering provider")
                response = await self.client.request(
                    provider.method,
                    provider.endpoint,
                    headers=dict(provider.headers),
                    json=provider.build_payload(url),
                    timeout=timeout,
                )
                if response.is_success and response.content:
                    return await self.analyze_screenshot(response.content)
                logger.debug(f"{provider.name} returned status {response.status_code} "
                             f"with {len(response.content)} bytes")
            except httpx.TimeoutException:
                logger.warning(f"{provider.name} timed out")
            except (httpx.HTTPError, PaletteSnifferError) as e:
                logger.warning(f"{provider.name} failed: {e}")
        return None

    # ------------------------------------------------------------------
    # CSS analysis
    # ------------------------------------------------------------------

    async def css_analysis(self, url: str) -> Any:
        """Try proxy HTML, linked stylesheets, then a plain fetch; first valid palette wins."""
        methods = (
            self.cors_proxy,
            self.linked_stylesheets,
            self.fetch_and_parse,
        )

        for method in methods:
            try:
                result = await method(url)
            except (httpx.HTTPError, PaletteSnifferError) as e:
                logger.debug(f"CSS analysis method {method.__name__} failed: {e}")
                continue
            if result and sanitize_palette(result) is not None:
                return result

        raise StrategyFailed("Advanced CSS analysis failed: All CSS analysis methods failed")

    async def cors_proxy(self, url: str) -> Palette:
        for proxy in self.config.cors_proxies:
            try:
                logger.debug(f"Trying {proxy.name} CORS proxy")
                response = await self.client.get(
                    proxy.build_url(url),
                    headers=dict(proxy.headers),
                    timeout=self.config.timeout_cors_proxy,
                )
                if response.is_success:
                    html = response.text
                    if html and len(html) > self.config.min_html_length:
                        logger.debug(f"{proxy.name} succeeded, HTML length: {len(html)}")
                        return self._palette_from_html(html)
            except httpx.HTTPError as e:
                logger.warning(f"{proxy.name} failed: {e}")

        return await self.direct_fetch(url)

    async def direct_fetch(self, url: str) -> Palette:
        try:
            response = await self._get_page(url, self.config.timeout_direct_fetch)
            if response.is_success:
                return self._palette_from_html(response.text)
        except httpx.HTTPError as e:
            logger.warning(f"Direct fetch failed: {e}")

        raise StrategyFailed("All fetch methods failed")

    async def linked_stylesheets(self, url: str) -> Palette:
        """Tally the page together with the stylesheets it links to."""
        response = await self._get_page(url, self.config.timeout_stylesheet)
        if not response.is_success:
            raise StrategyFailed(f"Linked stylesheet analysis failed: status {response.status_code}")

        parser = parse_html(response.text)
        color_map = parser.build_color_map()

        hrefs = parser.stylesheet_hrefs[:self.config.max_linked_stylesheets]
        if not hrefs:
            raise StrategyFailed("Linked stylesheet analysis failed: no linked stylesheets")

        fetched = 0
        for href in hrefs:
            stylesheet_url = urljoin(str(response.url), href)
            try:
                css = await self._get_page(stylesheet_url, self.config.timeout_stylesheet)
            except httpx.HTTPError as e:
                logger.debug(f"Skipping stylesheet {stylesheet_url}: {e}")
                continue
            if css.is_success:
                extract_colors_from_style_string(css.text, color_map)
                fetched += 1

        if fetched == 0:
            raise StrategyFailed("Linked stylesheet analysis failed: no stylesheet could be fetched")

        logger.debug(f"Analyzed {fetched} linked stylesheets for {url}")
        return palette_from_color_map(color_map)

    async def fetch_and_parse(self, url: str) -> Palette:
        try:
            response = await self._get_page(url, self.config.timeout_direct_fetch)
        except httpx.HTTPError as e:
            raise StrategyFailed(f"Fetch and parse failed: {e}") from e
        if not response.is_success:
            raise StrategyFailed(f"Fetch and parse failed: status {response.status_code}")
        return self._palette_from_html(response.text)

    # ------------------------------------------------------------------
    # Metadata / heuristics
    # ------------------------------------------------------------------

    async def metadata(self, url: str) -> Palette:
        """Brand table first, then theme meta tags fetched through a proxy."""
        domain = urlsplit(url).hostname or ""
        palette = get_domain_based_colors(domain)
        if palette is not None:
            return palette

        palette = await self.extract_meta_colors(url)
        if palette is not None:
            return palette

        raise StrategyFailed("Metadata analysis failed: No metadata colors found")

    async def extract_meta_colors(self, url: str) -> Optional[Palette]:
        proxy_url = self.config.metadata_proxy_template.format(url=quote(url, safe=""))
        try:
            response = await self.client.get(proxy_url, timeout=self.config.timeout_metadata)
            if not response.is_success:
                return None
            data: Dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Meta color extraction failed: {e}")
            return None

        html = data.get("contents") if isinstance(data, dict) else None
        color_map = extract_meta_colors_from_html(html or "")
        if not color_map:
            return None
        return palette_from_color_map(color_map)

    # ------------------------------------------------------------------

    async def _get_page(self, url: str, timeout: float) -> httpx.Response:
        return await self.client.get(url, headers={"User-Agent": self.config.user_agent},
                                     timeout=timeout)

    @staticmethod
    def _palette_from_html(html: str) -> Palette:
        return palette_from_color_map(parse_html(html).build_color_map())


def build_strategies(config: ExtractorConfig, client: httpx.AsyncClient,
                     analyze_screenshot: ScreenshotAnalyzer) -> Tuple[Strategy, ...]:
    """
    Build the ordered strategy list for a configuration.

    Headless, SSR and CSS analysis are included only when external
    extraction and their own flag are enabled. Metadata is always last.
    """
    impl = WebpageStrategies(config, client, analyze_screenshot)
    strategies: List[Strategy] = []

    external = config.enable_external_url_extraction
    if external and config.enable_headless_providers:
        strategies.append(Strategy("headless", impl.headless))
    if external and config.enable_ssr_providers:
        strategies.append(Strategy("server_side_rendering", impl.server_side_rendering))
    if external and config.enable_cors_proxies:
        strategies.append(Strategy("css_analysis", impl.css_analysis))
    strategies.append(Strategy("metadata", impl.metadata))

    logger.debug(f"Built URL strategies: {[s.name for s in strategies]}")
    return tuple(strategies)
