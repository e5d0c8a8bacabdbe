"""
Palette Sniffer Configuration
Explicit, immutable configuration threaded through every service constructor.
"""
import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

from dotenv import load_dotenv


ENV_PREFIX = "PALETTE_SNIFFER_"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass(frozen=True)
class ProviderDescriptor:
    """A remote rendering service that turns a URL into a screenshot."""
    name: str
    endpoint: str
    payload_builder: Callable[[str], Dict[str, Any]]
    method: str = "POST"
    headers: Mapping[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})

    def build_payload(self, url: str) -> Dict[str, Any]:
        return self.payload_builder(url)


@dataclass(frozen=True)
class ProxyDescriptor:
    """A CORS proxy that returns the raw HTML of the target page."""
    name: str
    url_template: str
    headers: Mapping[str, str] = field(default_factory=dict)
    quote_target: bool = True

    def build_url(self, url: str) -> str:
        target = quote(url, safe="") if self.quote_target else url
        return self.url_template.format(url=target)


def _browserless_payload(url: str) -> Dict[str, Any]:
    return {
        "url": url,
        "viewport": {"width": 1280, "height": 720},
        "waitFor": 2000,
        "options": {"fullPage": False, "type": "png", "quality": 80},
    }


def _puppeteer_payload(url: str) -> Dict[str, Any]:
    return {
        "url": url,
        "viewport": {"width": 1280, "height": 720},
        "waitUntil": "networkidle2",
        "timeout": 30000,
    }


def _playwright_payload(url: str) -> Dict[str, Any]:
    return {
        "url": url,
        "viewport": {"width": 1280, "height": 720},
        "waitForLoadState": "networkidle",
    }


def _render_payload(url: str) -> Dict[str, Any]:
    return {"url": url, "viewport": {"width": 1280, "height": 720}, "waitFor": 3000}


def _vercel_payload(url: str) -> Dict[str, Any]:
    return {"url": url, "width": 1280, "height": 720, "wait": 3000}


DEFAULT_HEADLESS_PROVIDERS: Tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        name="browserless",
        endpoint="https://chrome.browserless.io/screenshot",
        payload_builder=_browserless_payload,
        headers={"Content-Type": "application/json", "Cache-Control": "no-cache"},
    ),
    ProviderDescriptor(
        name="puppeteer-api",
        endpoint="https://api.puppeteer.dev/screenshot",
        payload_builder=_puppeteer_payload,
    ),
    ProviderDescriptor(
        name="playwright-api",
        endpoint="https://api.playwright.dev/screenshot",
        payload_builder=_playwright_payload,
    ),
)

DEFAULT_SSR_PROVIDERS: Tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        name="render-api",
        endpoint="https://api.render.com/v1/services/screenshot",
        payload_builder=_render_payload,
    ),
    ProviderDescriptor(
        name="vercel-api",
        endpoint="https://api.vercel.com/v1/screenshot",
        payload_builder=_vercel_payload,
    ),
)

DEFAULT_CORS_PROXIES: Tuple[ProxyDescriptor, ...] = (
    ProxyDescriptor(
        name="cors-proxy-1",
        url_template="https://api.codetabs.com/v1/proxy?quest={url}",
        headers={"User-Agent": DEFAULT_USER_AGENT},
    ),
    ProxyDescriptor(
        name="cors-proxy-2",
        url_template="https://corsproxy.io/?{url}",
        headers={"User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"},
    ),
    ProxyDescriptor(
        name="cors-proxy-3",
        url_template="https://cors-anywhere.herokuapp.com/{url}",
        headers={"X-Requested-With": "XMLHttpRequest"},
        quote_target=False,
    ),
)


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(ENV_PREFIX + name)
    return int(value) if value not in (None, "") else default


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = environ.get(ENV_PREFIX + name)
    return float(value) if value not in (None, "") else default


@dataclass(frozen=True)
class ExtractorConfig:
    """Configuration for the extraction engine, resolver and API."""

    # Feature flags
    enable_external_url_extraction: bool = True
    enable_headless_providers: bool = False
    enable_ssr_providers: bool = False
    enable_cors_proxies: bool = True
    enable_worker_offload: bool = True

    # Provider descriptors
    headless_providers: Tuple[ProviderDescriptor, ...] = DEFAULT_HEADLESS_PROVIDERS
    ssr_providers: Tuple[ProviderDescriptor, ...] = DEFAULT_SSR_PROVIDERS
    cors_proxies: Tuple[ProxyDescriptor, ...] = DEFAULT_CORS_PROXIES
    metadata_proxy_template: str = "https://api.allorigins.win/get?url={url}"
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

    # Retry policy
    max_retries: int = 2
    backoff_base: float = 2.0

    # Timeouts (seconds)
    timeout_headless: float = 30.0
    timeout_ssr: float = 30.0
    timeout_cors_proxy: float = 15.0
    timeout_stylesheet: float = 20.0
    timeout_direct_fetch: float = 15.0
    timeout_metadata: float = 15.0

    # HTML evidence
    min_html_length: int = 500
    max_linked_stylesheets: int = 5

    # Cache and rate limiting
    cache_ttl_seconds: float = 30 * 60
    cache_max_entries: int = 100
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: float = 60.0

    # Image pipeline
    max_image_edge: int = 800
    image_k: int = 32
    screenshot_fallback_k: int = 8
    alpha_threshold: int = 128
    sample_step: int = 16
    fallback_sample_step: int = 4
    kmeans_max_iterations: int = 50
    worker_count: int = 1
    max_file_mb: int = 10

    # Logging
    log_level: str = "INFO"

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_mb * 1024 * 1024

    def with_overrides(self, **overrides: Any) -> "ExtractorConfig":
        """Return a copy with selected fields replaced."""
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExtractorConfig":
        """
        Build configuration from ``PALETTE_SNIFFER_*`` environment variables.

        A ``.env`` file is loaded first when reading from the process environment.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        defaults = cls()
        return cls(
            enable_external_url_extraction=_env_bool(
                environ, "ENABLE_EXTERNAL_URL_EXTRACTION", defaults.enable_external_url_extraction
            ),
            enable_headless_providers=_env_bool(
                environ, "ENABLE_HEADLESS_PROVIDERS", defaults.enable_headless_providers
            ),
            enable_ssr_providers=_env_bool(environ, "ENABLE_SSR_PROVIDERS", defaults.enable_ssr_providers),
            enable_cors_proxies=_env_bool(environ, "ENABLE_CORS_PROXIES", defaults.enable_cors_proxies),
            enable_worker_offload=_env_bool(environ, "ENABLE_WORKER_OFFLOAD", defaults.enable_worker_offload),
            max_retries=_env_int(environ, "MAX_RETRIES", defaults.max_retries),
            backoff_base=_env_float(environ, "BACKOFF_BASE", defaults.backoff_base),
            timeout_headless=_env_float(environ, "TIMEOUT_HEADLESS", defaults.timeout_headless),
            timeout_ssr=_env_float(environ, "TIMEOUT_SSR", defaults.timeout_ssr),
            timeout_cors_proxy=_env_float(environ, "TIMEOUT_CORS_PROXY", defaults.timeout_cors_proxy),
            timeout_stylesheet=_env_float(environ, "TIMEOUT_STYLESHEET", defaults.timeout_stylesheet),
            timeout_direct_fetch=_env_float(environ, "TIMEOUT_DIRECT_FETCH", defaults.timeout_direct_fetch),
            timeout_metadata=_env_float(environ, "TIMEOUT_METADATA", defaults.timeout_metadata),
            cache_ttl_seconds=_env_float(environ, "CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
            cache_max_entries=_env_int(environ, "CACHE_MAX_ENTRIES", defaults.cache_max_entries),
            rate_limit_max_requests=_env_int(
                environ, "RATE_LIMIT_MAX_REQUESTS", defaults.rate_limit_max_requests
            ),
            rate_limit_window_seconds=_env_float(
                environ, "RATE_LIMIT_WINDOW_SECONDS", defaults.rate_limit_window_seconds
            ),
            max_image_edge=_env_int(environ, "MAX_IMAGE_EDGE", defaults.max_image_edge),
            image_k=_env_int(environ, "IMAGE_K", defaults.image_k),
            sample_step=_env_int(environ, "SAMPLE_STEP", defaults.sample_step),
            worker_count=_env_int(environ, "WORKER_COUNT", defaults.worker_count),
            max_file_mb=_env_int(environ, "MAX_FILE_MB", defaults.max_file_mb),
            log_level=environ.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level),
        )
