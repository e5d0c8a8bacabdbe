"""
Palette Sniffer Reliability
Error taxonomy, retry classification and backoff timing for palette extraction.
"""
from typing import Tuple


class PaletteSnifferError(Exception):
    """Base class for all extraction errors."""
    pass


class ImageDecodeError(PaletteSnifferError):
    """Input image is unreadable or corrupt. Surfaced to the caller."""
    pass


class InvalidUrlError(PaletteSnifferError, ValueError):
    """URL cannot be normalized into an http(s) address with a host."""
    pass


class ChannelError(PaletteSnifferError):
    """Offloaded extraction failed. Recovered locally by the synchronous path."""
    pass


class RateLimitExceeded(PaletteSnifferError):
    """Too many URL analyses for a domain inside the rate window."""

    def __init__(self, domain: str, retry_after: float = 0.0):
        self.domain = domain
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit exceeded for {domain}. Please wait before making another request."
        )


class NonRetryableNetworkError(PaletteSnifferError):
    """Network failure that will not improve on retry (CORS-like, blocked, refused)."""
    pass


class StrategyFailed(PaletteSnifferError):
    """A single URL strategy produced no evidence. Retryable."""
    pass


class StrategyExhausted(PaletteSnifferError):
    """Every URL strategy failed. Internal; triggers the deterministic fallback."""
    pass


NON_RETRYABLE_PATTERNS: Tuple[str, ...] = (
    "CORS",
    "Access-Control-Allow-Origin",
    "cross-origin",
    "blocked by CORS policy",
    "NetworkError",
    "TypeError",
    "ReferenceError",
)


def is_non_retryable_error(error: BaseException) -> bool:
    """
    Classify an error as non-retryable by substring match.

    Both the message and the exception class name are checked, so a
    ``TypeError`` or a ``NonRetryableNetworkError`` always classifies as
    non-retryable regardless of its message.
    """
    message = str(error)
    name = type(error).__name__
    return any(pattern in message or pattern in name for pattern in NON_RETRYABLE_PATTERNS)


def backoff_delay(retry_index: int, base: float = 2.0) -> float:
    """Seconds to wait before retry ``retry_index`` (1-based). The first attempt never waits."""
    if retry_index <= 0:
        return 0.0
    return float(base ** retry_index)
