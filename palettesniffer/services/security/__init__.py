"""
Request protection services.
"""

from .rate_limiter import RateLimit, RateLimiter, RateLimitStatus

__all__ = ['RateLimit', 'RateLimiter', 'RateLimitStatus']
