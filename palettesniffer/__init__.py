"""
Palette Sniffer

Color palette extraction from raster images and webpages: pixel sampling,
k-means clustering with worker offload, and a multi-strategy URL resolver
with retry, rate limiting and caching.
"""

__version__ = "1.0.0"
