"""
SiteMapper package initializer.
Defines package version and exposes the main entry points.
"""
__version__ = "0.1.0"

from site_mapper.config import MapperConfig, load_config
from site_mapper.engine import SitemapRequest, SitemapResponse, SitemapService, generate_sitemap

__all__ = [
    "__version__",
    "MapperConfig",
    "load_config",
    "SitemapRequest",
    "SitemapResponse",
    "SitemapService",
    "generate_sitemap",
]
