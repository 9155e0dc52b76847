"""Search backend adapters.

Public API::

    from scout.search import build_default_providers
    providers = build_default_providers()
"""

from scout.search.providers import GoogleBrowserProvider, SearchProvider, build_default_providers

__all__ = ["GoogleBrowserProvider", "SearchProvider", "build_default_providers"]
