"""webguard - SSRF-hardened web search and fetch.

Validates and pins every outbound connection to public addresses, follows
redirects one checked hop at a time, and wraps web search providers behind
a rate-limited, cached client.
"""

__version__ = "0.1.0"

from webguard.config import Settings, get_settings, reload_settings
from webguard.logging import configure_logging

__all__ = ["Settings", "configure_logging", "get_settings", "reload_settings", "__version__"]
