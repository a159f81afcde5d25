"""Process-wide collaborators: content cache, trust store and fetcher."""

from jsrun.core.cache import ContentCache
from jsrun.core.fetch import Fetcher, HttpFetcher
from jsrun.core.trust import TrustStore

__all__ = ["ContentCache", "Fetcher", "HttpFetcher", "TrustStore"]
