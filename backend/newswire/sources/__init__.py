"""
News source adapters for Newswire.
"""
from newswire.sources.base import NewsSource
from newswire.sources.gnews import GNewsSource

__all__ = [
    "NewsSource",
    "GNewsSource",
]
