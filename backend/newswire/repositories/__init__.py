"""
Persistence for enriched articles.
"""
from newswire.repositories.articles import ArticleRepository, ArticleStore

__all__ = [
    "ArticleRepository",
    "ArticleStore",
]
