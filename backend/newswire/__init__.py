"""
Newswire: news ingestion with AI summaries and semantic embeddings.
"""

__version__ = "0.1.0"
