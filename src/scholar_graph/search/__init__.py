from .engine import SearchEngine
from .query import build_fulltext_query, tokenize

__all__ = ["SearchEngine", "build_fulltext_query", "tokenize"]
