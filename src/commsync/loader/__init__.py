"""Incremental loading of older messages across channels."""

from .cursors import (
    ChannelFetcher,
    CollaboratorFetcher,
    Cursor,
    DateCursor,
    FetchPage,
    PageCursor,
    TokenCursor,
)
from .incremental import EMPTY_LOAD_COUNT_KEY, IncrementalLoader, LoadResult

__all__ = [
    "ChannelFetcher",
    "CollaboratorFetcher",
    "Cursor",
    "DateCursor",
    "EMPTY_LOAD_COUNT_KEY",
    "FetchPage",
    "IncrementalLoader",
    "LoadResult",
    "PageCursor",
    "TokenCursor",
]
