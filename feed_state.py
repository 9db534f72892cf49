"""
Per-visitor feed and search state.

A FeedSession is the only place the accumulated feed, its cursor and the
current username search live. Every request starts with a ``begin_*`` call
that hands out a token; results are applied only while that token is still
the latest one, so a slow response can never overwrite a newer one.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pager import FirstPostResult, Page
from posts import PageCursor, Post, SortMode


class NoMorePages(LookupError):
    """Raised when "load more" is asked for without anything to continue from."""


@dataclass
class FeedSession:
    sort_mode: SortMode = SortMode.CREATED
    tag: str = ""
    page_size: int = 12
    items: List[Post] = field(default_factory=list)
    cursor: Optional[PageCursor] = None
    has_more: bool = False
    error: Optional[str] = None
    search_term: str = ""
    first_post: Optional[FirstPostResult] = None
    search_error: Optional[str] = None
    feed_token: int = 0
    search_token: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def _next_feed_token(self) -> int:
        self.feed_token += 1
        return self.feed_token

    # --- feed ---------------------------------------------------------------
    def begin_feed(self, sort_mode: SortMode, tag: str, page_size: int) -> int:
        """Reset the feed for a fresh first page and return its request token."""
        with self.lock:
            self.sort_mode = sort_mode
            self.tag = tag
            self.page_size = page_size
            self.items = []
            self.cursor = None
            self.has_more = False
            self.error = None
            return self._next_feed_token()

    def begin_more(self):
        """Return ``(token, sort_mode, tag, page_size, cursor)`` for the next page."""
        with self.lock:
            if not self.has_more or self.cursor is None:
                raise NoMorePages("Nothing more to load; refresh the feed first")
            return self._next_feed_token(), self.sort_mode, self.tag, self.page_size, self.cursor

    def apply_page(self, token: int, page: Page, append: bool = True) -> bool:
        with self.lock:
            if token != self.feed_token:
                return False
            self.items = self.items + page.items if append else list(page.items)
            if page.next_cursor is not None:
                self.cursor = page.next_cursor
            self.has_more = page.has_more and self.cursor is not None
            self.error = None
            return True

    def fail(self, token: int, message: str) -> bool:
        """Drop the displayed feed and disable "load more" until a fresh request."""
        with self.lock:
            if token != self.feed_token:
                return False
            self.items = []
            self.cursor = None
            self.has_more = False
            self.error = message
            return True

    # --- username search ------------------------------------------------------
    def begin_search(self, term: str) -> int:
        with self.lock:
            self.search_term = term
            self.first_post = None
            self.search_error = None
            self.search_token += 1
            return self.search_token

    def apply_first_post(self, token: int, result: FirstPostResult) -> bool:
        with self.lock:
            if token != self.search_token:
                return False
            self.first_post = result
            self.search_error = None
            return True

    def fail_search(self, token: int, message: str) -> bool:
        with self.lock:
            if token != self.search_token:
                return False
            self.first_post = None
            self.search_error = message
            return True

    def clear_search(self) -> None:
        with self.lock:
            self.search_term = ""
            self.first_post = None
            self.search_error = None
            self.search_token += 1


class SessionStore:
    """Thread-safe map of visitor id -> FeedSession."""

    def __init__(self, max_sessions: int = 1000):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, FeedSession] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    def get(self, sid: str) -> FeedSession:
        with self._lock:
            state = self._sessions.get(sid)
            if state is None:
                if len(self._sessions) >= self.max_sessions:
                    # dicts keep insertion order; evict the oldest visitor
                    self._sessions.pop(next(iter(self._sessions)))
                state = FeedSession()
                self._sessions[sid] = state
            return state

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
