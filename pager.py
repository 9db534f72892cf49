"""
Cursor-based walking of Hive discussion listings.

condenser_api listings page by (start_author, start_permlink) and return the
start item itself as the first entry of the next page. fetch_page() asks for
one item more than it hands back so the extra item signals that more data
exists; find_first_post() walks an account's blog backwards a bounded number
of rounds and picks the oldest post it saw.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import hive_api
from hive_api import log
from posts import (
    Account,
    ListingQuery,
    PageCursor,
    Post,
    SortMode,
    account_from_raw,
    account_profile,
    apply_profile,
    created_sort_key,
    normalize_post,
    normalize_posts,
)

# condenser_api listings refuse a limit above this.
LISTING_LIMIT = 100
# One slot goes to the look-ahead item.
MAX_PAGE_SIZE = LISTING_LIMIT - 1

FIRST_POST_PAGE_SIZE = 100
FIRST_POST_MAX_ROUNDS = 5
BLOG_PAGE_SIZE = 20


@dataclass
class Page:
    items: List[Post]
    has_more: bool
    raw_count: int = 0

    @property
    def next_cursor(self) -> Optional[PageCursor]:
        if not self.items:
            return None
        return self.items[-1].cursor


@dataclass
class FirstPostResult:
    post: Optional[Post]
    scanned: int = 0
    rounds: int = 0
    truncated: bool = False

    @property
    def found(self) -> bool:
        return self.post is not None


@dataclass
class PostDetail:
    post: Post
    comments: List[Post] = field(default_factory=list)
    account: Optional[Account] = None


def is_cursor_item(cursor: Optional[PageCursor], raw: Dict[str, Any]) -> bool:
    """True when ``raw`` is the boundary item the node repeats from the previous page."""
    if cursor is None or not isinstance(raw, dict):
        return False
    return raw.get("author") == cursor.author and raw.get("permlink") == cursor.permlink


def _drop_cursor_item(cursor: Optional[PageCursor], raw_posts: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if raw_posts and is_cursor_item(cursor, raw_posts[0]):
        return raw_posts[1:]
    return raw_posts


# ============================================================================
# DISCUSSION PAGER
# ============================================================================
def fetch_page(sort_mode, tag: str, page_size: int, cursor: Optional[PageCursor] = None) -> Page:
    """Fetch one page of a tag listing.

    Requests ``page_size + 1`` items; ``has_more`` is decided on the raw count
    before the boundary item is dropped, and the returned list never holds
    more than ``page_size`` posts. Transport and remote errors propagate.
    """
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    mode = SortMode.parse(sort_mode)
    query = ListingQuery(tag=tag or "", limit=page_size + 1, cursor=cursor)

    raw_posts = list(hive_api.get_discussions(mode.value, query.to_params()))
    has_more = len(raw_posts) > page_size

    to_process = _drop_cursor_item(cursor, raw_posts)
    items = normalize_posts(to_process)[:page_size]

    log(f"PAGE: {mode.value} tag={tag or '*'} raw={len(raw_posts)} kept={len(items)} more={has_more}", "INFO")
    return Page(items=items, has_more=has_more, raw_count=len(raw_posts))


# ============================================================================
# FIRST POST FINDER
# ============================================================================
def find_first_post(username: str, page_size: int = FIRST_POST_PAGE_SIZE,
                    max_rounds: int = FIRST_POST_MAX_ROUNDS) -> FirstPostResult:
    """Find the oldest post of ``username`` within ``max_rounds`` blog pages.

    An account with more than ``max_rounds * page_size`` posts gets the oldest
    post of the scanned window, flagged through ``truncated``.
    """
    if not 1 <= page_size <= LISTING_LIMIT or max_rounds < 1:
        raise ValueError(f"page_size must be between 1 and {LISTING_LIMIT}, max_rounds at least 1")
    username = (username or "").strip()
    if not username:
        return FirstPostResult(post=None)

    accumulated: List[Dict[str, Any]] = []
    cursor: Optional[PageCursor] = None
    rounds = 0
    truncated = False

    while rounds < max_rounds:
        query = ListingQuery(tag=username, limit=page_size, cursor=cursor)
        raw_posts = list(hive_api.get_discussions(SortMode.BLOG.value, query.to_params()))
        rounds += 1

        if not raw_posts:
            break

        # raw pages, boundary repeats included
        accumulated.extend(raw_posts)
        cursor = PageCursor.from_raw(raw_posts[-1])

        if len(raw_posts) < page_size:
            break
    else:
        truncated = True

    log(f"FIRST POST: @{username} rounds={rounds} scanned={len(accumulated)} truncated={truncated}", "INFO")

    if not accumulated:
        return FirstPostResult(post=None, rounds=rounds)

    oldest = sorted(accumulated, key=created_sort_key)[0]
    return FirstPostResult(
        post=normalize_post(oldest).post,
        scanned=len(accumulated),
        rounds=rounds,
        truncated=truncated,
    )


# ============================================================================
# ACCOUNTS, BLOG, POST DETAIL
# ============================================================================
def get_account(username: str) -> Optional[Account]:
    username = (username or "").strip()
    if not username:
        return None
    accounts = hive_api.get_accounts([username])
    if not accounts:
        return None
    return account_from_raw(accounts[0])


def fetch_blog(username: str, limit: int = BLOG_PAGE_SIZE) -> List[Post]:
    """Latest ``limit`` blog entries of an account, newest first."""
    query = ListingQuery(tag=username, limit=limit)
    raw_posts = hive_api.get_discussions(SortMode.BLOG.value, query.to_params())
    return normalize_posts(raw_posts)


def fetch_post_detail(author: str, permlink: str) -> Optional[PostDetail]:
    """One post with its direct comments; None when the node has no such post."""
    raw = hive_api.get_content(author, permlink)
    if not raw or not raw.get("author"):
        return None

    post = normalize_post(raw).post
    account = None
    try:
        accounts = hive_api.get_accounts([post.author])
    except hive_api.HiveApiError as e:
        log(f"POST: could not fetch author metadata for @{post.author}: {e}", "WARNING")
    else:
        if accounts:
            account = account_from_raw(accounts[0])
            apply_profile(post, account_profile(accounts[0]))

    comments = normalize_posts(hive_api.get_content_replies(author, permlink))
    return PostDetail(post=post, comments=comments, account=account)
