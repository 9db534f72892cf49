"""
Post records and the raw-record normalizer.

A raw Hive record (condenser_api discussion or content object) becomes a
Post through normalize_post(). Profile metadata is best effort: anything
missing or malformed falls back to the author handle and the avatar-by-handle
URL, and the result says so through ``fallback_applied``.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

AVATAR_URL = "https://images.hive.blog/u/{author}/avatar"
POST_URL = "https://hive.blog/@{author}/{permlink}"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Sorts unparsable timestamps after every real one.
LATEST = datetime.max.replace(tzinfo=timezone.utc)


class SortMode(str, Enum):
    CREATED = "created"
    HOT = "hot"
    TRENDING = "trending"
    BLOG = "blog"

    @property
    def method(self) -> str:
        return f"condenser_api.get_discussions_by_{self.value}"

    @classmethod
    def parse(cls, value: str) -> "SortMode":
        """Map a user-facing sort string to a feed mode; blog is not selectable."""
        try:
            mode = cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"Unknown sort mode: {value!r}") from None
        if mode is cls.BLOG:
            raise ValueError("The blog listing is not a feed sort mode")
        return mode


@dataclass(frozen=True)
class PageCursor:
    author: str
    permlink: str

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "PageCursor":
        return cls(author=raw.get("author", ""), permlink=raw.get("permlink", ""))


@dataclass(frozen=True)
class ListingQuery:
    tag: str
    limit: int
    cursor: Optional[PageCursor] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"tag": self.tag, "limit": self.limit}
        if self.cursor is not None:
            params["start_author"] = self.cursor.author
            params["start_permlink"] = self.cursor.permlink
        return params


@dataclass
class Post:
    title: str
    body: str
    author: str
    permlink: str
    created: datetime
    created_raw: str
    replies: int
    active_votes: List[int]
    json_metadata: str
    author_display_name: str
    author_avatar_url: str
    pending_payout_value: str
    depth: int = 0
    parent_author: str = ""

    @property
    def url(self) -> str:
        return POST_URL.format(author=self.author, permlink=self.permlink)

    @property
    def cursor(self) -> PageCursor:
        return PageCursor(self.author, self.permlink)

    @property
    def vote_weight(self) -> float:
        return vote_weight(self.active_votes)

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'body': self.body,
            'author': self.author,
            'permlink': self.permlink,
            'created': self.created_raw,
            'url': self.url,
            'replies': self.replies,
            'active_votes': [{'percent': p} for p in self.active_votes],
            'vote_count': len(self.active_votes),
            'vote_weight': self.vote_weight,
            'json_metadata': self.json_metadata,
            'author_display_name': self.author_display_name,
            'author_avatar_url': self.author_avatar_url,
            'pending_payout_value': self.pending_payout_value,
            'depth': self.depth,
            'parent_author': self.parent_author,
        }


@dataclass(frozen=True)
class NormalizedPost:
    """Normalizer result: the post, and whether profile fallbacks were used."""
    post: Post
    fallback_applied: bool


@dataclass
class Profile:
    display_name: str
    avatar_url: str
    about: str = ""
    fallback_applied: bool = True


@dataclass
class Account:
    name: str
    display_name: str
    avatar_url: str
    about: str
    reputation: int
    post_count: int = 0
    created: str = ""

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'display_name': self.display_name,
            'avatar_url': self.avatar_url,
            'about': self.about,
            'reputation': self.reputation,
            'post_count': self.post_count,
            'created': self.created,
        }


# ============================================================================
# HELPERS
# ============================================================================
def avatar_url_for(author: str) -> str:
    return AVATAR_URL.format(author=author)


def parse_created(value: Any) -> Optional[datetime]:
    """Parse a naive node timestamp as UTC; None when it is not a timestamp."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.strptime(text[:19], TIMESTAMP_FORMAT)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def created_sort_key(raw: Dict[str, Any]) -> datetime:
    return parse_created(raw.get("created")) or LATEST


def parse_profile(json_metadata: Any, author: str) -> Profile:
    """Read ``profile.name`` / ``profile.profile_image`` / ``profile.about`` from a metadata blob."""
    profile = Profile(display_name=author, avatar_url=avatar_url_for(author))

    if isinstance(json_metadata, dict):
        metadata = json_metadata
    elif isinstance(json_metadata, str) and json_metadata.strip():
        try:
            metadata = json.loads(json_metadata)
        except ValueError:
            return profile
    else:
        return profile

    if not isinstance(metadata, dict):
        return profile
    data = metadata.get("profile")
    if not isinstance(data, dict):
        return profile

    name = data.get("name")
    image = data.get("profile_image")
    about = data.get("about")
    if isinstance(name, str) and name.strip():
        profile.display_name = name.strip()
    if isinstance(image, str) and image.strip():
        profile.avatar_url = image.strip()
    if isinstance(about, str):
        profile.about = about
    profile.fallback_applied = False
    return profile


def _vote_percents(votes: Any) -> List[int]:
    percents = []
    for vote in votes or []:
        if not isinstance(vote, dict):
            continue
        try:
            percents.append(int(vote.get("percent", 0) or 0))
        except (TypeError, ValueError):
            percents.append(0)
    return percents


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def vote_weight(percents: Iterable[int]) -> float:
    return sum(percents) / 100


def format_reputation(raw: Any) -> int:
    """Turn a raw integer reputation into the familiar 25-based score."""
    try:
        rep = int(raw or 0)
    except (TypeError, ValueError):
        return 25
    if rep == 0:
        return 25
    score = max(math.log10(abs(rep)) - 9, 0)
    return math.floor(score * 9 + 25)


def truncate_body(body: str, max_length: int = 250) -> str:
    """Cut a body for card display, preferring the last space before the limit."""
    if len(body) <= max_length:
        return body
    truncated = body[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > -1:
        truncated = truncated[:last_space]
    return truncated + "..."


def filter_recent(posts: Iterable[Post], days: int, now: Optional[datetime] = None) -> List[Post]:
    """Keep posts created within the last ``days`` days; undated posts are dropped."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    return [p for p in posts if p.created != LATEST and p.created >= cutoff]


def unique_authors(posts: Iterable[Post]) -> int:
    return len({p.author for p in posts})


# ============================================================================
# NORMALIZER
# ============================================================================
def normalize_post(raw: Dict[str, Any]) -> NormalizedPost:
    """Build the display-ready Post for one raw record. Never raises on bad metadata."""
    author = _as_str(raw.get("author"))
    json_metadata = _as_str(raw.get("json_metadata"))
    profile = parse_profile(json_metadata, author)
    created_raw = _as_str(raw.get("created"))

    post = Post(
        title=_as_str(raw.get("title")),
        body=_as_str(raw.get("body")),
        author=author,
        permlink=_as_str(raw.get("permlink")),
        created=parse_created(created_raw) or LATEST,
        created_raw=created_raw,
        replies=_as_int(raw.get("children")),
        active_votes=_vote_percents(raw.get("active_votes")),
        json_metadata=json_metadata,
        author_display_name=profile.display_name,
        author_avatar_url=profile.avatar_url,
        pending_payout_value=_as_str(raw.get("pending_payout_value")) or "0.000 HBD",
        depth=_as_int(raw.get("depth")),
        parent_author=_as_str(raw.get("parent_author")),
    )
    return NormalizedPost(post=post, fallback_applied=profile.fallback_applied)


def normalize_posts(raw_posts: Iterable[Dict[str, Any]]) -> List[Post]:
    return [normalize_post(raw).post for raw in raw_posts]


def apply_profile(post: Post, profile: Profile) -> None:
    """Overwrite a post's author fields with an account profile that parsed."""
    if profile.fallback_applied:
        return
    post.author_display_name = profile.display_name
    post.author_avatar_url = profile.avatar_url


def account_profile(raw: Dict[str, Any]) -> Profile:
    """Profile of an account record; posting metadata wins over the legacy blob."""
    name = _as_str(raw.get("name"))
    profile = parse_profile(raw.get("posting_json_metadata"), name)
    if profile.fallback_applied:
        profile = parse_profile(raw.get("json_metadata"), name)
    return profile


def account_from_raw(raw: Dict[str, Any]) -> Account:
    name = _as_str(raw.get("name"))
    profile = account_profile(raw)
    return Account(
        name=name,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        about=profile.about,
        reputation=format_reputation(raw.get("reputation")),
        post_count=_as_int(raw.get("post_count")),
        created=_as_str(raw.get("created")),
    )
