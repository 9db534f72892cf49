from datetime import datetime, timedelta, timezone

import pytest

from posts import (
    LATEST,
    ListingQuery,
    PageCursor,
    SortMode,
    filter_recent,
    format_reputation,
    normalize_post,
    normalize_posts,
    parse_created,
    parse_profile,
    truncate_body,
    unique_authors,
)

from conftest import raw_post, profile_metadata


def test_normalize_uses_profile_metadata():
    raw = raw_post("alice", "hello", json_metadata=profile_metadata(name="Alice", image="https://img/alice.png"))

    result = normalize_post(raw)

    assert not result.fallback_applied
    assert result.post.author_display_name == "Alice"
    assert result.post.author_avatar_url == "https://img/alice.png"


@pytest.mark.parametrize("metadata", ["", "not json {", "[1, 2]", '{"profile": "x"}', '{"tags": ["intro"]}'])
def test_normalize_falls_back_on_bad_metadata(metadata):
    result = normalize_post(raw_post("bob", "hi", json_metadata=metadata))

    assert result.fallback_applied
    assert result.post.author_display_name == "bob"
    assert result.post.author_avatar_url == "https://images.hive.blog/u/bob/avatar"


def test_partial_profile_keeps_handle_and_default_avatar():
    result = normalize_post(raw_post("carol", "hi", json_metadata=profile_metadata(about="just about")))

    assert not result.fallback_applied
    assert result.post.author_display_name == "carol"
    assert result.post.author_avatar_url.endswith("/u/carol/avatar")


def test_normalize_fills_missing_fields():
    post = normalize_post({"author": "dave", "permlink": "x"}).post

    assert post.title == ""
    assert post.replies == 0
    assert post.active_votes == []
    assert post.pending_payout_value == "0.000 HBD"
    assert post.created == LATEST


def test_votes_and_url():
    raw = raw_post("erin", "my-intro", children="3",
                   active_votes=[{"percent": 10000}, {"percent": 5000}, "junk", {"percent": None}])

    post = normalize_post(raw).post
    data = post.to_dict()

    assert post.replies == 3
    assert post.active_votes == [10000, 5000, 0]
    assert data["vote_count"] == 3
    assert data["vote_weight"] == 150
    assert data["url"] == "https://hive.blog/@erin/my-intro"
    assert data["created"] == "2024-01-01T00:00:00"


def test_normalize_posts_keeps_order():
    posts = normalize_posts([raw_post("a", "1"), raw_post("b", "2")])
    assert [p.author for p in posts] == ["a", "b"]


def test_parse_profile_accepts_dict():
    profile = parse_profile({"profile": {"name": "  Frank  "}}, "frank")
    assert profile.display_name == "Frank"


def test_parse_created_is_utc():
    parsed = parse_created("2024-03-05T10:20:30")
    assert parsed == datetime(2024, 3, 5, 10, 20, 30, tzinfo=timezone.utc)
    assert parse_created("2024-03-05T10:20:30Z") == parsed
    assert parse_created("garbage") is None
    assert parse_created(None) is None


@pytest.mark.parametrize("raw, expected", [
    (0, 25),
    ("0", 25),
    (None, 25),
    (1_000_000_000, 25),
    (10**10, 34),
    (1_000_000_000_000, 52),
    (-1_000_000_000_000, 52),
    ("95832978796820", 69),
])
def test_format_reputation(raw, expected):
    assert format_reputation(raw) == expected


def test_truncate_body():
    assert truncate_body("short") == "short"
    text = "word " * 100
    cut = truncate_body(text, 22)
    assert cut == "word word word word..."
    assert truncate_body("x" * 30, 10) == "x" * 10 + "..."


def test_filter_recent():
    now = datetime(2024, 5, 10, tzinfo=timezone.utc)
    fresh = normalize_post(raw_post("a", "1", created=(now - timedelta(days=2)).strftime("%Y-%m-%dT%H:%M:%S"))).post
    old = normalize_post(raw_post("b", "2", created="2024-01-01T00:00:00")).post

    assert filter_recent([fresh, old], 7, now=now) == [fresh]


def test_filter_recent_drops_undated_posts():
    undated = normalize_post(raw_post("c", "3", created="not a date")).post
    missing = normalize_post({"author": "d", "permlink": "4"}).post

    assert filter_recent([undated, missing], 7) == []


def test_unique_authors():
    posts = normalize_posts([raw_post("a", "1"), raw_post("a", "2"), raw_post("b", "3")])
    assert unique_authors(posts) == 2


def test_sort_mode_parse():
    assert SortMode.parse("Hot") is SortMode.HOT
    assert SortMode.TRENDING.method == "condenser_api.get_discussions_by_trending"
    with pytest.raises(ValueError):
        SortMode.parse("blog")
    with pytest.raises(ValueError):
        SortMode.parse("votes")


def test_listing_query_params():
    assert ListingQuery("intro", 13).to_params() == {"tag": "intro", "limit": 13}
    params = ListingQuery("intro", 13, PageCursor("a", "b")).to_params()
    assert params["start_author"] == "a"
    assert params["start_permlink"] == "b"
