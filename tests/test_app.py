import pytest

import app as webapp
import hive_api
from posts import SortMode

from conftest import raw_post


@pytest.fixture
def client():
    webapp.app.config["TESTING"] = True
    with webapp.app.test_client() as client:
        yield client


def batch(author, count, start=0):
    return [raw_post(author, f"p{i}") for i in range(start, start + count)]


def test_index_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"Hive Intro Explorer" in resp.data


def test_feed_then_load_more(client, listing):
    first = batch("alice", 13)
    second = [first[11]] + batch("bob", 3)
    fake = listing(first, second)

    resp = client.get("/api/feed?sort=hot&tag=introduceyourself&limit=12")
    data = resp.get_json()

    assert resp.status_code == 200
    assert data["success"]
    assert len(data["posts"]) == 12
    assert data["has_more"]
    assert data["next_cursor"] == {"author": "alice", "permlink": "p11"}
    assert data["sort"] == "hot"
    assert data["loaded"] == 12
    assert data["unique_authors"] == 1
    assert "_stats" in data

    resp = client.get("/api/feed/more")
    data = resp.get_json()

    assert data["success"]
    assert [p["author"] for p in data["posts"]] == ["bob"] * 3
    assert data["loaded"] == 15
    assert data["unique_authors"] == 2
    assert not data["has_more"]
    mode, params = fake.calls[1]
    assert mode == "hot"
    assert params["start_permlink"] == "p11"

    resp = client.get("/api/feed/more")
    assert resp.status_code == 409
    assert not resp.get_json()["has_more"]


def test_feed_failure_reports_502_and_blocks_more(client, listing):
    listing(batch("alice", 13))

    assert client.get("/api/feed?limit=12").status_code == 200

    listing(hive_api.TransportError("Connection failed - node may be down"))
    resp = client.get("/api/feed/more")
    data = resp.get_json()

    assert resp.status_code == 502
    assert not data["success"]
    assert "node may be down" in data["error"]
    assert client.get("/api/feed/more").status_code == 409


@pytest.mark.parametrize("route", ["/api/feed?limit=500", "/api/page?limit=100"])
def test_large_limit_stays_within_listing_limit(client, listing, route):
    fake = listing(batch("alice", 100))

    resp = client.get(route)
    data = resp.get_json()

    assert resp.status_code == 200
    assert fake.calls[0][1]["limit"] <= 100
    assert len(data["posts"]) == 99
    assert data["has_more"]


def visitor(client):
    with client.session_transaction() as sess:
        return webapp.sessions.get(sess["sid"])


def test_superseded_feed_failure_is_stale(client, listing, monkeypatch):
    listing([])
    client.get("/api/feed")
    state = visitor(client)

    def overtaken(mode, params):
        state.begin_feed(SortMode.TRENDING, "", 5)
        raise hive_api.TransportError("Connection failed - node may be down")

    monkeypatch.setattr(hive_api, "get_discussions", overtaken)
    resp = client.get("/api/feed?sort=hot")

    assert resp.status_code == 409
    assert resp.get_json()["stale"]
    assert state.sort_mode is SortMode.TRENDING
    assert state.error is None


def test_superseded_search_failure_is_stale(client, listing, monkeypatch):
    listing([])
    client.get("/api/first-post/bob")
    state = visitor(client)

    def overtaken(mode, params):
        state.begin_search("carol")
        raise hive_api.RemoteError("Assert Exception")

    monkeypatch.setattr(hive_api, "get_discussions", overtaken)
    resp = client.get("/api/first-post/bob")

    assert resp.status_code == 409
    assert resp.get_json()["stale"]
    assert state.search_term == "carol"
    assert state.search_error is None


@pytest.mark.parametrize("query",["sort=votes", "sort=blog", "limit=0", "limit=abc", "days=-1"])
def test_feed_rejects_bad_input(client, listing, query):
    fake = listing()
    resp = client.get(f"/api/feed?{query}")
    assert resp.status_code == 400
    assert fake.calls == []


def test_feed_card_has_excerpt(client, listing):
    listing([raw_post("alice", "long", body="word " * 100)])

    data = client.get("/api/feed?tag=").get_json()
    card = data["posts"][0]

    assert card["excerpt"].endswith("...")
    assert len(card["excerpt"]) <= 253
    assert card["truncated"]
    assert card["url"] == "https://hive.blog/@alice/long"


def test_feed_days_filter(client, listing):
    listing([raw_post("alice", "old", created="2015-01-01T00:00:00")])

    data = client.get("/api/feed?days=7").get_json()

    assert data["posts"] == []
    assert data["filtered_out"] == 1


def test_stateless_page(client, listing):
    fake = listing([raw_post("alice", "p1")] + batch("bob", 2))

    resp = client.get("/api/page?sort=created&tag=&limit=5&start_author=alice&start_permlink=p1")
    data = resp.get_json()

    assert data["success"]
    assert len(data["posts"]) == 2
    assert not data["has_more"]
    assert fake.calls[0][1]["limit"] == 6


def test_stateless_page_needs_both_cursor_parts(client, listing):
    listing()
    assert client.get("/api/page?start_author=alice").status_code == 400


def test_first_post_found(client, listing):
    listing([raw_post("bob", "newer", created="2024-01-01T00:00:00"),
             raw_post("bob", "older", created="2019-01-01T00:00:00")])

    data = client.get("/api/first-post/@Bob").get_json()

    assert data["success"]
    assert data["post"]["permlink"] == "older"
    assert data["scanned"] == 2
    assert not data["truncated"]


def test_first_post_not_found(client, listing):
    listing([])

    resp = client.get("/api/first-post/nobody")
    data = resp.get_json()

    assert resp.status_code == 200
    assert not data["success"]
    assert data["not_found"]


def test_first_post_remote_error(client, listing):
    listing(hive_api.RemoteError("Assert Exception"))
    resp = client.get("/api/first-post/bob")
    assert resp.status_code == 502


def test_clear_first_post(client):
    resp = client.delete("/api/first-post")
    assert resp.get_json()["success"]


def test_user_profile(client, listing, monkeypatch):
    monkeypatch.setattr(hive_api, "get_accounts",
                        lambda names: [{"name": "alice", "reputation": 0, "post_count": 2}])
    listing(batch("alice", 2))

    data = client.get("/api/user/alice").get_json()

    assert data["account"]["name"] == "alice"
    assert data["account"]["reputation"] == 25
    assert len(data["posts"]) == 2


def test_unknown_user(client, monkeypatch):
    monkeypatch.setattr(hive_api, "get_accounts", lambda names: [])
    assert client.get("/api/user/ghost").status_code == 404


def test_single_post(client, monkeypatch):
    monkeypatch.setattr(hive_api, "get_content", lambda a, p: raw_post(a, p))
    monkeypatch.setattr(hive_api, "get_content_replies", lambda a, p: [raw_post("bob", "re", depth=1)])
    monkeypatch.setattr(hive_api, "get_accounts", lambda names: [])

    data = client.get("/api/post/alice/intro").get_json()

    assert data["post"]["permlink"] == "intro"
    assert data["account"] is None
    assert len(data["comments"]) == 1


def test_missing_post(client, monkeypatch):
    monkeypatch.setattr(hive_api, "get_content", lambda a, p: None)
    assert client.get("/api/post/alice/nope").status_code == 404


def test_log_endpoint(client, listing):
    listing([])
    client.get("/api/feed")

    data = client.get("/api/log").get_json()

    assert any(e["message"].startswith("FEED:") for e in data["entries"])
