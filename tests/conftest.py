import json

import pytest

import hive_api


def raw_post(author, permlink, created="2024-01-01T00:00:00", **extra):
    post = {
        "author": author,
        "permlink": permlink,
        "title": f"{author} {permlink}",
        "body": "hello hive",
        "created": created,
        "children": 0,
        "active_votes": [],
        "json_metadata": "{}",
        "pending_payout_value": "0.000 HBD",
    }
    post.update(extra)
    return post


def profile_metadata(name=None, image=None, about=None):
    profile = {}
    if name is not None:
        profile["name"] = name
    if image is not None:
        profile["profile_image"] = image
    if about is not None:
        profile["about"] = about
    return json.dumps({"profile": profile})


class FakeListing:
    """Stands in for hive_api.get_discussions; serves queued pages and records calls."""

    def __init__(self, *pages):
        self.pages = list(pages)
        self.calls = []

    def __call__(self, mode, params):
        self.calls.append((mode, dict(params)))
        if not self.pages:
            return []
        page = self.pages.pop(0)
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture(autouse=True)
def quiet_log(monkeypatch):
    monkeypatch.setattr(hive_api, "DEBUG_MODE", False)
    hive_api.debug_log.clear()


@pytest.fixture
def listing(monkeypatch):
    def install(*pages):
        fake = FakeListing(*pages)
        monkeypatch.setattr(hive_api, "get_discussions", fake)
        return fake
    return install
