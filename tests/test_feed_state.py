import pytest

from feed_state import FeedSession, NoMorePages, SessionStore
from pager import FirstPostResult, Page
from posts import PageCursor, SortMode, normalize_posts

from conftest import raw_post


def page_of(author, count, has_more):
    return Page(items=normalize_posts([raw_post(author, f"p{i}") for i in range(count)]), has_more=has_more)


def test_first_page_then_more_accumulates():
    state = FeedSession()
    token = state.begin_feed(SortMode.HOT, "introduceyourself", 3)
    assert state.apply_page(token, page_of("a", 3, True), append=False)

    token, sort_mode, tag, size, cursor = state.begin_more()
    assert (sort_mode, tag, size) == (SortMode.HOT, "introduceyourself", 3)
    assert cursor == PageCursor("a", "p2")

    assert state.apply_page(token, page_of("b", 2, False))
    assert len(state.items) == 5
    assert state.cursor == PageCursor("b", "p1")
    assert not state.has_more


def test_stale_page_is_discarded():
    state = FeedSession()
    old = state.begin_feed(SortMode.CREATED, "", 3)
    new = state.begin_feed(SortMode.TRENDING, "", 3)

    assert not state.apply_page(old, page_of("slow", 3, True), append=False)
    assert state.items == []
    assert state.apply_page(new, page_of("fast", 2, False), append=False)
    assert {p.author for p in state.items} == {"fast"}


def test_new_feed_resets_previous_items():
    state = FeedSession()
    token = state.begin_feed(SortMode.CREATED, "", 3)
    state.apply_page(token, page_of("a", 3, True), append=False)

    state.begin_feed(SortMode.HOT, "", 3)

    assert state.items == []
    assert state.cursor is None
    assert not state.has_more


def test_more_without_cursor_raises():
    state = FeedSession()
    with pytest.raises(NoMorePages):
        state.begin_more()

    token = state.begin_feed(SortMode.CREATED, "", 3)
    state.apply_page(token, page_of("a", 2, False), append=False)
    with pytest.raises(NoMorePages):
        state.begin_more()


def test_failure_clears_feed_and_disables_more():
    state = FeedSession()
    token = state.begin_feed(SortMode.CREATED, "", 3)
    state.apply_page(token, page_of("a", 3, True), append=False)
    token, *_ = state.begin_more()

    assert state.fail(token, "node down")

    assert state.items == []
    assert state.error == "node down"
    with pytest.raises(NoMorePages):
        state.begin_more()


def test_empty_page_keeps_has_more_off():
    state = FeedSession()
    token = state.begin_feed(SortMode.CREATED, "", 3)
    state.apply_page(token, Page(items=[], has_more=True), append=False)
    assert not state.has_more


def test_search_does_not_invalidate_feed():
    state = FeedSession()
    feed_token = state.begin_feed(SortMode.CREATED, "", 3)
    search_token = state.begin_search("bob")

    assert state.apply_page(feed_token, page_of("a", 3, False), append=False)
    assert state.apply_first_post(search_token, FirstPostResult(post=None, rounds=1))


def test_cleared_search_drops_late_result():
    state = FeedSession()
    token = state.begin_search("bob")
    state.clear_search()

    assert not state.apply_first_post(token, FirstPostResult(post=None))
    assert state.search_term == ""
    assert state.first_post is None


def test_failed_search_only_counts_while_current():
    state = FeedSession()
    old = state.begin_search("bob")
    new = state.begin_search("carol")

    assert not state.fail_search(old, "node down")
    assert state.search_error is None

    assert state.fail_search(new, "node down")
    assert state.search_error == "node down"
    assert state.first_post is None

    state.begin_search("dave")
    assert state.search_error is None


def test_store_creates_and_evicts():
    store = SessionStore(max_sessions=2)
    first = store.get("one")
    assert store.get("one") is first
    store.get("two")
    store.get("three")

    assert len(store) == 2
    assert store.get("one") is not first


def test_new_ids_are_unique():
    assert SessionStore.new_id() != SessionStore.new_id()
