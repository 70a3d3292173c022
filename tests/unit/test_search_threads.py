# tests/unit/test_search_threads.py

from datetime import datetime, timedelta, timezone

import pytest

from credfeed.credibility.scorer import ScoreEngine
from credfeed.exceptions import NotFound
from credfeed.graph.follow import FollowGraph
from credfeed.graph.integrity import ReferentialIntegrityManager
from credfeed.graph.search import UserSearch
from credfeed.graph.threads import ThreadBuilder
from credfeed.model.schema import RecordKind, User
from credfeed.store.memory import InMemoryStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryStore()


def make_user(store, username, minute=0):
    user = User(username=username, joined_at=BASE_TIME + timedelta(minutes=minute))
    store.put(user)
    return user


class TestUserSearch:
    """Test username search ranking."""

    def test_followed_users_first(self, store):
        follows = FollowGraph(store)
        search = UserSearch(store, follows)
        viewer = make_user(store, "viewer", 0)
        ann = make_user(store, "ann", 1)
        anna = make_user(store, "anna", 2)
        joanne = make_user(store, "joanne", 3)
        make_user(store, "bob", 4)
        follows.follow(viewer.id, ann.id)

        # ann is followed; the rest are newest first
        assert search.update(viewer.id, "ann") == [ann.id, joanne.id, anna.id]

    def test_result_is_persisted(self, store):
        search = UserSearch(store, FollowGraph(store))
        viewer = make_user(store, "viewer")
        make_user(store, "carol")

        ids = search.update(viewer.id, "car")

        state = store.find(RecordKind.SEARCH, viewer_id=viewer.id)[0]
        assert state.query == "car"
        assert state.user_ids == ids

    def test_empty_query_matches_nobody(self, store):
        search = UserSearch(store, FollowGraph(store))
        viewer = make_user(store, "viewer")
        make_user(store, "carol")

        assert search.update(viewer.id, "") == []

    def test_one_state_per_viewer(self, store):
        search = UserSearch(store, FollowGraph(store))
        viewer = make_user(store, "viewer")

        search.update(viewer.id, "a")
        search.update(viewer.id, "b")

        assert len(store.find(RecordKind.SEARCH, viewer_id=viewer.id)) == 1

    def test_unknown_viewer(self, store):
        with pytest.raises(NotFound):
            UserSearch(store, FollowGraph(store)).update("ghost", "a")


class TestThreadBuilder:
    """Test grouping posts into threads."""

    @pytest.fixture
    def threads(self, store):
        integrity = ReferentialIntegrityManager(store, ScoreEngine(store))
        return ThreadBuilder(store, integrity)

    def test_create_posts_in_order(self, store, threads):
        author = make_user(store, "author")

        thread = threads.create(author.id, ["one", "two", "three"])

        items = threads.items(thread.id)
        assert [store.get(RecordKind.CONTENT, i).body for i in items] == ["one", "two", "three"]
        for item_id in items:
            assert store.get(RecordKind.CONTENT, item_id).thread_id == thread.id

    def test_create_with_sources_scores_every_post(self, store, threads):
        author = make_user(store, "author")

        thread = threads.create(author.id, ["one", "two"], sources=["s1"])

        for item_id in threads.items(thread.id):
            assert store.get(RecordKind.CONTENT, item_id).score_id is not None
        assert len(store.all(RecordKind.SCORE)) == 2

    def test_empty_thread_rejected(self, store, threads):
        author = make_user(store, "author")
        with pytest.raises(ValueError):
            threads.create(author.id, [])

    def test_unknown_author(self, store, threads):
        with pytest.raises(NotFound):
            threads.create("ghost", ["one"])
        assert store.all(RecordKind.THREAD) == []

    def test_deleting_a_post_removes_it_from_thread(self, store, threads):
        author = make_user(store, "author")
        thread = threads.create(author.id, ["one", "two"])
        first, second = threads.items(thread.id)

        threads.integrity.cascade_delete(first)

        assert threads.items(thread.id) == [second]

    def test_delete_thread_keeps_posts(self, store, threads):
        author = make_user(store, "author")
        thread = threads.create(author.id, ["one"])
        (post_id,) = threads.items(thread.id)

        assert threads.delete(thread.id) is True

        assert store.get(RecordKind.THREAD, thread.id) is None
        assert store.get(RecordKind.CONTENT, post_id).thread_id is None
        assert threads.delete(thread.id) is False
