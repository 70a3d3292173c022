# tests/integration/test_full_service.py

import importlib.util
import json
from pathlib import Path

import pytest

from credfeed.core.config import AppConfig
from credfeed.core.service import CredFeedService
from credfeed.exceptions import NotFound
from credfeed.model.schema import ChildKind, RecordKind
from credfeed.store.memory import InMemoryStore
from credfeed.store.snapshot import write_snapshot_file

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "credfeed_feed.py"


def load_cli():
    spec = importlib.util.spec_from_file_location("credfeed_feed", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestFullService:
    """End-to-end flows through CredFeedService on the in-memory store."""

    @pytest.fixture
    def service(self):
        with CredFeedService(config=AppConfig(), store=InMemoryStore()) as service:
            yield service

    def test_new_user_gets_feed_filter_and_search(self, service):
        alice = service.create_user("alice")

        feeds = service.store.find(RecordKind.FEED, viewer_id=alice.id)
        assert len(feeds) == 1
        policy = service.filter_for(alice.id)
        assert policy.owner_feed_id == feeds[0].id
        assert (policy.unscored, policy.high_scored, policy.low_scored) == (True, True, True)
        assert len(service.store.find(RecordKind.SEARCH, viewer_id=alice.id)) == 1
        assert service.find_user("ALICE").id == alice.id

    def test_contest_drives_score_negative(self, service):
        author = service.create_user("author")
        post = service.create_post(author.id, "claim", ["s1", "s2"])
        assert service.scores.get(post.score_id).value == pytest.approx(1.6)

        contest_id = service.file_contest(post.score_id, False, ["c1", "c2", "c3"])

        assert service.contests.get(contest_id).delta == pytest.approx(-2.4)
        assert service.scores.get(post.score_id).value == pytest.approx(-0.8)

    def test_filtered_feed(self, service):
        viewer = service.create_user("viewer")
        b = service.create_user("b")
        service.follow(viewer.id, b.id)
        service.create_post(b.id, "unscored P1")
        p2 = service.create_post(b.id, "scored P2")
        service.create_score(p2.id, ["s1", "s2", "s3", "s4", "s5"])

        policy = service.filter_for(viewer.id)
        service.set_filter_policy(policy.id, unscored=False, high_scored=True, low_scored=True)

        assert service.refresh_feed(viewer.id) == [p2.id]
        assert service.refresh_feed(viewer.id) == [p2.id]

    def test_post_with_vanished_score_left_out(self, service):
        viewer = service.create_user("viewer")
        b = service.create_user("b")
        service.follow(viewer.id, b.id)
        post = service.create_post(b.id, "claim", ["s"])
        service.store.delete(RecordKind.SCORE, post.score_id)

        assert service.refresh_feed(viewer.id) == []

    def test_contest_moves_content_between_buckets(self, service):
        viewer = service.create_user("viewer")
        b = service.create_user("b")
        service.follow(viewer.id, b.id)
        post = service.create_post(b.id, "claim", ["s"] * 5)
        policy = service.filter_for(viewer.id)
        service.set_filter_policy(policy.id, unscored=True, high_scored=True, low_scored=False)
        assert service.refresh_feed(viewer.id) == [post.id]

        service.contest_content(post.id, False, ["c1"])

        # 4.0 - 0.8 = 3.2 is Low
        assert service.refresh_feed(viewer.id) == []

    def test_delete_post_with_liked_comments(self, service):
        alice = service.create_user("alice")
        bob = service.create_user("bob")
        post = service.create_post(alice.id, "root", ["s"])
        for body in ("one", "two"):
            comment = service.create_comment(bob.id, post.id, body)
            service.like(alice.id, comment.id)

        assert service.cascade_delete_content(post.id) == 3

        assert service.store.all(RecordKind.CONTENT) == []
        assert service.store.all(RecordKind.LIKE) == []
        assert service.store.all(RecordKind.SCORE) == []
        assert post.id not in service.user_back_references(alice.id)["freets"]
        assert service.user_back_references(bob.id)["comments"] == []
        assert service.user_back_references(alice.id)["likes"] == []

    def test_children_and_back_references(self, service):
        alice = service.create_user("alice")
        bob = service.create_user("bob")
        post = service.create_post(alice.id, "root")
        comment = service.create_comment(bob.id, post.id, "reply")
        like = service.like(bob.id, post.id)
        repost = service.repost(bob.id, post.id)
        service.follow(bob.id, alice.id)

        children = service.content_children(post.id)
        assert children == {
            "likes": [like.id],
            "comments": [comment.id],
            "reposts": [repost.id],
        }
        refs = service.user_back_references(alice.id)
        assert refs["freets"] == [post.id]
        assert len(refs["followers"]) == 1
        assert len(service.user_back_references(bob.id)["following"]) == 1

        service.unlike(like.id)
        service.unrepost(repost.id)
        service.unfollow(bob.id, alice.id)
        assert service.content_children(post.id)["likes"] == []
        assert service.content_children(post.id)["reposts"] == []
        assert service.user_back_references(alice.id)["followers"] == []

    def test_manual_attach_and_detach(self, service):
        alice = service.create_user("alice")
        post = service.create_post(alice.id, "root")

        service.attach_child(post.id, "external-like", ChildKind.LIKE)
        assert service.content_children(post.id)["likes"] == ["external-like"]
        assert service.detach_child(post.id, "external-like", ChildKind.LIKE) is True
        assert service.content_children(post.id)["likes"] == []

    def test_delete_user_removes_them_from_feeds(self, service):
        viewer = service.create_user("viewer")
        b = service.create_user("b")
        service.follow(viewer.id, b.id)
        service.create_post(b.id, "soon gone")
        assert len(service.refresh_feed(viewer.id)) == 1

        assert service.cascade_delete_user(b.id) is True

        assert service.refresh_feed(viewer.id) == []
        assert service.user_back_references(viewer.id)["following"] == []
        with pytest.raises(NotFound):
            service.user_back_references(b.id)

    def test_author_credibility(self, service):
        alice = service.create_user("alice")
        first = service.create_post(alice.id, "a", ["s"])
        service.create_post(alice.id, "b", ["s", "t", "u"])
        service.create_post(alice.id, "c")
        service.file_contest(first.score_id, True, ["x"])

        # (1.6 + 2.4) / 2
        assert service.enable_author_score(alice.id).credibility == pytest.approx(2.0)
        assert service.disable_author_score(alice.id).credibility == "Disabled"

    def test_search_and_threads(self, service):
        viewer = service.create_user("viewer")
        carol = service.create_user("carol")
        caroline = service.create_user("caroline")
        service.follow(viewer.id, caroline.id)

        assert service.search_users(viewer.id, "carol") == [caroline.id, carol.id]

        thread = service.create_thread(carol.id, ["1/2", "2/2"])
        service.follow(viewer.id, carol.id)
        feed = service.refresh_feed(viewer.id)
        assert set(feed) == set(service.threads.items(thread.id))


class TestFeedCommand:
    """Test the credfeed-feed command against snapshot files."""

    @pytest.fixture
    def cli(self, monkeypatch):
        monkeypatch.delenv("CREDFEED_STORE_BACKEND", raising=False)
        return load_cli()

    @pytest.fixture
    def snapshot(self, tmp_path):
        with CredFeedService(config=AppConfig(), store=InMemoryStore()) as service:
            viewer = service.create_user("viewer")
            b = service.create_user("b")
            service.follow(viewer.id, b.id)
            keep = service.create_post(b.id, "keep")
            drop = service.create_post(b.id, "drop")
            path = tmp_path / "graph.json"
            write_snapshot_file(service.store, path)
        return path, viewer, keep, drop

    def test_refresh_to_output_file(self, cli, snapshot, tmp_path):
        path, viewer, keep, drop = snapshot
        output = tmp_path / "out" / "feed.json"

        code = cli.main([
            "--snapshot", str(path),
            "--viewer", "viewer",
            "--output", str(output),
            "--config", str(tmp_path / "absent.yaml"),
        ])

        assert code == 0
        assert set(json.loads(output.read_text(encoding="utf-8"))) == {keep.id, drop.id}

    def test_delete_and_save(self, cli, snapshot, tmp_path, capsys):
        path, viewer, keep, drop = snapshot

        code = cli.main([
            "--snapshot", str(path),
            "--delete-content", drop.id,
            "--viewer", viewer.id,
            "--save",
            "--config", str(tmp_path / "absent.yaml"),
        ])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == [keep.id]
        saved = json.loads(path.read_text(encoding="utf-8"))
        assert [r["id"] for r in saved["records"]["content"]] == [keep.id]

    def test_unknown_viewer(self, cli, snapshot, tmp_path):
        path, _, _, _ = snapshot
        code = cli.main([
            "--snapshot", str(path),
            "--viewer", "nobody",
            "--config", str(tmp_path / "absent.yaml"),
        ])
        assert code == 1

    def test_memory_backend_needs_snapshot(self, cli, tmp_path):
        assert cli.main(["--config", str(tmp_path / "absent.yaml")]) == 1

    def test_missing_snapshot_file(self, cli, tmp_path):
        code = cli.main([
            "--snapshot", str(tmp_path / "missing.json"),
            "--config", str(tmp_path / "absent.yaml"),
        ])
        assert code == 1
