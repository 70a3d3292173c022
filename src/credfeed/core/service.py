# src/credfeed/core/service.py

import logging
from typing import List, Optional, Sequence

from credfeed.core.config import AppConfig
from credfeed.credibility.contest import ContestLedger
from credfeed.credibility.filtering import FilterPolicyManager
from credfeed.credibility.scorer import ScoreEngine
from credfeed.graph.feed import FeedMaterializer
from credfeed.graph.follow import FollowGraph
from credfeed.graph.index import ContentGraphIndex
from credfeed.graph.integrity import ReferentialIntegrityManager
from credfeed.graph.search import UserSearch
from credfeed.graph.threads import ThreadBuilder
from credfeed.model.schema import (
    ChildKind,
    Contest,
    ContentItem,
    FilterPolicy,
    FollowEdge,
    Like,
    RecordKind,
    Relation,
    Repost,
    Thread,
    User,
)
from credfeed.store import open_store
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class CredFeedService:
    """
    Entry point for credfeed.

    Wires the store, scoring, filtering, integrity and feed components
    together and exposes the operations collaborators call. Validation of
    sessions, ownership and content length happens before these calls.
    """

    def __init__(self, config: Optional[AppConfig] = None, store: Optional[RecordStore] = None):
        """
        Initialize the service.

        Args:
            config: Validated configuration (defaults used when None)
            store: Record store; built from ``config.store`` when None
        """
        self.config = config or AppConfig()
        self.store = store if store is not None else open_store(self.config)

        self.contests = ContestLedger(self.store, max_delta=self.config.scoring.max_initial)
        self.scores = ScoreEngine(
            self.store, ledger=self.contests, max_initial=self.config.scoring.max_initial
        )
        self.filters = FilterPolicyManager(
            self.store, high_threshold=self.config.scoring.high_threshold
        )
        self.index = ContentGraphIndex(self.store)
        self.follows = FollowGraph(self.store)
        self.integrity = ReferentialIntegrityManager(
            self.store, self.scores, index=self.index, follows=self.follows
        )
        self.feeds = FeedMaterializer(
            self.store, self.index, self.scores, self.filters, order=self.config.feed.order
        )
        self.search = UserSearch(self.store, self.follows)
        self.threads = ThreadBuilder(self.store, self.integrity)

    def close(self):
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Users

    def create_user(self, username: str) -> User:
        """Create a user with an empty feed, a show-everything filter and a search state."""
        user = User(username=username)
        self.store.put(user)
        self.feeds.ensure_feed(user.id)
        self.search.ensure_state(user.id)
        logger.info(f"Created user {username} ({user.id})")
        return user

    def find_user(self, username: str) -> Optional[User]:
        """Case-insensitive username lookup."""
        wanted = username.strip().lower()
        for user in self.store.all(RecordKind.USER):
            if user.username.lower() == wanted:
                return user
        return None

    def user_back_references(self, user_id: str) -> dict:
        """The user's freets/likes/comments/followers/following id sets."""
        self.store.require(RecordKind.USER, user_id)
        return {
            "freets": self.store.refs(Relation.FREETS, user_id),
            "likes": self.store.refs(Relation.USER_LIKES, user_id),
            "comments": self.store.refs(Relation.USER_COMMENTS, user_id),
            "followers": self.store.refs(Relation.FOLLOWERS, user_id),
            "following": self.store.refs(Relation.FOLLOWING, user_id),
        }

    # Content

    def create_post(
        self, author_id: str, body: str, sources: Optional[Sequence[str]] = None
    ) -> ContentItem:
        return self.integrity.create_post(author_id, body, sources)

    def create_comment(self, author_id: str, parent_id: str, body: str) -> ContentItem:
        return self.integrity.create_comment(author_id, parent_id, body)

    def like(self, user_id: str, parent_id: str) -> Like:
        return self.integrity.add_like(user_id, parent_id)

    def unlike(self, like_id: str) -> bool:
        return self.integrity.remove_like(like_id)

    def repost(self, user_id: str, parent_id: str) -> Repost:
        return self.integrity.add_repost(user_id, parent_id)

    def unrepost(self, repost_id: str) -> bool:
        return self.integrity.remove_repost(repost_id)

    def create_thread(
        self, author_id: str, bodies: Sequence[str], sources: Optional[Sequence[str]] = None
    ) -> Thread:
        return self.threads.create(author_id, bodies, sources)

    def content_children(self, content_id: str) -> dict:
        """The likeIds/commentIds/repostIds of a content item."""
        self.store.require(RecordKind.CONTENT, content_id)
        return {
            "likes": self.integrity.children(content_id, ChildKind.LIKE),
            "comments": self.integrity.children(content_id, ChildKind.COMMENT),
            "reposts": self.integrity.children(content_id, ChildKind.REPOST),
        }

    # Follow graph

    def follow(self, src_user_id: str, dst_user_id: str) -> FollowEdge:
        return self.follows.follow(src_user_id, dst_user_id)

    def unfollow(self, src_user_id: str, dst_user_id: str) -> FollowEdge:
        return self.follows.unfollow(src_user_id, dst_user_id)

    def search_users(self, viewer_id: str, query: str) -> List[str]:
        return self.search.update(viewer_id, query)

    # Credibility

    def create_score(self, content_id: str, sources: Sequence[str]) -> str:
        return self.scores.create(content_id, sources).id

    def file_contest(self, target_score_id: str, in_favor: bool, sources: Sequence[str]) -> str:
        return self.contests.file_contest(target_score_id, in_favor, sources).id

    def contest_content(self, content_id: str, in_favor: bool, sources: Sequence[str]) -> Contest:
        return self.contests.file_contest_for_content(content_id, in_favor, sources)

    def set_filter_policy(
        self,
        filter_id: str,
        unscored: Optional[bool] = True,
        high_scored: Optional[bool] = True,
        low_scored: Optional[bool] = True,
    ) -> FilterPolicy:
        return self.filters.update(filter_id, unscored, high_scored, low_scored)

    def filter_for(self, viewer_id: str) -> FilterPolicy:
        feed = self.feeds.ensure_feed(viewer_id)
        return self.filters.get(feed.filter_id)

    def enable_author_score(self, user_id: str) -> User:
        return self.scores.enable_author_score(user_id)

    def disable_author_score(self, user_id: str) -> User:
        return self.scores.disable_author_score(user_id)

    # Feed

    def refresh_feed(self, viewer_id: str) -> List[str]:
        return self.feeds.refresh(viewer_id)

    # Integrity

    def attach_child(self, parent_id: str, child_id: str, kind: ChildKind) -> None:
        self.integrity.attach_child(parent_id, child_id, kind)

    def detach_child(self, parent_id: str, child_id: str, kind: ChildKind) -> bool:
        return self.integrity.detach_child(parent_id, child_id, kind)

    def cascade_delete_content(self, content_id: str) -> int:
        return self.integrity.cascade_delete(content_id)

    def cascade_delete_user(self, user_id: str) -> bool:
        return self.integrity.cascade_delete_user(user_id)
