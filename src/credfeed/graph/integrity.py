# src/credfeed/graph/integrity.py

import logging
from typing import List, Optional, Sequence

from credfeed.exceptions import AlreadyExists
from credfeed.credibility.scorer import ScoreEngine
from credfeed.graph.follow import FollowGraph
from credfeed.graph.index import ContentGraphIndex
from credfeed.model.schema import (
    ChildKind,
    ContentItem,
    Like,
    RecordKind,
    Relation,
    Repost,
    User,
)
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class ReferentialIntegrityManager:
    """
    Keeps parent/child back-references symmetric and cascades deletes.

    Every child (like, comment, repost) is recorded both on the child
    (``parent_id``) and in its parent's reference set; authored content is
    recorded in the author's sets. Deletes remove both sides.

    Cascades are not atomic as a whole. Every step is idempotent, so an
    interrupted cascade can be finished by invoking it again.
    """

    def __init__(
        self,
        store: RecordStore,
        scores: ScoreEngine,
        index: Optional[ContentGraphIndex] = None,
        follows: Optional[FollowGraph] = None,
    ):
        self.store = store
        self.scores = scores
        self.index = index or ContentGraphIndex(store)
        self.follows = follows or FollowGraph(store)

    # Child references

    def attach_child(self, parent_id: str, child_id: str, kind: ChildKind) -> None:
        """
        Record ``child_id`` in the parent's set for ``kind``.

        The parent may be a root post or a comment.

        Raises:
            NotFound: If the parent content does not exist
        """
        kind = ChildKind(kind)
        self.store.require(RecordKind.CONTENT, parent_id)
        self.store.add_ref(kind.relation, parent_id, child_id)
        logger.debug(f"Attached {kind.value} {child_id} to {parent_id}")

    def detach_child(self, parent_id: str, child_id: str, kind: ChildKind) -> bool:
        """Remove ``child_id`` from the parent's set. Missing entries are a no-op."""
        kind = ChildKind(kind)
        return self.store.remove_ref(kind.relation, parent_id, child_id)

    def children(self, parent_id: str, kind: ChildKind) -> List[str]:
        return self.store.refs(ChildKind(kind).relation, parent_id)

    # Creation

    def create_post(
        self, author_id: str, body: str, sources: Optional[Sequence[str]] = None
    ) -> ContentItem:
        """
        Create a root post, scoring it only when ``sources`` is given.

        Raises:
            NotFound: If the author does not exist
        """
        self.store.require(RecordKind.USER, author_id)
        post = ContentItem(author_id=author_id, body=body)
        self.store.put(post)
        self.store.add_ref(Relation.FREETS, author_id, post.id)

        if sources is not None:
            score = self.scores.create(post.id, sources)
            post.score_id = score.id
        logger.info(f"User {author_id} posted {post.id}")
        return post

    def create_comment(self, author_id: str, parent_id: str, body: str) -> ContentItem:
        """
        Create a comment on a post or on another comment.

        Raises:
            NotFound: If the author or the parent does not exist
        """
        self.store.require(RecordKind.USER, author_id)
        self.store.require(RecordKind.CONTENT, parent_id)
        comment = ContentItem(author_id=author_id, body=body, parent_id=parent_id)
        self.store.put(comment)
        self.attach_child(parent_id, comment.id, ChildKind.COMMENT)
        self.store.add_ref(Relation.USER_COMMENTS, author_id, comment.id)
        logger.info(f"User {author_id} commented {comment.id} on {parent_id}")
        return comment

    def add_like(self, user_id: str, parent_id: str) -> Like:
        """
        Like a post or comment.

        Raises:
            NotFound: If the user or the parent does not exist
            AlreadyExists: If the user already liked the parent
        """
        self.store.require(RecordKind.USER, user_id)
        self.store.require(RecordKind.CONTENT, parent_id)
        if self.store.find(RecordKind.LIKE, user_id=user_id, parent_id=parent_id):
            raise AlreadyExists(
                f"User {user_id} already liked {parent_id}.",
                {"user_id": user_id, "parent_id": parent_id},
            )
        like = Like(user_id=user_id, parent_id=parent_id)
        self.store.put(like)
        self.attach_child(parent_id, like.id, ChildKind.LIKE)
        self.store.add_ref(Relation.USER_LIKES, user_id, like.id)
        return like

    def remove_like(self, like_id: str) -> bool:
        like: Optional[Like] = self.store.get(RecordKind.LIKE, like_id)
        if like is None:
            return False
        self.detach_child(like.parent_id, like.id, ChildKind.LIKE)
        self.store.remove_ref(Relation.USER_LIKES, like.user_id, like.id)
        self.store.delete(RecordKind.LIKE, like.id)
        return True

    def add_repost(self, user_id: str, parent_id: str) -> Repost:
        """
        Repost a root post.

        Raises:
            NotFound: If the user or the post does not exist
            AlreadyExists: If the user already reposted it
        """
        self.store.require(RecordKind.USER, user_id)
        target: ContentItem = self.store.require(RecordKind.CONTENT, parent_id)
        if target.is_comment:
            raise ValueError(f"Only root posts can be reposted, {parent_id} is a comment")
        if self.store.find(RecordKind.REPOST, user_id=user_id, parent_id=parent_id):
            raise AlreadyExists(
                f"User {user_id} already reposted {parent_id}.",
                {"user_id": user_id, "parent_id": parent_id},
            )
        repost = Repost(user_id=user_id, parent_id=parent_id)
        self.store.put(repost)
        self.attach_child(parent_id, repost.id, ChildKind.REPOST)
        return repost

    def remove_repost(self, repost_id: str) -> bool:
        repost: Optional[Repost] = self.store.get(RecordKind.REPOST, repost_id)
        if repost is None:
            return False
        self.detach_child(repost.parent_id, repost.id, ChildKind.REPOST)
        self.store.delete(RecordKind.REPOST, repost.id)
        return True

    # Cascades

    def _comment_tree_post_order(self, content_id: str) -> List[str]:
        """
        Ids of ``content_id`` and all its descendant comments, children first.

        Uses an explicit stack so depth is bounded by the heap, not the
        interpreter's recursion limit.
        """
        order: List[str] = []
        visited = set()
        stack = [(content_id, False)]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                order.append(node_id)
                continue
            if node_id in visited:
                continue
            visited.add(node_id)
            stack.append((node_id, True))
            for child_id in reversed(self.index.comment_ids_of(node_id)):
                if child_id not in visited:
                    stack.append((child_id, False))
        return order

    def _delete_single(self, content_id: str) -> bool:
        """Delete one content item whose comments are already gone."""
        item: Optional[ContentItem] = self.store.get(RecordKind.CONTENT, content_id)
        if item is None:
            return False

        for like_id in self.index.like_ids_of(content_id):
            if not self.remove_like(like_id):
                self.store.remove_ref(Relation.LIKES, content_id, like_id)

        for repost_id in self.index.repost_ids_of(content_id):
            if not self.remove_repost(repost_id):
                self.store.remove_ref(Relation.REPOSTS, content_id, repost_id)

        if item.is_comment:
            self.detach_child(item.parent_id, item.id, ChildKind.COMMENT)
            self.store.remove_ref(Relation.USER_COMMENTS, item.author_id, item.id)
        else:
            self.store.remove_ref(Relation.FREETS, item.author_id, item.id)

        if item.thread_id is not None:
            self.store.remove_ref(Relation.THREAD_ITEMS, item.thread_id, item.id)

        score_ids = {item.score_id} if item.score_id else set()
        orphan = self.scores.find_by_content(item.id)
        if orphan is not None:
            score_ids.add(orphan.id)
        for score_id in sorted(score_ids):
            self.scores.delete(score_id)

        self.store.delete(RecordKind.CONTENT, item.id)
        return True

    def cascade_delete(self, content_id: str) -> int:
        """
        Delete content together with everything that exists because of it.

        Order: descendant comments (deepest first, each with its own likes,
        reposts and score), then the item's likes, reposts, the author's
        back-reference, its score and contests, and finally the item.
        Deleting an absent id is a no-op.

        Returns:
            Number of content items (the item plus comments) deleted.
        """
        if self.store.get(RecordKind.CONTENT, content_id) is None:
            logger.debug(f"Cascade delete of absent content {content_id} ignored")
            return 0

        deleted = 0
        for node_id in self._comment_tree_post_order(content_id):
            if self._delete_single(node_id):
                deleted += 1
        logger.info(f"Cascade deleted content {content_id} ({deleted} items)")
        return deleted

    def cascade_delete_user(self, user_id: str) -> bool:
        """
        Delete a user and everything they own.

        Order: feed, filter and search state; follow edges in both
        directions; likes; comments; reposts; root posts; threads; the user.
        Deleting an absent user is a no-op returning False.
        """
        user: Optional[User] = self.store.get(RecordKind.USER, user_id)
        if user is None:
            return False

        for feed in self.store.find(RecordKind.FEED, viewer_id=user_id):
            if feed.filter_id:
                self.store.delete(RecordKind.FILTER, feed.filter_id)
            for policy in self.store.find(RecordKind.FILTER, owner_feed_id=feed.id):
                self.store.delete(RecordKind.FILTER, policy.id)
            self.store.delete(RecordKind.FEED, feed.id)
        for search in self.store.find(RecordKind.SEARCH, viewer_id=user_id):
            self.store.delete(RecordKind.SEARCH, search.id)

        for edge in self.index.followers(user_id) + self.index.following(user_id):
            self.follows.remove_edge(edge.id)

        for like in self.index.likes_by(user_id):
            self.remove_like(like.id)

        for comment in self.index.comments_by(user_id):
            self.cascade_delete(comment.id)

        for repost in self.index.reposts_by(user_id):
            self.remove_repost(repost.id)

        for post in self.index.posts_by(user_id):
            self.cascade_delete(post.id)

        for thread in self.store.find(RecordKind.THREAD, author_id=user_id):
            self.store.delete(RecordKind.THREAD, thread.id)

        self.store.delete(RecordKind.USER, user_id)
        logger.info(f"Deleted user {user.username} ({user_id})")
        return True

