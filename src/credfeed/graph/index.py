# src/credfeed/graph/index.py

import logging
from typing import Iterable, List, Optional

from credfeed.model.schema import (
    ContentItem,
    FollowEdge,
    Like,
    RecordKind,
    Relation,
    Repost,
)
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


def _merge_ids(*groups: Iterable[str]) -> List[str]:
    """Concatenate id groups, keeping first occurrence order."""
    seen = {}
    for group in groups:
        for record_id in group:
            seen.setdefault(record_id, None)
    return list(seen)


def newest_first(items: Iterable[ContentItem]) -> List[ContentItem]:
    """Deterministic recency order: newest first, ties broken by id."""
    by_id = sorted(items, key=lambda c: c.id)
    return sorted(by_id, key=lambda c: c.created_at, reverse=True)


class ContentGraphIndex:
    """
    Read-side lookups over the content and follow graphs.

    Record queries (by author, by parent) are answered from the record
    tables; child lookups also consult the reference index so children
    recorded in either place are found.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # Authored content

    def posts_by(self, user_id: str) -> List[ContentItem]:
        """Root posts authored by ``user_id``, oldest first."""
        posts = self.store.find(RecordKind.CONTENT, author_id=user_id, parent_id=None)
        return sorted(posts, key=lambda c: (c.created_at, c.id))

    def comments_by(self, user_id: str) -> List[ContentItem]:
        comments = [
            c
            for c in self.store.find(RecordKind.CONTENT, author_id=user_id)
            if c.is_comment
        ]
        return sorted(comments, key=lambda c: (c.created_at, c.id))

    def reposts_by(self, user_id: str) -> List[Repost]:
        reposts = self.store.find(RecordKind.REPOST, user_id=user_id)
        return sorted(reposts, key=lambda r: (r.created_at, r.id))

    def likes_by(self, user_id: str) -> List[Like]:
        likes = self.store.find(RecordKind.LIKE, user_id=user_id)
        return sorted(likes, key=lambda r: (r.created_at, r.id))

    # Children

    def comment_ids_of(self, parent_id: str) -> List[str]:
        """Ids of every comment whose parent is ``parent_id``."""
        recorded = self.store.refs(Relation.COMMENTS, parent_id)
        found = sorted(
            self.store.find(RecordKind.CONTENT, parent_id=parent_id),
            key=lambda c: (c.created_at, c.id),
        )
        return _merge_ids(recorded, (c.id for c in found))

    def like_ids_of(self, parent_id: str) -> List[str]:
        recorded = self.store.refs(Relation.LIKES, parent_id)
        found = self.store.find(RecordKind.LIKE, parent_id=parent_id)
        return _merge_ids(recorded, sorted(r.id for r in found))

    def repost_ids_of(self, parent_id: str) -> List[str]:
        recorded = self.store.refs(Relation.REPOSTS, parent_id)
        found = self.store.find(RecordKind.REPOST, parent_id=parent_id)
        return _merge_ids(recorded, sorted(r.id for r in found))

    def root_of(self, content_id: str) -> Optional[str]:
        """
        Walk parent links up to the root post.

        Returns None when any link in the chain is missing.
        """
        seen = set()
        current_id = content_id
        while current_id not in seen:
            seen.add(current_id)
            content = self.store.get(RecordKind.CONTENT, current_id)
            if content is None:
                return None
            if content.parent_id is None:
                return content.id
            current_id = content.parent_id
        logger.warning(f"Parent cycle detected at content {content_id}")
        return None

    # Follow graph

    def following(self, user_id: str) -> List[FollowEdge]:
        """Edges where ``user_id`` is the follower, oldest first."""
        edges = self.store.find(RecordKind.FOLLOW, src_user_id=user_id)
        return sorted(edges, key=lambda e: (e.created_at, e.id))

    def followers(self, user_id: str) -> List[FollowEdge]:
        edges = self.store.find(RecordKind.FOLLOW, dst_user_id=user_id)
        return sorted(edges, key=lambda e: (e.created_at, e.id))

    # Contribution

    def contributed_content_ids(self, user_id: str) -> List[str]:
        """
        Content ids ``user_id`` contributes to a follower's feed.

        Own root posts, the targets of their reposts, and the targets of
        their comments, in that order. Targets are flattened to the root
        post they hang off; unresolvable targets are dropped.
        """
        ids = [post.id for post in self.posts_by(user_id)]
        for repost in self.reposts_by(user_id):
            root_id = self.root_of(repost.parent_id)
            if root_id is not None:
                ids.append(root_id)
        for comment in self.comments_by(user_id):
            root_id = self.root_of(comment.parent_id)
            if root_id is not None:
                ids.append(root_id)
        return ids
