# src/credfeed/graph/follow.py

import logging
from typing import List, Optional

from credfeed.exceptions import DuplicateFollow, InvalidFollow, NotFound
from credfeed.model.schema import FollowEdge, RecordKind, Relation
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class FollowGraph:
    """Directed follow edges, mirrored in the users' followers/following sets."""

    def __init__(self, store: RecordStore):
        self.store = store

    def edge_between(self, src_user_id: str, dst_user_id: str) -> Optional[FollowEdge]:
        edges = self.store.find(
            RecordKind.FOLLOW, src_user_id=src_user_id, dst_user_id=dst_user_id
        )
        return edges[0] if edges else None

    def follow(self, src_user_id: str, dst_user_id: str) -> FollowEdge:
        """
        Make ``src_user_id`` follow ``dst_user_id``.

        Raises:
            NotFound: If either user does not exist
            InvalidFollow: On a self-follow
            DuplicateFollow: If the edge already exists
        """
        if src_user_id == dst_user_id:
            raise InvalidFollow("Users cannot follow themselves.", {"user_id": src_user_id})
        self.store.require(RecordKind.USER, src_user_id)
        self.store.require(RecordKind.USER, dst_user_id)
        if self.edge_between(src_user_id, dst_user_id) is not None:
            raise DuplicateFollow(src_user_id, dst_user_id)

        edge = FollowEdge(src_user_id=src_user_id, dst_user_id=dst_user_id)
        self.store.put(edge)
        self.store.add_ref(Relation.FOLLOWING, src_user_id, edge.id)
        self.store.add_ref(Relation.FOLLOWERS, dst_user_id, edge.id)
        logger.info(f"User {src_user_id} now follows {dst_user_id}")
        return edge

    def unfollow(self, src_user_id: str, dst_user_id: str) -> FollowEdge:
        edge = self.edge_between(src_user_id, dst_user_id)
        if edge is None:
            raise NotFound(RecordKind.FOLLOW.value, f"{src_user_id}->{dst_user_id}")
        self.remove_edge(edge.id)
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        """Delete an edge and both back-references. Absent edges are a no-op."""
        edge: Optional[FollowEdge] = self.store.get(RecordKind.FOLLOW, edge_id)
        if edge is None:
            return False
        self.store.remove_ref(Relation.FOLLOWING, edge.src_user_id, edge.id)
        self.store.remove_ref(Relation.FOLLOWERS, edge.dst_user_id, edge.id)
        self.store.delete(RecordKind.FOLLOW, edge.id)
        logger.debug(f"Removed follow {edge.src_user_id} -> {edge.dst_user_id}")
        return True

    def following_ids(self, user_id: str) -> List[str]:
        """Ids of users ``user_id`` follows, in the order they were followed."""
        ids = []
        for edge_id in self.store.refs(Relation.FOLLOWING, user_id):
            edge = self.store.get(RecordKind.FOLLOW, edge_id)
            if edge is not None:
                ids.append(edge.dst_user_id)
        return ids

    def follower_ids(self, user_id: str) -> List[str]:
        ids = []
        for edge_id in self.store.refs(Relation.FOLLOWERS, user_id):
            edge = self.store.get(RecordKind.FOLLOW, edge_id)
            if edge is not None:
                ids.append(edge.src_user_id)
        return ids
