# src/credfeed/graph/search.py

import logging
from typing import List

from credfeed.graph.follow import FollowGraph
from credfeed.model.schema import RecordKind, SearchState, User
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class UserSearch:
    """Per-viewer username search. Followed users rank ahead of everyone else."""

    def __init__(self, store: RecordStore, follows: FollowGraph):
        self.store = store
        self.follows = follows

    def ensure_state(self, viewer_id: str) -> SearchState:
        self.store.require(RecordKind.USER, viewer_id)
        states = self.store.find(RecordKind.SEARCH, viewer_id=viewer_id)
        if states:
            return sorted(states, key=lambda s: s.id)[0]
        state = SearchState(viewer_id=viewer_id)
        self.store.put(state)
        return state

    def update(self, viewer_id: str, query: str) -> List[str]:
        """
        Run ``query`` for ``viewer_id`` and persist the matching user ids.

        Matching is a substring test on the username. An empty query
        matches nobody.
        """
        state = self.ensure_state(viewer_id)
        matches: List[str] = []
        if query:
            for user_id in self.follows.following_ids(viewer_id):
                user = self.store.get(RecordKind.USER, user_id)
                if user is not None and query in user.username:
                    matches.append(user.id)

            everyone: List[User] = sorted(
                self.store.all(RecordKind.USER), key=lambda u: (u.joined_at, u.id), reverse=True
            )
            for user in everyone:
                if user.id not in matches and query in user.username:
                    matches.append(user.id)

        state.query = query
        state.user_ids = matches
        self.store.put(state)
        logger.debug(f"Search {query!r} for {viewer_id}: {len(matches)} users")
        return matches
