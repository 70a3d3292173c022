# src/credfeed/graph/threads.py

import logging
from typing import List, Optional, Sequence

from credfeed.graph.integrity import ReferentialIntegrityManager
from credfeed.model.schema import RecordKind, Relation, Thread
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class ThreadBuilder:
    """Groups several root posts by one author into an ordered thread."""

    def __init__(self, store: RecordStore, integrity: ReferentialIntegrityManager):
        self.store = store
        self.integrity = integrity

    def create(
        self,
        author_id: str,
        bodies: Sequence[str],
        sources: Optional[Sequence[str]] = None,
    ) -> Thread:
        """
        Post every body in order and link the posts into a thread.

        ``sources``, when given, score every post in the thread.
        """
        if not bodies:
            raise ValueError("A thread needs at least one post")

        thread = Thread(author_id=author_id)
        self.store.require(RecordKind.USER, author_id)
        self.store.put(thread)
        for body in bodies:
            post = self.integrity.create_post(author_id, body, sources)
            post.thread_id = thread.id
            self.store.put(post)
            self.store.add_ref(Relation.THREAD_ITEMS, thread.id, post.id)

        logger.info(f"User {author_id} created thread {thread.id} with {len(bodies)} posts")
        return thread

    def get(self, thread_id: str) -> Thread:
        return self.store.require(RecordKind.THREAD, thread_id)

    def items(self, thread_id: str) -> List[str]:
        """Post ids of the thread in posting order; deleted posts are gone."""
        return self.store.refs(Relation.THREAD_ITEMS, thread_id)

    def delete(self, thread_id: str) -> bool:
        """Remove the thread record. Its posts stay."""
        thread: Optional[Thread] = self.store.get(RecordKind.THREAD, thread_id)
        if thread is None:
            return False
        for post_id in self.items(thread_id):
            post = self.store.get(RecordKind.CONTENT, post_id)
            if post is not None and post.thread_id == thread_id:
                post.thread_id = None
                self.store.put(post)
        return self.store.delete(RecordKind.THREAD, thread_id)
