# src/credfeed/graph/feed.py

import logging
from typing import Dict, List, Optional

from credfeed.credibility.filtering import FilterPolicyManager
from credfeed.credibility.scorer import ScoreEngine
from credfeed.graph.index import ContentGraphIndex, newest_first
from credfeed.model.schema import (
    ContentItem,
    FeedOrder,
    FilterPolicy,
    MaterializedFeed,
    RecordKind,
)
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class FeedMaterializer:
    """
    Rebuilds a viewer's feed from the follow graph, content ownership and
    the viewer's credibility filter.

    Every refresh is a full rebuild; nothing is patched incrementally.
    Content that vanishes mid-rebuild, or whose score is gone, is left out
    of the feed rather than failing the refresh.
    """

    def __init__(
        self,
        store: RecordStore,
        index: ContentGraphIndex,
        scores: ScoreEngine,
        filters: FilterPolicyManager,
        order: FeedOrder = FeedOrder.RECENCY,
    ):
        self.store = store
        self.index = index
        self.scores = scores
        self.filters = filters
        self.order = FeedOrder(order)

    def ensure_feed(self, viewer_id: str) -> MaterializedFeed:
        """
        Return the viewer's feed, creating it and its filter if missing.

        Raises:
            NotFound: If the viewer does not exist
        """
        self.store.require(RecordKind.USER, viewer_id)
        feeds = self.store.find(RecordKind.FEED, viewer_id=viewer_id)
        if feeds:
            return sorted(feeds, key=lambda f: f.id)[0]

        feed = MaterializedFeed(viewer_id=viewer_id)
        policy = self.filters.create(feed.id)
        feed.filter_id = policy.id
        self.store.put(feed)
        logger.info(f"Created feed {feed.id} for viewer {viewer_id}")
        return feed

    def _policy_for(self, feed: MaterializedFeed) -> FilterPolicy:
        policy = None
        if feed.filter_id:
            policy = self.store.get(RecordKind.FILTER, feed.filter_id)
        if policy is None:
            policy = self.filters.find_by_feed(feed.id)
        if policy is None:
            logger.warning(f"Feed {feed.id} has no filter, showing every bucket")
            policy = FilterPolicy(owner_feed_id=feed.id)
        return policy

    def collect_candidates(self, viewer_id: str) -> List[str]:
        """
        Unfiltered candidate ids contributed by everyone the viewer follows.

        A root post reachable through several paths appears once.
        """
        candidates: Dict[str, None] = {}
        for edge in self.index.following(viewer_id):
            for content_id in self.index.contributed_content_ids(edge.dst_user_id):
                candidates.setdefault(content_id, None)
        return list(candidates)

    def _order(self, items: List[ContentItem]) -> List[str]:
        if self.order == FeedOrder.ID:
            return sorted(item.id for item in items)
        return [item.id for item in newest_first(items)]

    def materialize(self, viewer_id: str, policy: FilterPolicy) -> List[str]:
        """Visible content ids for ``viewer_id`` under ``policy``, without persisting."""
        visible: List[ContentItem] = []
        for content_id in self.collect_candidates(viewer_id):
            content: Optional[ContentItem] = self.store.get(RecordKind.CONTENT, content_id)
            if content is None:
                logger.warning(f"Skipping dangling content {content_id} in feed of {viewer_id}")
                continue
            if content.is_comment:
                continue
            score = self.scores.resolve(content)
            if content.score_id is not None and score is None:
                logger.warning(
                    f"Skipping content {content_id} with missing score {content.score_id}"
                )
                continue
            if self.filters.admits(policy, score):
                visible.append(content)
        return self._order(visible)

    def refresh(self, viewer_id: str) -> List[str]:
        """
        Recompute and persist the viewer's visible content ids.

        Returns:
            Content ids in feed order.

        Raises:
            NotFound: If the viewer does not exist
        """
        feed = self.ensure_feed(viewer_id)
        policy = self._policy_for(feed)
        visible = self.materialize(viewer_id, policy)

        feed.visible_content_ids = visible
        self.store.put(feed)
        logger.info(f"Refreshed feed of {viewer_id}: {len(visible)} items")
        return visible

    def current(self, viewer_id: str) -> List[str]:
        """Last materialized ids, without recomputing."""
        return list(self.ensure_feed(viewer_id).visible_content_ids)
