# src/credfeed/credibility/filtering.py

import logging
from typing import Optional

from credfeed.model.schema import Bucket, CredibilityScore, FilterPolicy, RecordKind
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)

HIGH_SCORE_THRESHOLD = 3.5


def classify(score: Optional[CredibilityScore], threshold: float = HIGH_SCORE_THRESHOLD) -> Bucket:
    """Bucket for a score: absent is UNSCORED, value >= threshold is HIGH, anything else LOW."""
    if score is None:
        return Bucket.UNSCORED
    if score.value >= threshold:
        return Bucket.HIGH
    return Bucket.LOW


def is_visible(policy: FilterPolicy, bucket: Bucket) -> bool:
    return {
        Bucket.UNSCORED: policy.unscored,
        Bucket.HIGH: policy.high_scored,
        Bucket.LOW: policy.low_scored,
    }[bucket]


class FilterPolicyManager:
    """Creates and updates the per-feed credibility filters."""

    def __init__(self, store: RecordStore, high_threshold: float = HIGH_SCORE_THRESHOLD):
        self.store = store
        self.high_threshold = high_threshold

    def create(self, feed_id: str) -> FilterPolicy:
        """New filter for ``feed_id`` with every bucket visible."""
        policy = FilterPolicy(owner_feed_id=feed_id)
        self.store.put(policy)
        logger.debug(f"Created filter {policy.id} for feed {feed_id}")
        return policy

    def get(self, filter_id: str) -> FilterPolicy:
        return self.store.require(RecordKind.FILTER, filter_id)

    def find_by_feed(self, feed_id: str) -> Optional[FilterPolicy]:
        matches = self.store.find(RecordKind.FILTER, owner_feed_id=feed_id)
        return matches[0] if matches else None

    def update(
        self,
        filter_id: str,
        unscored: Optional[bool] = True,
        high_scored: Optional[bool] = True,
        low_scored: Optional[bool] = True,
    ) -> FilterPolicy:
        """
        Replace all three bucket flags.

        There is no partial merge: a flag passed as None is treated as True,
        not as "leave unchanged".

        Raises:
            NotFound: If the filter does not exist
        """
        policy: FilterPolicy = self.get(filter_id)
        policy.unscored = True if unscored is None else bool(unscored)
        policy.high_scored = True if high_scored is None else bool(high_scored)
        policy.low_scored = True if low_scored is None else bool(low_scored)
        self.store.put(policy)
        logger.info(
            f"Filter {filter_id} set to unscored={policy.unscored}, "
            f"high={policy.high_scored}, low={policy.low_scored}"
        )
        return policy

    def classify(self, score: Optional[CredibilityScore]) -> Bucket:
        return classify(score, self.high_threshold)

    def is_visible(self, policy: FilterPolicy, bucket: Bucket) -> bool:
        return is_visible(policy, bucket)

    def admits(self, policy: FilterPolicy, score: Optional[CredibilityScore]) -> bool:
        return is_visible(policy, self.classify(score))

    def delete(self, filter_id: str) -> bool:
        return self.store.delete(RecordKind.FILTER, filter_id)
