# src/credfeed/credibility/contest.py

import logging
from typing import List, Sequence

from credfeed.exceptions import NotFound
from credfeed.credibility.scorer import evidence_weight
from credfeed.model.schema import ContentItem, Contest, CredibilityScore, RecordKind
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)


class ContestLedger:
    """
    Records contests against credibility scores and applies their deltas.

    Deltas are not clamped: repeated contests can move a score below 0 or
    above 5. Authorship checks (no contesting your own content) belong to
    the caller.
    """

    def __init__(self, store: RecordStore, max_delta: float = 5.0):
        self.store = store
        self.max_delta = max_delta

    def compute_delta(self, in_favor: bool, sources: Sequence[str]) -> float:
        magnitude = evidence_weight(len(sources), self.max_delta)
        return magnitude if in_favor else -magnitude

    def file_contest(
        self, target_score_id: str, in_favor: bool, sources: Sequence[str]
    ) -> Contest:
        """
        File a contest and apply its delta to the target score.

        Args:
            target_score_id: CredibilityScore being contested
            in_favor: True raises the score, False lowers it
            sources: Evidence backing the contest

        Returns:
            The persisted Contest.

        Raises:
            NotFound: If the score does not exist. Nothing is modified.
        """
        score: CredibilityScore = self.store.require(RecordKind.SCORE, target_score_id)

        delta = self.compute_delta(in_favor, sources)
        contest = Contest(
            score_parent_id=score.id,
            in_favor=in_favor,
            sources=list(sources),
            delta=delta,
        )

        score.value += delta
        self.store.put(score)
        self.store.put(contest)

        logger.info(
            f"Contest {contest.id} on score {score.id}: delta={delta}, value now {score.value}"
        )
        return contest

    def file_contest_for_content(
        self, content_id: str, in_favor: bool, sources: Sequence[str]
    ) -> Contest:
        """
        File a contest against the score of ``content_id``.

        Raises:
            NotFound: If the content does not exist or carries no score
        """
        content: ContentItem = self.store.require(RecordKind.CONTENT, content_id)
        if content.score_id is None:
            raise NotFound(RecordKind.SCORE.value, f"<score of content {content_id}>")
        return self.file_contest(content.score_id, in_favor, sources)

    def get(self, contest_id: str) -> Contest:
        return self.store.require(RecordKind.CONTEST, contest_id)

    def list_by_target(self, target_score_id: str) -> List[Contest]:
        return self.store.find(RecordKind.CONTEST, score_parent_id=target_score_id)

    def retract_all(self, target_score_id: str) -> int:
        """
        Remove every contest filed against a score that is being deleted.

        Deltas are not reversed.

        Returns:
            Number of contests removed.
        """
        removed = 0
        for contest in self.list_by_target(target_score_id):
            if self.store.delete(RecordKind.CONTEST, contest.id):
                removed += 1
        if removed:
            logger.debug(f"Retracted {removed} contests against score {target_score_id}")
        return removed
