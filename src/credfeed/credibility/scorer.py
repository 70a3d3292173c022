# src/credfeed/credibility/scorer.py

import logging
from typing import List, Optional, Sequence, Union

from credfeed.exceptions import AlreadyScored
from credfeed.model.schema import ContentItem, CredibilityScore, RecordKind, User
from credfeed.store.base import RecordStore

logger = logging.getLogger(__name__)

DISABLED = "Disabled"


def evidence_weight(source_count: int, cap: float = 5.0) -> float:
    """Each source is worth 4/5 of a point, capped at ``cap``."""
    return min(source_count * 4 / 5, cap)


class ScoreEngine:
    """
    Creates, attaches and removes content credibility scores.

    A score's initial value comes only from the number of evidence sources.
    Later changes to ``value`` come from contests (see ContestLedger).
    """

    def __init__(self, store: RecordStore, ledger=None, max_initial: float = 5.0):
        """
        Initialize the engine.

        Args:
            store: Record store holding content and scores
            ledger: ContestLedger used to retract contests when a score is deleted
            max_initial: Cap on the value derived from sources
        """
        self.store = store
        self.ledger = ledger
        self.max_initial = max_initial

    def compute_initial(self, sources: Sequence[str]) -> float:
        """Initial value for a score backed by ``sources``. No sources gives 0."""
        return evidence_weight(len(sources), self.max_initial)

    def create(self, content_id: str, sources: Sequence[str]) -> CredibilityScore:
        """
        Create a score for existing content and attach it.

        Raises:
            NotFound: If the content does not exist
            AlreadyScored: If the content already has a score
        """
        content: ContentItem = self.store.require(RecordKind.CONTENT, content_id)
        if content.score_id is not None:
            raise AlreadyScored(content_id, content.score_id)

        score = CredibilityScore(
            parent_id=content_id,
            sources=list(sources),
            value=self.compute_initial(sources),
        )
        self.store.put(score)
        self.attach(content_id, score)
        logger.info(f"Scored content {content_id} at {score.value} from {len(sources)} sources")
        return score

    def attach(self, content_id: str, score: CredibilityScore) -> ContentItem:
        """Point ``content.score_id`` at ``score``. One score per content item."""
        content: ContentItem = self.store.require(RecordKind.CONTENT, content_id)
        if content.score_id is not None and content.score_id != score.id:
            raise AlreadyScored(content_id, content.score_id)
        content.score_id = score.id
        self.store.put(content)
        return content

    def get(self, score_id: str) -> CredibilityScore:
        return self.store.require(RecordKind.SCORE, score_id)

    def find_by_content(self, content_id: str) -> Optional[CredibilityScore]:
        """Score attached to ``content_id``, or None when the content is unscored."""
        matches = self.store.find(RecordKind.SCORE, parent_id=content_id)
        return matches[0] if matches else None

    def resolve(self, content: ContentItem) -> Optional[CredibilityScore]:
        """Score referenced by ``content``; a dangling score id resolves to None."""
        if content.score_id is None:
            return None
        return self.store.get(RecordKind.SCORE, content.score_id)

    def delete(self, score_id: str) -> bool:
        """
        Delete a score and every contest filed against it.

        Deleting an absent score is a no-op returning False.
        """
        score = self.store.get(RecordKind.SCORE, score_id)
        if score is None:
            return False

        if self.ledger is not None:
            self.ledger.retract_all(score_id)
        self.store.delete(RecordKind.SCORE, score_id)

        content = self.store.get(RecordKind.CONTENT, score.parent_id)
        if content is not None and content.score_id == score_id:
            content.score_id = None
            self.store.put(content)

        logger.debug(f"Deleted score {score_id} of content {score.parent_id}")
        return True

    # Author aggregate

    def author_scores(self, user_id: str) -> List[float]:
        """Values of every scored root post authored by ``user_id``."""
        values = []
        for content in self.store.find(RecordKind.CONTENT, author_id=user_id, parent_id=None):
            score = self.resolve(content)
            if score is not None:
                values.append(score.value)
        return values

    def enable_author_score(self, user_id: str) -> User:
        """
        Set the user's credibility to the mean value of their scored posts.

        Users with no scored posts stay "Disabled".
        """
        user: User = self.store.require(RecordKind.USER, user_id)
        values = self.author_scores(user_id)
        credibility: Union[float, str] = sum(values) / len(values) if values else DISABLED
        user.credibility = credibility
        self.store.put(user)
        logger.info(f"Author credibility for {user.username}: {credibility}")
        return user

    def disable_author_score(self, user_id: str) -> User:
        user: User = self.store.require(RecordKind.USER, user_id)
        user.credibility = DISABLED
        self.store.put(user)
        return user
