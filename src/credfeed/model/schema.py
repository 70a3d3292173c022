# src/credfeed/model/schema.py
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordKind(str, Enum):
    USER = "user"
    CONTENT = "content"
    SCORE = "score"
    CONTEST = "contest"
    LIKE = "like"
    REPOST = "repost"
    FOLLOW = "follow"
    FILTER = "filter"
    FEED = "feed"
    SEARCH = "search"
    THREAD = "thread"


class Relation(str, Enum):
    """Back-reference relations kept in the store's reference index."""

    # ContentItem -> children
    LIKES = "likes"
    COMMENTS = "comments"
    REPOSTS = "reposts"
    # User -> authored/owned records
    FREETS = "freets"
    USER_LIKES = "user_likes"
    USER_COMMENTS = "user_comments"
    FOLLOWERS = "followers"
    FOLLOWING = "following"
    # Thread -> member posts
    THREAD_ITEMS = "thread_items"


class ChildKind(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    REPOST = "repost"

    @property
    def relation(self) -> Relation:
        return {
            ChildKind.LIKE: Relation.LIKES,
            ChildKind.COMMENT: Relation.COMMENTS,
            ChildKind.REPOST: Relation.REPOSTS,
        }[self]


class FeedOrder(str, Enum):
    RECENCY = "recency"
    ID = "id"


class Bucket(str, Enum):
    UNSCORED = "unscored"
    HIGH = "high"
    LOW = "low"


class Record(BaseModel):
    """Base for every stored record. Subclasses set ``kind``."""

    kind: ClassVar[RecordKind]

    id: str = Field(default_factory=new_id, description="Unique record id")

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("id must not be empty")
        return v.strip()


class User(Record):
    kind: ClassVar[RecordKind] = RecordKind.USER

    username: str
    joined_at: datetime = Field(default_factory=utcnow)
    # Mean value of the author's scored posts, or "Disabled"
    credibility: Union[float, str] = "Disabled"

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("username must not be empty")
        return v.strip()


class ContentItem(Record):
    """A root post or a comment. Comments carry ``parent_id``."""

    kind: ClassVar[RecordKind] = RecordKind.CONTENT

    author_id: str
    created_at: datetime = Field(default_factory=utcnow)
    body: str
    score_id: Optional[str] = None
    parent_id: Optional[str] = None
    thread_id: Optional[str] = None

    @property
    def is_comment(self) -> bool:
        return self.parent_id is not None


class CredibilityScore(Record):
    kind: ClassVar[RecordKind] = RecordKind.SCORE

    parent_id: str = Field(..., description="Scored content id")
    sources: List[str] = Field(default_factory=list)
    # Unclamped: contests may push value outside [0, 5]
    value: float = 0.0


class Contest(Record):
    kind: ClassVar[RecordKind] = RecordKind.CONTEST

    score_parent_id: str = Field(..., description="Target CredibilityScore id")
    in_favor: bool
    sources: List[str] = Field(default_factory=list)
    delta: float

    model_config = ConfigDict(frozen=True)


class Like(Record):
    kind: ClassVar[RecordKind] = RecordKind.LIKE

    user_id: str
    parent_id: str
    created_at: datetime = Field(default_factory=utcnow)


class Repost(Record):
    kind: ClassVar[RecordKind] = RecordKind.REPOST

    user_id: str
    parent_id: str
    created_at: datetime = Field(default_factory=utcnow)


class FollowEdge(Record):
    kind: ClassVar[RecordKind] = RecordKind.FOLLOW

    src_user_id: str
    dst_user_id: str
    created_at: datetime = Field(default_factory=utcnow)


class FilterPolicy(Record):
    kind: ClassVar[RecordKind] = RecordKind.FILTER

    owner_feed_id: str
    unscored: bool = True
    high_scored: bool = True
    low_scored: bool = True


class MaterializedFeed(Record):
    kind: ClassVar[RecordKind] = RecordKind.FEED

    viewer_id: str
    filter_id: Optional[str] = None
    visible_content_ids: List[str] = Field(default_factory=list)


class SearchState(Record):
    kind: ClassVar[RecordKind] = RecordKind.SEARCH

    viewer_id: str
    query: str = ""
    user_ids: List[str] = Field(default_factory=list)


class Thread(Record):
    kind: ClassVar[RecordKind] = RecordKind.THREAD

    author_id: str
    created_at: datetime = Field(default_factory=utcnow)


RECORD_TYPES = {
    cls.kind: cls
    for cls in (
        User,
        ContentItem,
        CredibilityScore,
        Contest,
        Like,
        Repost,
        FollowEdge,
        FilterPolicy,
        MaterializedFeed,
        SearchState,
        Thread,
    )
}


def record_type(kind: Union[RecordKind, str]) -> type:
    """Resolve the pydantic model class for a record kind."""
    return RECORD_TYPES[RecordKind(kind)]
