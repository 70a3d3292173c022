# src/credfeed/model/__init__.py

"""
Record model for credfeed.
Pydantic records for users, content, scores, contests, follows, filters and feeds.
"""

from .schema import (
    Bucket,
    ChildKind,
    Contest,
    ContentItem,
    CredibilityScore,
    FeedOrder,
    FilterPolicy,
    FollowEdge,
    Like,
    MaterializedFeed,
    Record,
    RecordKind,
    Relation,
    Repost,
    SearchState,
    Thread,
    User,
    record_type,
)

__all__ = [
    "Bucket",
    "ChildKind",
    "Contest",
    "ContentItem",
    "CredibilityScore",
    "FeedOrder",
    "FilterPolicy",
    "FollowEdge",
    "Like",
    "MaterializedFeed",
    "Record",
    "RecordKind",
    "Relation",
    "Repost",
    "SearchState",
    "Thread",
    "User",
    "record_type",
]
