# src/credfeed/exceptions.py

"""credfeed exception hierarchy."""

from typing import Any, Dict, Optional


class CredFeedError(Exception):
    """Base exception for all credfeed errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFound(CredFeedError):
    """A referenced record (content, score, filter, follow edge, ...) is absent."""

    def __init__(self, kind: str, record_id: str):
        self.kind = str(getattr(kind, "value", kind))
        self.record_id = record_id
        super().__init__(
            f"{self.kind} with ID {record_id} does not exist.",
            {"kind": self.kind, "id": record_id},
        )


class AlreadyExists(CredFeedError):
    pass


class AlreadyScored(AlreadyExists):
    """Content already carries a credibility score."""

    def __init__(self, content_id: str, score_id: str):
        super().__init__(
            f"Content {content_id} already has credibility score {score_id}.",
            {"content_id": content_id, "score_id": score_id},
        )


class DuplicateFollow(AlreadyExists):
    def __init__(self, src_user_id: str, dst_user_id: str):
        super().__init__(
            f"User {src_user_id} already follows {dst_user_id}.",
            {"src_user_id": src_user_id, "dst_user_id": dst_user_id},
        )


class InvalidFollow(CredFeedError):
    """Follow edge that the graph does not allow (self-loop)."""


class InvalidRange(CredFeedError):
    """Score outside [0, 5]. Not raised by scoring; contests drift unclamped."""


class ConfigError(CredFeedError):
    pass
