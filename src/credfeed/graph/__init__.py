# src/credfeed/graph/__init__.py

"""
Content and follow graph for credfeed.
Lookup index, back-reference maintenance with cascading deletes, and feed materialization.
"""

from .index import ContentGraphIndex
from .follow import FollowGraph
from .integrity import ReferentialIntegrityManager
from .feed import FeedMaterializer
from .search import UserSearch
from .threads import ThreadBuilder

__all__ = [
    "ContentGraphIndex",
    "FollowGraph",
    "ReferentialIntegrityManager",
    "FeedMaterializer",
    "UserSearch",
    "ThreadBuilder",
]
