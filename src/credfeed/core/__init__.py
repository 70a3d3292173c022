# src/credfeed/core/__init__.py

"""
Core orchestration for credfeed.
Manages configuration and wires the components behind the service facade.
"""

from .config import AppConfig, load_config
from .service import CredFeedService

__all__ = [
    "AppConfig",
    "load_config",
    "CredFeedService",
]
