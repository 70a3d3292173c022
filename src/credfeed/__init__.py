# src/credfeed/__init__.py

"""
credfeed
Credibility scores, contests and filtered feed materialization for a small social graph.
"""

__version__ = "0.1.0"
__author__ = "credfeed Development Team"

# No direct exports from root; subpackages are accessed explicitly
# e.g., from credfeed.core import CredFeedService
