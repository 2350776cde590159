"""
Directory watching for the dev loop.
"""

from .filters import (
    ANY_FILE_PATTERN,
    CORE_SOURCE_PATTERN,
    IGNORED_DIRS,
    PLUGIN_SOURCE_PATTERN,
    UI_PAGE_PATTERN,
    PatternFilter,
)
from .manager import WatchKind, WatchManager, WatchTarget

__all__ = [
    "ANY_FILE_PATTERN",
    "CORE_SOURCE_PATTERN",
    "IGNORED_DIRS",
    "PLUGIN_SOURCE_PATTERN",
    "UI_PAGE_PATTERN",
    "PatternFilter",
    "WatchKind",
    "WatchManager",
    "WatchTarget",
]
