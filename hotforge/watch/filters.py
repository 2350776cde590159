"""
Event filters for directory watches.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

from watchfiles import Change, DefaultFilter

PLUGIN_SOURCE_PATTERN = r"\.(ts|json|lua|tsx|jsx|css|html)$"
CORE_SOURCE_PATTERN = r"\.(ts|json|lua)$"
UI_PAGE_PATTERN = r"html/Page\.tsx$"
ANY_FILE_PATTERN = r".*"

IGNORED_DIRS: tuple[str, ...] = ("node_modules", ".git")


class PatternFilter(DefaultFilter):
    """
    watchfiles filter: library defaults, extra ignored directories and
    paths, then an extension allow-pattern matched against the POSIX path.

    Args:
        pattern: Regex a path must match (searched, not anchored)
        exclude: Optional regex that rejects an otherwise matching path
        ignore_dirs: Directory names ignored anywhere in the tree
        ignore_paths: Absolute path prefixes ignored entirely
    """

    def __init__(
        self,
        pattern: str,
        *,
        exclude: str | None = None,
        ignore_dirs: Sequence[str] = IGNORED_DIRS,
        ignore_paths: Sequence[Path] = (),
    ):
        super().__init__(
            ignore_dirs=(*DefaultFilter.ignore_dirs, *ignore_dirs),
            ignore_paths=[str(p) for p in ignore_paths],
        )
        self.pattern = re.compile(pattern)
        self.exclude = re.compile(exclude) if exclude else None

    def matches(self, path: str) -> bool:
        posix = Path(path).as_posix()
        if not self.pattern.search(posix):
            return False
        return not (self.exclude and self.exclude.search(posix))

    def __call__(self, change: Change, path: str) -> bool:
        return super().__call__(change, path) and self.matches(path)

    def __repr__(self) -> str:
        return f"PatternFilter(pattern={self.pattern.pattern!r}, exclude={self.exclude.pattern if self.exclude else None!r})"
