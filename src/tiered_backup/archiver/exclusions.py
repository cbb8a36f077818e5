"""
Exclusion matching for the archive walk.

Names are compared case-insensitively by exact equality; there is no
globbing. The world lock file is always excluded.
"""

from dataclasses import dataclass
from typing import Iterable

LOCK_FILE_NAME = "session.lock"


def _lower_set(values: Iterable[str] | None, strip_dot: bool = False) -> frozenset[str]:
    result = set()
    for value in values or ():
        if value is None:
            continue
        value = str(value).strip().lower()
        if strip_dot:
            value = value.lstrip(".")
        if value:
            result.add(value)
    return frozenset(result)


@dataclass(frozen=True)
class ExclusionSet:
    """Directory-name, file-name and extension deny-lists."""

    dirs: frozenset[str] = frozenset()
    files: frozenset[str] = frozenset({LOCK_FILE_NAME})
    extensions: frozenset[str] = frozenset()

    @classmethod
    def from_lists(
        cls,
        dirs: Iterable[str] | None = None,
        files: Iterable[str] | None = None,
        extensions: Iterable[str] | None = None,
    ) -> "ExclusionSet":
        """Build an exclusion set from configured name lists."""
        return cls(
            dirs=_lower_set(dirs),
            files=_lower_set(files) | {LOCK_FILE_NAME},
            extensions=_lower_set(extensions, strip_dot=True),
        )

    def excludes_dir(self, name: str) -> bool:
        return name.lower() in self.dirs

    def excludes_file(self, name: str) -> bool:
        """Check a file basename against the file-name and extension lists."""
        lowered = name.lower()
        if lowered == LOCK_FILE_NAME or lowered in self.files:
            return True
        dot = lowered.rfind(".")
        if dot >= 0 and lowered[dot + 1:] in self.extensions:
            return True
        return False
