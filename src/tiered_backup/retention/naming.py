"""
Artifact file naming.

Artifacts are named ``<Prefix>_yyyy-MM-dd_HH-mm-ss.<ext>`` in local time.
The same pattern is used to recover a timestamp from existing files.
"""

import re
from datetime import datetime

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_NAME_PATTERN = re.compile(
    r"_(?P<stamp>\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2})\.[^.]+$"
)


def format_artifact_name(prefix: str, when: datetime | None = None, extension: str = "zip") -> str:
    """
    Build an artifact file name for a point in time.

    Args:
        prefix: Name prefix, e.g. ``Backup``
        when: Timestamp; aware values are converted to local time
        extension: File extension without the dot

    Returns:
        File name such as ``Backup_2024-11-15_12-00-00.zip``
    """
    when = when or datetime.now()
    if when.tzinfo is not None:
        when = when.astimezone().replace(tzinfo=None)
    return f"{prefix}_{when.strftime(TIMESTAMP_FORMAT)}.{extension.lstrip('.')}"


def parse_artifact_timestamp(name: str) -> datetime | None:
    """
    Recover the timestamp embedded in an artifact name.

    Returns:
        Timezone-aware local datetime, or None when the name does not match
    """
    match = _NAME_PATTERN.search(name)
    if not match:
        return None
    try:
        naive = datetime.strptime(match.group("stamp"), TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return naive.astimezone()


def is_artifact_name(name: str, prefix: str, extension: str) -> bool:
    """Check whether a file name belongs to the artifact family ``prefix``/``extension``."""
    return name.startswith(f"{prefix}_") and name.endswith(f".{extension.lstrip('.')}")
