"""Formatting utilities for backup output and folder names."""

from datetime import datetime
from typing import List


def format_file_size(size_bytes: int) -> str:
    """Format a byte count the way `du -sh` does (1024-based, one decimal).

    Args:
        size_bytes: Size in bytes.

    Returns:
        Human readable size string.
    """
    if size_bytes < 1024:
        return f"{size_bytes}B"

    size = float(size_bytes)
    for unit in ['K', 'M', 'G', 'T']:
        size /= 1024
        if size < 1024:
            return f"{size:.1f}{unit}"
    return f"{size / 1024:.1f}P"


def format_backup_folder(dt: datetime, fmt: str = "%Y_%m_%d - %H_%M") -> str:
    """Name of the timestamped folder a run writes into.

    Args:
        dt: Run start time.
        fmt: strftime format; must sort the same way the times do.

    Returns:
        Folder name, e.g. '2025_03_04 - 18_05'.
    """
    return dt.strftime(fmt)


def format_date(dt: datetime) -> str:
    return dt.strftime('%Y-%m-%d %H:%M:%S')


def format_hints(hints: List[str], bullet: str = "- ") -> str:
    """Render troubleshooting hints as a bulleted block."""
    return "\n".join(f"{bullet}{hint}" for hint in hints)
