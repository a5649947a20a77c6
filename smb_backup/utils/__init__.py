"""Utility modules for SMB backup."""

from .formatters import format_file_size, format_backup_folder, format_date, format_hints

__all__ = ["format_file_size", "format_backup_folder", "format_date", "format_hints"]
