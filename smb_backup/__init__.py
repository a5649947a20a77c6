"""
SMB Backup - back up a local directory to an SMB share.

Mounts the share, copies the source tree into a timestamped folder with
rsync, and always releases the mount afterwards.
"""

__version__ = "1.0.0"

from .core.runner import BackupRunner
from .core.models import BackupJob, BackupResult

__all__ = ["BackupRunner", "BackupJob", "BackupResult"]
