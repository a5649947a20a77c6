"""Data models for SMB backup runs."""

import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..utils.formatters import format_backup_folder, format_file_size


DEFAULT_FOLDER_FORMAT = "%Y_%m_%d - %H_%M"


class JobState(Enum):
    """Lifecycle states of a single backup run."""
    INIT = "init"
    CREDENTIAL_RESOLVED = "credential_resolved"
    MOUNTED = "mounted"
    COPYING = "copying"
    SUCCEEDED = "succeeded"
    FAILED_COPY = "failed_copy"
    RELEASED = "released"
    DONE = "done"


@dataclass(frozen=True)
class Credential:
    """Authentication for the remote share.

    Either a path to a credentials file (consumed by mount.cifs) or an
    inline username/password pair entered at runtime.
    """
    file_path: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @property
    def is_file(self) -> bool:
        return self.file_path is not None

    def __repr__(self) -> str:
        if self.is_file:
            return f"Credential(file_path={self.file_path!r})"
        return f"Credential(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class BackupJob:
    """Configuration snapshot for one backup run."""
    source_dir: str
    server: str
    share: str
    destination_folder: str
    credentials_file: str
    interactive: bool
    mount_root: str = "/tmp"
    mount_options: Dict[str, Any] = field(default_factory=lambda: {"iocharset": "utf8"})
    use_sudo: bool = True
    uid: int = 0
    gid: int = 0
    strict: bool = False
    started_at: Optional[datetime] = None

    @property
    def remote_path(self) -> str:
        return f"//{self.server}/{self.share}"

    @property
    def smb_url(self) -> str:
        return f"smb://{self.server}/{self.share}"

    @classmethod
    def from_config(cls, config: Dict[str, Any], now: datetime, interactive: bool,
                    owner: Optional[tuple] = None) -> "BackupJob":
        """Build a job from a loaded configuration.

        Args:
            config: Configuration dictionary (defaults already merged).
            now: Run start time, used for the destination folder name.
            interactive: Whether a terminal is attached.
            owner: Optional (uid, gid) used for remote file ownership.

        Returns:
            An immutable BackupJob.
        """
        share = config['share']
        uid, gid = owner if owner else (os.getuid(), os.getgid())
        folder_format = config.get('folder_format') or DEFAULT_FOLDER_FORMAT

        return cls(
            source_dir=os.path.expanduser(config['source']),
            server=share['server'],
            share=share['name'],
            destination_folder=format_backup_folder(now, folder_format),
            credentials_file=os.path.expanduser(config.get('credentials_file', '')),
            interactive=interactive,
            mount_root=config.get('mount_root', '/tmp'),
            mount_options=dict(config.get('mount_options') or {}),
            use_sudo=config.get('use_sudo', True),
            uid=uid,
            gid=gid,
            strict=config.get('strict', False),
            started_at=now,
        )


@dataclass
class MountHandle:
    """An active attachment of the remote share to a local directory."""
    mount_point: str
    remote_path: str
    mounted: bool = False
    released: bool = False


@dataclass
class BackupResult:
    """Outcome of a copy run."""
    success: bool
    file_count: int
    total_size: int
    exit_code: int
    destination: str
    cancelled: bool = False
    message: Optional[str] = None

    @property
    def size_human(self) -> str:
        return format_file_size(self.total_size)
