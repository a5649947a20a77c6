"""Exceptions raised by the backup stages."""

from typing import List, Optional


class BackupError(Exception):
    """Base class for errors that end a backup run."""

    def __init__(self, message: str, hints: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.hints = hints or []


class MissingCredentials(BackupError):
    """No credentials file and no terminal to prompt on."""

    def __init__(self, credentials_file: str):
        super().__init__(
            f"Credentials file '{credentials_file}' not found!",
            hints=["Create it with your SMB credentials for automated backups."]
        )
        self.credentials_file = credentials_file


class MountFailed(BackupError):
    """The share could not be mounted."""

    def __init__(self, remote_path: str, exit_code: int, server: str = None, share: str = None):
        super().__init__(
            f"Failed to mount SMB share {remote_path} (exit code {exit_code})",
            hints=[
                f"Network connectivity to {server or remote_path}",
                "SMB credentials",
                f"SMB share name '{share or remote_path}'",
            ]
        )
        self.remote_path = remote_path
        self.exit_code = exit_code


class MountPointBusy(BackupError):
    """The local mount point is in use or holds leftover files."""

    def __init__(self, mount_point: str, reason: str):
        super().__init__(
            f"Mount point {mount_point} cannot be used: {reason}",
            hints=[f"Unmount or clean up {mount_point} and run again"]
        )
        self.mount_point = mount_point


class SourceMissing(BackupError):
    """Source directory does not exist."""

    def __init__(self, source_dir: str):
        super().__init__(f"Source directory '{source_dir}' does not exist!")
        self.source_dir = source_dir


class DestinationUnwritable(BackupError):
    """Backup folder could not be created on the share."""

    def __init__(self, destination: str, reason: str = ""):
        message = f"Failed to create backup folder '{destination}' on SMB share"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.destination = destination


class MissingTool(BackupError):
    """A required external program is not installed."""

    def __init__(self, tool: str, package: str):
        super().__init__(
            f"{tool} is not installed",
            hints=[f"Install with: sudo pacman -S {package}"]
        )
        self.tool = tool
        self.package = package


class BackupInterrupted(BackupError):
    """A termination signal arrived during the run."""

    def __init__(self, signum: int):
        super().__init__(f"Backup interrupted by signal {signum}")
        self.signum = signum


class CopyToolReportedFailure(Exception):
    """rsync exited non-zero. Reported in the result, never raised past the copy stage."""

    def __init__(self, exit_code: int):
        super().__init__(f"Copy tool exited with code {exit_code}")
        self.exit_code = exit_code


class CleanupFailed(Exception):
    """Unmount or mount point removal failed. Logged, never the run's verdict."""
