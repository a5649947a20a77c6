"""Mounting and releasing the remote SMB share."""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .errors import CleanupFailed, MountFailed, MountPointBusy
from .models import BackupJob, Credential, MountHandle


class Mounter(ABC):
    """Capability interface over the OS mount tooling."""

    @abstractmethod
    def mount(self, remote_path: str, mount_point: str, options: str) -> int:
        """Attach remote_path at mount_point. Returns the tool's exit status."""

    @abstractmethod
    def unmount(self, mount_point: str) -> int:
        """Detach mount_point. Returns the tool's exit status."""

    @abstractmethod
    def is_mounted(self, mount_point: str) -> bool:
        """Whether something is currently mounted at mount_point."""


class CifsMounter(Mounter):
    """Mounts SMB shares with mount.cifs, optionally through sudo."""

    def __init__(self, use_sudo: bool = True):
        self.use_sudo = use_sudo
        self.logger = logging.getLogger(__name__)

    def _prefix(self) -> List[str]:
        return ['sudo'] if self.use_sudo else []

    def mount(self, remote_path: str, mount_point: str, options: str) -> int:
        # options may carry an inline password, so the command line is never logged
        cmd = self._prefix() + ['mount', '-t', 'cifs', remote_path, mount_point, '-o', options]
        self.logger.debug(f"Running mount for {remote_path} at {mount_point}")
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0 and result.stderr:
            self.logger.error(f"mount: {result.stderr.strip()}")
        return result.returncode

    def unmount(self, mount_point: str) -> int:
        cmd = self._prefix() + ['umount', mount_point]
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0 and result.stderr:
            self.logger.debug(f"umount: {result.stderr.strip()}")
        return result.returncode

    def is_mounted(self, mount_point: str) -> bool:
        return os.path.ismount(mount_point)


def build_mount_options(job: BackupJob, credential: Credential) -> str:
    """Build the -o option string for mount.cifs.

    Args:
        job: The backup job (owner mapping and extra options).
        credential: Resolved credential; a file reference wins over inline values.

    Returns:
        Comma separated option string.
    """
    options = []
    if credential.is_file:
        options.append(f"credentials={credential.file_path}")
    else:
        options.append(f"username={credential.username}")
        options.append(f"password={credential.password}")

    options.append(f"uid={job.uid}")
    options.append(f"gid={job.gid}")
    options.extend(_format_extra_options(job.mount_options))
    return ",".join(options)


def _format_extra_options(extra: Dict[str, Any]) -> List[str]:
    formatted = []
    for key, value in extra.items():
        if value is None or value is True:
            formatted.append(str(key))
        elif value is False:
            continue
        else:
            formatted.append(f"{key}={value}")
    return formatted


class ShareMount:
    """Owns the mount point directory and the mount for one run."""

    def __init__(self, mounter: Mounter, mount_root: Optional[str] = None):
        """Initialize share mount.

        Args:
            mounter: Mount tool implementation.
            mount_root: Directory to create the mount point in; defaults to
                the job's mount_root.
        """
        self.mounter = mounter
        self.mount_root = mount_root
        self.handle: Optional[MountHandle] = None
        self.releasing = False
        self.logger = logging.getLogger(__name__)

    def mount_point_for(self, job: BackupJob) -> str:
        root = self.mount_root or job.mount_root
        return os.path.join(root, f"smb_backup_{os.getpid()}")

    def acquire(self, job: BackupJob, credential: Credential) -> MountHandle:
        """Create the mount point and mount the share on it.

        Args:
            job: The backup job.
            credential: Resolved credential.

        Returns:
            Handle for the active mount.

        Raises:
            MountFailed: If the mount tool exits non-zero. The mount point
                directory is already removed when this is raised.
            MountPointBusy: If the mount point is already in use or holds
                leftover files. Nothing is mounted or removed.
        """
        mount_point = self.mount_point_for(job)
        self._create_mount_point(mount_point)
        handle = MountHandle(mount_point=mount_point, remote_path=job.remote_path)
        self.handle = handle

        self.logger.info("Mounting SMB share...")
        try:
            exit_code = self.mounter.mount(job.remote_path, mount_point,
                                           build_mount_options(job, credential))
        except BaseException:
            self.release(handle)
            raise

        if exit_code != 0:
            self.release(handle)
            raise MountFailed(job.remote_path, exit_code, server=job.server, share=job.share)

        handle.mounted = True
        self.logger.info(f"SMB share mounted successfully at {mount_point}")
        return handle

    def _create_mount_point(self, mount_point: str) -> None:
        os.makedirs(os.path.dirname(mount_point), exist_ok=True)
        try:
            os.mkdir(mount_point)
            return
        except FileExistsError:
            pass

        # An empty leftover directory is reused, like mkdir -p
        if not os.path.isdir(mount_point):
            raise MountPointBusy(mount_point, "exists and is not a directory")
        if self.mounter.is_mounted(mount_point):
            raise MountPointBusy(mount_point, "something is already mounted there")
        if os.listdir(mount_point):
            raise MountPointBusy(mount_point, "directory is not empty")

    def release(self, handle: MountHandle) -> None:
        """Unmount and remove the mount point. Safe to call more than once.

        While this runs `releasing` is set; signal handlers must defer
        instead of raising. The handle is marked released only once both
        steps have been attempted. Failures are logged and never raised.
        """
        if handle.released:
            return
        self.releasing = True
        try:
            self.logger.info("Cleaning up...")

            try:
                self._unmount(handle)
            except (CleanupFailed, OSError) as e:
                self.logger.warning(f"Cleanup failed: {e}")

            try:
                if os.path.isdir(handle.mount_point):
                    os.rmdir(handle.mount_point)
            except OSError as e:
                self.logger.warning(f"Cleanup failed: could not remove {handle.mount_point}: {e}")

            handle.released = True
        finally:
            self.releasing = False

    def _unmount(self, handle: MountHandle) -> None:
        if not self.mounter.is_mounted(handle.mount_point):
            handle.mounted = False
            return

        exit_code = self.mounter.unmount(handle.mount_point)
        if exit_code != 0:
            raise CleanupFailed(f"umount {handle.mount_point} exited with code {exit_code}")
        handle.mounted = False

