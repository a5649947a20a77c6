"""Copying the source tree into the backup folder."""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Callable, Optional, Tuple

import click

from .errors import CopyToolReportedFailure, DestinationUnwritable, SourceMissing
from .models import BackupResult


class Copier(ABC):
    """Capability interface over the file transfer tool."""

    @abstractmethod
    def copy(self, source_dir: str, dest_dir: str, progress: bool) -> int:
        """Copy the contents of source_dir into dest_dir. Returns the exit status."""


class RsyncCopier(Copier):
    """Archive-mode rsync: permissions, times and symlinks preserved, recursive."""

    def __init__(self, extra_args: Optional[list] = None):
        self.extra_args = extra_args or []
        self.logger = logging.getLogger(__name__)

    def build_command(self, source_dir: str, dest_dir: str, progress: bool) -> list:
        cmd = ['rsync', '-av']
        if progress:
            cmd.append('--progress')
        cmd.extend(self.extra_args)
        # Trailing slashes: copy the contents of source, not the directory itself
        cmd.extend([os.path.join(source_dir, ''), os.path.join(dest_dir, '')])
        return cmd

    def copy(self, source_dir: str, dest_dir: str, progress: bool) -> int:
        cmd = self.build_command(source_dir, dest_dir, progress)
        self.logger.debug(f"Running: {' '.join(cmd)}")
        # Output goes straight to the terminal so --progress stays live
        result = subprocess.run(cmd)
        return result.returncode


def _click_confirm(text: str) -> bool:
    return click.confirm(text, default=False)


def count_tree(path: str) -> Tuple[int, int]:
    """Count regular files and their total size under path.

    Symlinks are not followed and not counted.

    Returns:
        Tuple of (file_count, total_size_bytes).
    """
    file_count = 0
    total_size = 0
    for root, dirs, files in os.walk(path):
        for name in files:
            full_path = os.path.join(root, name)
            try:
                if os.path.islink(full_path):
                    continue
                total_size += os.lstat(full_path).st_size
                file_count += 1
            except OSError:
                continue
    return file_count, total_size


class CopyEngine:
    """Runs the copy stage and packages its outcome."""

    def __init__(self, copier: Copier, confirm: Optional[Callable[[str], bool]] = None):
        """Initialize copy engine.

        Args:
            copier: File transfer implementation.
            confirm: Yes/no question callable for interactive runs.
        """
        self.copier = copier
        self.confirm = confirm or _click_confirm
        self.logger = logging.getLogger(__name__)

    def run(self, source_dir: str, dest_dir: str, progress_visible: bool,
            interactive: Optional[bool] = None) -> BackupResult:
        """Copy source_dir into dest_dir.

        Args:
            source_dir: Local directory to back up.
            dest_dir: Timestamped folder on the mounted share.
            progress_visible: Show transfer progress.
            interactive: Whether the user can be asked questions; defaults
                to progress_visible.

        Returns:
            BackupResult. A non-zero copy status gives success=False, not an
            exception.

        Raises:
            SourceMissing: If source_dir is not a directory.
            DestinationUnwritable: If dest_dir cannot be created.
        """
        if interactive is None:
            interactive = progress_visible

        if not os.path.isdir(source_dir):
            raise SourceMissing(source_dir)

        if self._is_empty(source_dir):
            self.logger.warning(f"Source directory '{source_dir}' is empty!")
            if interactive and not self.confirm("Continue anyway?"):
                self.logger.info("Backup cancelled.")
                return BackupResult(
                    success=False,
                    file_count=0,
                    total_size=0,
                    exit_code=0,
                    destination=dest_dir,
                    cancelled=True,
                    message="Backup cancelled."
                )

        self.logger.info(f"Creating backup folder: {os.path.basename(dest_dir)}")
        try:
            os.makedirs(dest_dir, exist_ok=True)
        except OSError as e:
            raise DestinationUnwritable(dest_dir, str(e))

        self.logger.info("Starting file copy...")
        if progress_visible:
            click.echo("This may take a while depending on the amount of data...")
        exit_code = self.copier.copy(source_dir, dest_dir, progress_visible)

        file_count, total_size = count_tree(dest_dir)
        result = BackupResult(
            success=(exit_code == 0),
            file_count=file_count,
            total_size=total_size,
            exit_code=exit_code,
            destination=dest_dir
        )

        if exit_code != 0:
            failure = CopyToolReportedFailure(exit_code)
            self.logger.error(f"{failure}; {file_count} files present in destination")
            result.message = str(failure)

        return result

    def _is_empty(self, path: str) -> bool:
        with os.scandir(path) as entries:
            return next(entries, None) is None
