"""Backup run orchestration."""

import logging
import os
import signal
from typing import Callable, Dict, List, Optional

import click

from .copier import CopyEngine
from .credentials import CredentialResolver
from .errors import BackupError, BackupInterrupted, SourceMissing
from .models import BackupJob, BackupResult, JobState
from .mount import ShareMount
from ..utils.formatters import format_hints


HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class BackupRunner:
    """Runs one backup job: credentials, mount, copy, release."""

    def __init__(self, job: BackupJob, resolver: CredentialResolver,
                 share_mount: ShareMount, copy_engine: CopyEngine,
                 notifier=None, reporter=None,
                 tool_check: Optional[Callable[[], object]] = None):
        """Initialize backup runner.

        Args:
            job: Immutable job configuration.
            resolver: Credential stage.
            share_mount: Mount stage.
            copy_engine: Copy stage.
            notifier: Optional DesktopNotifier, used in automated mode.
            reporter: Optional EmailReporter.
            tool_check: Optional callable that raises MissingTool.
        """
        self.job = job
        self.resolver = resolver
        self.share_mount = share_mount
        self.copy_engine = copy_engine
        self.notifier = notifier
        self.reporter = reporter
        self.tool_check = tool_check
        self.logger = logging.getLogger(__name__)

        self.state = JobState.INIT
        self.state_history: List[JobState] = [JobState.INIT]
        self.result: Optional[BackupResult] = None
        self.error: Optional[BackupError] = None
        self.interrupted: Optional[int] = None
        self._releasing = False

    def _transition(self, state: JobState) -> None:
        self.logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)

    def run(self) -> int:
        """Run the job.

        Returns:
            Process exit code: 0 on success, cancellation or a copy that
            reported errors (unless strict), 1 on any fatal error.
        """
        previous_handlers = self._install_signal_handlers()
        try:
            try:
                self._execute()
            except BackupError as e:
                self.error = e
            finally:
                self._release()
        finally:
            self._restore_signal_handlers(previous_handlers)

        if self.error is None and self.interrupted is not None:
            self.error = BackupInterrupted(self.interrupted)

        return self._finish()

    def _execute(self) -> None:
        job = self.job
        if not job.interactive:
            self.logger.info("Running in automated mode")
        self.logger.info("Starting backup process...")
        self.logger.info(f"Source: {job.source_dir}")
        self.logger.info(f"Destination: {job.smb_url}/{job.destination_folder}")
        if job.started_at:
            self.logger.info(f"Timestamp: {job.destination_folder}")

        if not os.path.isdir(job.source_dir):
            raise SourceMissing(job.source_dir)

        if self.tool_check:
            self.tool_check()

        credential = self.resolver.resolve(job.credentials_file)
        self._transition(JobState.CREDENTIAL_RESOLVED)

        handle = self.share_mount.acquire(job, credential)
        self._transition(JobState.MOUNTED)

        self._transition(JobState.COPYING)
        dest_dir = os.path.join(handle.mount_point, job.destination_folder)
        self.result = self.copy_engine.run(
            job.source_dir, dest_dir,
            progress_visible=job.interactive,
            interactive=job.interactive
        )

        if self.result.cancelled:
            return
        if self.result.success:
            self._transition(JobState.SUCCEEDED)
        else:
            self._transition(JobState.FAILED_COPY)

    def _release(self) -> None:
        self._releasing = True
        handle = self.share_mount.handle
        if handle is not None:
            self.share_mount.release(handle)
        if self.state is not JobState.INIT:
            self._transition(JobState.RELEASED)

    def _finish(self) -> int:
        job = self.job
        result = self.result

        if self.error is not None:
            exit_code = self._report_error(self.error)
        elif result.cancelled:
            exit_code = 0
        elif result.success:
            self.logger.info("✓ Backup completed successfully!")
            self.logger.info(f"Files backed up to: {job.smb_url}/{job.destination_folder}")
            self.logger.info(f"Summary: Files copied: {result.file_count}, Total size: {result.size_human}")
            if not job.interactive and self.notifier:
                self.notifier.backup_completed(result.file_count, result.size_human)
            exit_code = 0
        else:
            self.logger.warning(f"✗ Backup completed with errors (rsync exit code: {result.exit_code})")
            self.logger.info(f"Summary: Files copied: {result.file_count}, Total size: {result.size_human}")
            if not job.interactive and self.notifier:
                self.notifier.backup_failed()
            exit_code = 1 if job.strict else 0

        if self.reporter:
            self.reporter.send_result(job, result, self.error.message if self.error else None)

        self.logger.info("Backup process finished.")
        self._transition(JobState.DONE)
        return exit_code

    def _report_error(self, error: BackupError) -> int:
        self.logger.error(error.message)
        if self.job.interactive:
            if error.hints:
                click.echo("Please check:", err=True)
                click.echo(format_hints(error.hints), err=True)
        elif self.notifier:
            self.notifier.backup_failed(error.message)
        return 1

    def _handle_signal(self, signum, frame) -> None:
        self.interrupted = signum
        if self._releasing or self.share_mount.releasing:
            self.logger.warning(f"Received signal {signum} during cleanup; finishing cleanup first")
            return
        raise BackupInterrupted(signum)

    def _install_signal_handlers(self) -> Dict[int, object]:
        previous = {}
        for sig in HANDLED_SIGNALS:
            try:
                previous[sig] = signal.signal(sig, self._handle_signal)
            except ValueError:
                # Not the main thread; rely on the finally path alone
                self.logger.debug(f"Cannot install handler for signal {sig}")
        return previous

    def _restore_signal_handlers(self, previous: Dict[int, object]) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
