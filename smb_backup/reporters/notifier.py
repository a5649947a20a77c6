"""Desktop notifications for unattended backup runs."""

import logging
import os
import shutil
import subprocess


class DesktopNotifier:
    """Best-effort notify-send wrapper.

    Only fires when notify-send is installed and a display is available,
    which is how a scheduled run tells the logged-in user what happened.
    """

    def __init__(self, enabled: bool = True, log_file: str = None):
        self.enabled = enabled
        self.log_file = log_file
        self.logger = logging.getLogger(__name__)

    def is_available(self) -> bool:
        return bool(self.enabled
                    and shutil.which('notify-send')
                    and os.environ.get('DISPLAY'))

    def notify(self, title: str, message: str) -> bool:
        """Send a desktop notification.

        Returns:
            True if notify-send ran and exited zero.
        """
        if not self.is_available():
            return False

        try:
            result = subprocess.run(['notify-send', title, message],
                                    capture_output=True, text=True, timeout=10)
        except (subprocess.TimeoutExpired, OSError) as e:
            self.logger.debug(f"notify-send failed: {e}")
            return False

        if result.returncode != 0:
            self.logger.debug(f"notify-send exited with code {result.returncode}")
        return result.returncode == 0

    def backup_completed(self, file_count: int, size_human: str) -> bool:
        return self.notify(
            "Backup Completed",
            f"Successfully backed up {file_count} files ({size_human}) to SMB share"
        )

    def backup_failed(self, reason: str = None) -> bool:
        message = "Backup completed with errors."
        if reason:
            message = f"Backup failed: {reason}."
        if self.log_file:
            message += f" Check {self.log_file}"
        return self.notify("Backup Error", message)
