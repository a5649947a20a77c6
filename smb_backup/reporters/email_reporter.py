"""Email reporter for sending backup run summaries."""

import logging
import re
import smtplib
from email.mime.text import MIMEText
from typing import List, Optional

from ..core.models import BackupJob, BackupResult
from ..utils.formatters import format_date


EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class EmailReporter:
    """Mails the outcome of a backup run over SMTP."""

    def __init__(self, smtp_server: str = None, smtp_port: int = 587, smtp_user: str = None,
                 smtp_pass: str = None, from_address: str = None,
                 to_addresses: List[str] = None, use_tls: bool = True):
        """Initialize email reporter.

        Args:
            smtp_server: SMTP server hostname.
            smtp_port: SMTP server port.
            smtp_user: SMTP username.
            smtp_pass: SMTP password.
            from_address: From email address.
            to_addresses: List of recipient email addresses.
            use_tls: Whether to use TLS encryption.
        """
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.from_address = from_address
        self.to_addresses = to_addresses or []
        self.use_tls = use_tls
        self.logger = logging.getLogger(__name__)

    def send_result(self, job: BackupJob, result: Optional[BackupResult],
                    error: Optional[str] = None) -> bool:
        """Send the summary of a finished run.

        Args:
            job: The job that ran.
            result: Copy result, or None if the run failed before copying.
            error: Fatal error message, if any.

        Returns:
            True if the email was sent.
        """
        ok = error is None and result is not None and result.success
        status = "OK" if ok else "FAILED"
        subject = f"[smb-backup] {status}: {job.smb_url}/{job.destination_folder}"
        return self.send_report(subject, self.build_summary(job, result, error))

    def build_summary(self, job: BackupJob, result: Optional[BackupResult],
                      error: Optional[str] = None) -> str:
        lines = [
            f"Source: {job.source_dir}",
            f"Destination: {job.smb_url}/{job.destination_folder}",
        ]
        if job.started_at:
            lines.append(f"Started: {format_date(job.started_at)}")

        if error:
            lines.append(f"Error: {error}")
        elif result is not None:
            if result.cancelled:
                lines.append("Backup cancelled.")
            else:
                lines.append(f"Files copied: {result.file_count}, Total size: {result.size_human}")
                lines.append(f"rsync exit code: {result.exit_code}")
        return "\n".join(lines)

    def send_report(self, subject: str, text_content: str) -> bool:
        if not self.to_addresses:
            self.logger.error("No recipient addresses configured")
            return False

        msg = MIMEText(text_content, 'plain', 'utf-8')
        msg['Subject'] = subject
        msg['From'] = self.from_address
        msg['To'] = ', '.join(self.to_addresses)

        try:
            self._send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"Failed to send email report: {e}")
            return False

        self.logger.info(f"Email report sent to {len(self.to_addresses)} recipients")
        return True

    def _send_message(self, msg: MIMEText) -> None:
        self.logger.debug(f"Connecting to SMTP server {self.smtp_server}:{self.smtp_port}")

        with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
            if self.use_tls:
                server.starttls()

            if self.smtp_user and self.smtp_pass:
                server.login(self.smtp_user, self.smtp_pass)

            server.send_message(msg)

    def validate_configuration(self) -> List[str]:
        """Validate email configuration.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []

        if not self.smtp_server:
            errors.append("SMTP server not configured")

        if not self.from_address:
            errors.append("From address not configured")
        elif not EMAIL_PATTERN.match(self.from_address):
            errors.append(f"Invalid from address: {self.from_address}")

        if not self.to_addresses:
            errors.append("No recipient addresses configured")

        for addr in self.to_addresses:
            if not EMAIL_PATTERN.match(addr):
                errors.append(f"Invalid recipient address: {addr}")

        return errors
