"""Reporting backup outcomes to the user."""

from .email_reporter import EmailReporter
from .notifier import DesktopNotifier

__all__ = ["EmailReporter", "DesktopNotifier"]
