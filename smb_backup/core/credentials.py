"""Credential resolution for the SMB share."""

import logging
import os
import stat
from typing import Callable, Optional

import click

from .errors import MissingCredentials
from .models import Credential


def _click_prompt(text: str, hide_input: bool = False) -> str:
    return click.prompt(text, hide_input=hide_input)


class CredentialResolver:
    """Decides how the run authenticates to the share."""

    def __init__(self, interactive: bool, prompt: Optional[Callable[..., str]] = None):
        """Initialize credential resolver.

        Args:
            interactive: Whether a terminal is attached to stdin.
            prompt: Callable used to ask for input; defaults to click.prompt.
        """
        self.interactive = interactive
        self.prompt = prompt or _click_prompt
        self.logger = logging.getLogger(__name__)

    def resolve(self, credentials_file: str) -> Credential:
        """Return a credential for the run.

        A credentials file always wins over prompting. Its contents are not
        read here; mount.cifs consumes the file directly.

        Args:
            credentials_file: Candidate path to the credentials file.

        Returns:
            File-reference or inline Credential.

        Raises:
            MissingCredentials: If there is no file and no terminal.
        """
        if credentials_file and os.path.isfile(credentials_file):
            self.logger.info(f"Using credentials file: {credentials_file}")
            self._check_permissions(credentials_file)
            return Credential(file_path=credentials_file)

        if not self.interactive:
            raise MissingCredentials(credentials_file)

        username = self.prompt("Enter SMB username")
        password = self.prompt("Enter SMB password", hide_input=True)
        return Credential(username=username, password=password)

    def _check_permissions(self, path: str) -> None:
        try:
            mode = os.stat(path).st_mode
        except OSError as e:
            self.logger.debug(f"Could not stat {path}: {e}")
            return

        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            self.logger.warning(
                f"Credentials file {path} is accessible by other users; "
                f"run 'chmod 600 {path}'"
            )
