"""Host checks: required tools and the invoking user's identity."""

import logging
import os
import shutil
from typing import Dict, List, Optional, Tuple

from .errors import MissingTool


logger = logging.getLogger(__name__)

# tool -> pacman package providing it
REQUIRED_TOOLS = {
    'rsync': 'rsync',
    'mount.cifs': 'cifs-utils',
}


def check_required_tools(use_sudo: bool = True,
                         tools: Optional[Dict[str, str]] = None) -> List[str]:
    """Make sure the external programs the backup shells out to exist.

    Args:
        use_sudo: Also require sudo.
        tools: Mapping of tool name to package; defaults to REQUIRED_TOOLS.

    Returns:
        Names of the tools that were checked.

    Raises:
        MissingTool: For the first tool not found on PATH.
    """
    required = dict(tools if tools is not None else REQUIRED_TOOLS)
    if use_sudo:
        required['sudo'] = 'sudo'

    for tool, package in required.items():
        if shutil.which(tool) is None:
            raise MissingTool(tool, package)
        logger.debug(f"Found {tool}")

    return list(required)


def resolve_owner(environ: Optional[Dict[str, str]] = None) -> Tuple[int, int]:
    """UID/GID that files on the share should belong to.

    When started through sudo by a regular user, that user owns the files,
    not root.
    """
    environ = os.environ if environ is None else environ

    sudo_uid = environ.get('SUDO_UID')
    sudo_gid = environ.get('SUDO_GID')
    if sudo_uid and sudo_gid and sudo_uid != '0':
        try:
            return int(sudo_uid), int(sudo_gid)
        except ValueError:
            logger.warning(f"Ignoring malformed SUDO_UID/SUDO_GID: {sudo_uid}/{sudo_gid}")

    return os.getuid(), os.getgid()
