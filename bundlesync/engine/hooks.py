"""Post-sync command hooks declared with ``bundle-command:``."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from bundlesync.errors import PostCommandFailure

logger = logging.getLogger(__name__)

OUTPUT_LIMIT = 5000


def run_post_command(name: str, command: str, cwd: Path) -> None:
    """Run ``command`` through the shell inside the bundle directory.

    Raises:
        PostCommandFailure: If the command exits non-zero or cannot start.
    """
    logger.info("Running post-sync command for %s: %s", name, command)
    try:
        proc = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise PostCommandFailure(name, command, -1, str(e)) from e

    if proc.stdout:
        logger.info("%s: %s", name, proc.stdout[-OUTPUT_LIMIT:].rstrip())
    if proc.returncode != 0:
        output = (proc.stderr or proc.stdout)[-OUTPUT_LIMIT:]
        raise PostCommandFailure(name, command, proc.returncode, output)
    if proc.stderr:
        logger.info("%s: %s", name, proc.stderr[-OUTPUT_LIMIT:].rstrip())
