"""Advisory lock so two runs never reconcile the same tree at once."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from bundlesync.errors import LockHeldError

logger = logging.getLogger(__name__)


class RunLock:
    """Exclusive lock file, created atomically and removed on exit.

    Use as a context manager::

        with RunLock(settings.lock_path):
            reconciler.run(directives)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.held = False

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise LockHeldError(str(self.path)) from None
        with os.fdopen(fd, "w") as f:
            f.write(f"{os.getpid()}\n")
        self.held = True
        logger.debug("Acquired %s", self.path)

    def release(self) -> None:
        if self.held:
            self.path.unlink(missing_ok=True)
            self.held = False
            logger.debug("Released %s", self.path)

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
