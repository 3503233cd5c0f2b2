"""Error hierarchy for bundlesync.

Every failure the CLI knows how to report derives from ``BundleSyncError``.
Configuration and parse errors are raised before anything on disk is
touched; the rest abort a run that is already in progress.
"""

from __future__ import annotations


class BundleSyncError(Exception):
    """Base class for all bundlesync failures."""


# ── Configuration ────────────────────────────────────────────────────


class ConfigError(BundleSyncError):
    """The option sources could not be turned into settings."""


class UnknownOptionError(ConfigError):
    def __init__(self, key: str, source: str = ""):
        self.key = key
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Unknown option '{key}'{where}")


class UndefinedVariableError(ConfigError):
    def __init__(self, name: str, key: str = ""):
        self.name = name
        self.key = key
        context = f" (while expanding '{key}')" if key else ""
        super().__init__(f"Undefined variable ${name}{context}")


# ── Directives ───────────────────────────────────────────────────────


class ParseError(BundleSyncError):
    """The directive source is malformed."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class DirectiveOrderError(ParseError):
    """A ``bundle-command:`` appeared before any ``bundle:`` line."""


class DuplicateBundleError(ParseError):
    """Two ``bundle:`` lines resolve to the same directory name."""


# ── Execution ────────────────────────────────────────────────────────


class VcsCommandError(BundleSyncError):
    """A version-control command exited non-zero."""

    def __init__(self, command: str, exit_code: int | None, output: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        message = f"'{command}' failed with exit code {exit_code}"
        if output:
            message += f":\n{output.strip()}"
        super().__init__(message)


class TrashExhausted(BundleSyncError):
    def __init__(self, name: str, limit: int):
        self.name = name
        self.limit = limit
        super().__init__(
            f"No free trash slot for '{name}': {name}-01 .. {name}-{limit:02d} all exist"
        )


class PostCommandFailure(BundleSyncError):
    """A ``bundle-command:`` hook exited non-zero."""

    def __init__(self, name: str, command: str, exit_code: int, output: str = ""):
        self.name = name
        self.command = command
        self.exit_code = exit_code
        self.output = output
        message = f"Post-sync command for '{name}' exited {exit_code}: {command}"
        if output:
            message += f"\n{output.strip()}"
        super().__init__(message)


class LockHeldError(BundleSyncError):
    def __init__(self, lock_path: str):
        self.lock_path = lock_path
        super().__init__(
            f"Another bundlesync run holds {lock_path}; remove it if that run is gone"
        )
