"""Directive parser.

Turns the lines of a vimrc into an ordered stream of ``BundleDirective``
values. ``bundle-command:`` lines belong to the bundle declared before
them, so the parser is a fold: the most recent bundle directive is held
back as the *active* directive until the next ``bundle:`` line (or the end
of input) makes it final.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from pathlib import Path
from typing import Iterable, Iterator

from bundlesync.directives.models import BundleDirective
from bundlesync.errors import ConfigError, DirectiveOrderError, DuplicateBundleError, ParseError

logger = logging.getLogger(__name__)

_PREFIX = r'^\s*"?\s*'
BUNDLE_RE = re.compile(_PREFIX + r"bundle:\s*(\S+)(?:\s+(\S+))?", re.IGNORECASE)
COMMAND_RE = re.compile(_PREFIX + r"bundle-command:\s*(.*?)\s*$", re.IGNORECASE)
STATIC_RE = re.compile(_PREFIX + r"static:\s*(\S+)", re.IGNORECASE)


def parse_directives(lines: Iterable[str]) -> Iterator[BundleDirective]:
    """Lazily parse directives from ``lines``.

    Static directives read while a bundle is still active are queued behind
    it, so the output keeps declaration order.

    Raises:
        DirectiveOrderError: A ``bundle-command:`` line has no bundle before it.
        ParseError: A ``bundle-command:`` line has an empty command.
    """
    active: BundleDirective | None = None
    queued: list[BundleDirective] = []

    for number, line in enumerate(lines, 1):
        match = BUNDLE_RE.match(line)
        if match:
            if active is not None:
                yield active
                yield from queued
                queued.clear()
            active = BundleDirective.from_url(match.group(1), match.group(2), number)
            continue

        match = COMMAND_RE.match(line)
        if match:
            command = match.group(1)
            if active is None:
                raise DirectiveOrderError(
                    "bundle-command: has no preceding bundle: directive", number
                )
            if not command:
                raise ParseError("bundle-command: is empty", number)
            if active.post_command:
                logger.warning(
                    "line %d: replacing post-sync command for %s (was %r)",
                    number,
                    active.name,
                    active.post_command,
                )
            active = dataclasses.replace(active, post_command=command)
            continue

        match = STATIC_RE.match(line)
        if match:
            directive = BundleDirective.static(match.group(1), number)
            if active is None:
                yield directive
            else:
                queued.append(directive)

    if active is not None:
        yield active
        yield from queued


def check_unique_names(directives: list[BundleDirective]) -> None:
    """Reject two bundles that map to the same directory.

    A static name shadowing a bundle is rejected too, since the directory
    could not be both left alone and synced.
    """
    statics = {d.name: d for d in directives if d.is_static}
    seen: dict[str, BundleDirective] = {}
    for directive in directives:
        if directive.is_static:
            continue
        if directive.name in statics:
            raise DuplicateBundleError(
                f"bundle '{directive.name}' is also declared static "
                f"(line {statics[directive.name].line_number})",
                directive.line_number,
            )
        previous = seen.get(directive.name)
        if previous is not None:
            raise DuplicateBundleError(
                f"bundle '{directive.name}' from {directive.source_url} collides with "
                f"{previous.source_url} (line {previous.line_number})",
                directive.line_number,
            )
        seen[directive.name] = directive


def load_directives(path: str | Path) -> list[BundleDirective]:
    """Read and fully validate the directives in ``path``.

    The whole file is consumed up front so that any parse error surfaces
    before a single bundle is touched.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Declaration file not found: {path}")

    with open(path) as f:
        directives = list(parse_directives(f))

    check_unique_names(directives)
    logger.debug("Read %d directives from %s", len(directives), path)
    return directives
