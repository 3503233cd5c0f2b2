"""Text surgery on git submodule manifests.

Removes ``[submodule "<path>"]`` sections from ``.gitmodules`` and
``.git/config``. This is plain text editing of an INI-like format and is
only ever used best-effort.
"""

from __future__ import annotations

import re
from pathlib import Path


def _section_pattern(path: str) -> re.Pattern:
    return re.compile(
        r'^\[submodule\s+"' + re.escape(path) + r'"\][^\n]*(?:\n|$)'
        r"(?:[ \t]+[^\n]*(?:\n|$)|[ \t]*\n)*",
        re.MULTILINE,
    )


def strip_submodule_section(text: str, path: str) -> tuple[str, bool]:
    """Return ``text`` without the section for ``path`` and whether one was found."""
    new_text, count = _section_pattern(path).subn("", text)
    return new_text, count > 0


def strip_submodule_file(file: Path, path: str) -> bool:
    """Rewrite ``file`` without the section for ``path``.

    Returns False when the file does not exist or has no such section.
    Raises ``OSError`` if the file cannot be read or written.
    """
    if not file.is_file():
        return False
    text = file.read_text()
    new_text, found = strip_submodule_section(text, path)
    if found:
        file.write_text(new_text)
    return found
