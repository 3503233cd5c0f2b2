"""Inventory reporter — renders ``doc/bundles.txt``.

The file is a vim help page listing every installed bundle with the tag
description git reports for it and the date of its last commit, so
``:help bundles.txt`` shows what is installed. It is rewritten from
scratch on every run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable

from bundlesync import __version__
from bundlesync.directives.models import BundleDirective
from bundlesync.vcs.port import VersionControl

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "n/a"
HEADERS = ("PLUGIN", "VERSION", "RELEASE DATE")
MODELINE = " vim:tw=78:ts=8:ft=help:norl:"


@dataclass(frozen=True)
class InventoryRecord:
    name: str
    version_label: str | None = None
    iso_date: str | None = None


def make_record(vcs: VersionControl, name: str, path: Path) -> InventoryRecord:
    """Query the backend for one bundle's version label and last commit date."""
    committed = vcs.last_commit_date(path)
    return InventoryRecord(
        name=name,
        version_label=vcs.describe_version(path),
        iso_date=committed.isoformat(sep=" ", timespec="seconds") if committed else None,
    )


def collect_inventory(
    directives: Iterable[BundleDirective],
    bundle_dir: Path,
    vcs: VersionControl,
) -> list[InventoryRecord]:
    """Build records for the declared bundles that exist on disk, without syncing."""
    records = []
    for directive in directives:
        path = Path(bundle_dir) / directive.name
        if directive.is_static or not path.is_dir():
            continue
        records.append(make_record(vcs, directive.name, path))
    return records


def render_inventory(records: list[InventoryRecord], generated_at: datetime) -> str:
    """Render records as a fixed-width help-file table."""
    rows = [
        (r.name, r.version_label or NOT_AVAILABLE, r.iso_date or NOT_AVAILABLE)
        for r in records
    ]
    widths = [
        max([len(HEADERS[i])] + [len(row[i]) for row in rows])
        for i in range(len(HEADERS))
    ]

    def line(cells) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    stamp = generated_at.strftime("%Y-%m-%d %H:%M:%S")
    lines = [
        "*bundles.txt*  Bundles installed from your vimrc",
        "",
        f"Generated {stamp} by bundlesync {__version__}.",
        "This file is rewritten on every run; edits will be lost.",
        "",
        line(HEADERS),
        line("-" * width for width in widths),
    ]
    lines.extend(line(row) for row in rows)
    lines.extend(["", "", MODELINE, ""])
    return "\n".join(lines)


def write_inventory(
    path: Path,
    records: list[InventoryRecord],
    generated_at: datetime | None = None,
) -> Path:
    """Write the rendered inventory to ``path``, creating its directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_inventory(records, generated_at or datetime.now()))
    logger.info("Wrote inventory of %d bundles to %s", len(records), path)
    return path
