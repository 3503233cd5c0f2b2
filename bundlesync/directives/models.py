"""Directive data model."""

from __future__ import annotations

from dataclasses import dataclass


def bundle_name_from_url(url: str) -> str:
    """Derive the bundle directory name from a repository URL.

    The last ``/``-separated segment is used, minus a ``vim-`` prefix and a
    ``.git`` suffix: ``https://github.com/tpope/vim-fugitive.git`` becomes
    ``fugitive``.
    """
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if ":" in name:
        # scp-style URLs with no path, e.g. "host:repo.git"
        name = name.rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if name.startswith("vim-"):
        name = name[len("vim-"):]
    return name


@dataclass(frozen=True)
class BundleDirective:
    """One declared unit of desired state."""

    name: str
    source_url: str = ""
    ref: str | None = None
    post_command: str | None = None
    is_static: bool = False
    line_number: int | None = None

    @classmethod
    def from_url(
        cls, url: str, ref: str | None = None, line_number: int | None = None
    ) -> BundleDirective:
        return cls(
            name=bundle_name_from_url(url),
            source_url=url,
            ref=ref,
            line_number=line_number,
        )

    @classmethod
    def static(cls, name: str, line_number: int | None = None) -> BundleDirective:
        return cls(name=name, is_static=True, line_number=line_number)

    def describe(self) -> str:
        if self.is_static:
            return f"static {self.name}"
        at = f" @ {self.ref}" if self.ref else ""
        return f"{self.name} <- {self.source_url}{at}"
