"""Option parsing and resolution.

Options come from three layers, lowest precedence first: built-in
defaults, the config file, and command-line tokens. File lines and
command-line tokens share one grammar::

    [-[-]]key[=value]

A bare key switches a boolean on, ``no-<key>`` switches it off. Values may
reference other options or environment variables as ``$name`` or
``${name}``; options win over the environment.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from bundlesync.errors import ConfigError, UndefinedVariableError, UnknownOptionError

DEFAULT_CONFIG_FILE = "$HOME/.bundlesync.conf"
INVENTORY_FILENAME = "bundles.txt"
LOCK_FILENAME = ".bundlesync.lock"

BOOLEAN_OPTIONS = {"verbose", "submodule", "updates"}

OPTION_DEFAULTS: dict[str, str] = {
    "verbose": "false",
    "submodule": "false",
    "updates": "true",
    "dotfiles": "$HOME/.vim",
    "bundle_dir": "$dotfiles/bundle",
    "trash_dir": "$dotfiles/Trashed-Bundles",
    "doc_dir": "$dotfiles/doc",
    "vimrc": "$HOME/.vimrc",
}

_OPTION_RE = re.compile(r"^-{0,2}([A-Za-z][\w-]*)\s*(?:=\s*(.*))?$")
_VARIABLE_RE = re.compile(r"\$(?:\{(\w+)\}|(\w+))")
_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


@dataclass(frozen=True)
class Settings:
    """Fully resolved, immutable run configuration."""

    dotfiles: Path
    bundle_dir: Path
    trash_dir: Path
    doc_dir: Path
    vimrc: Path
    verbose: bool = False
    submodule: bool = False
    updates: bool = True

    @property
    def inventory_path(self) -> Path:
        return self.doc_dir / INVENTORY_FILENAME

    @property
    def lock_path(self) -> Path:
        return self.dotfiles / LOCK_FILENAME


def _normalize_key(key: str) -> str:
    return key.strip().lower().replace("-", "_")


def parse_option(text: str, source: str = "") -> tuple[str, str] | None:
    """Parse one option line or token into a ``(key, raw_value)`` pair.

    Returns None for blank lines and ``#`` comments.

    Raises:
        UnknownOptionError: If the key is not a recognized option.
        ConfigError: If the text is not an option at all, or a value-taking
            option has no value.
    """
    text = text.strip()
    if not text or text.startswith("#"):
        return None

    match = _OPTION_RE.match(text)
    if not match:
        raise ConfigError(f"Cannot parse option '{text}'" + (f" in {source}" if source else ""))

    key = _normalize_key(match.group(1))
    value = match.group(2)

    if key.startswith("no_") and key[3:] in BOOLEAN_OPTIONS:
        if value is not None:
            raise ConfigError(f"Option '{match.group(1)}' does not take a value")
        return key[3:], "false"

    if key not in OPTION_DEFAULTS:
        raise UnknownOptionError(match.group(1), source)

    if value is None:
        if key not in BOOLEAN_OPTIONS:
            raise ConfigError(f"Option '{match.group(1)}' requires a value")
        value = "true"

    return key, value.strip()


def parse_options(lines: Iterable[str], source: str = "") -> dict[str, str]:
    """Parse a sequence of option lines; later lines override earlier ones."""
    options: dict[str, str] = {}
    for number, line in enumerate(lines, 1):
        parsed = parse_option(line, f"{source}:{number}" if source else "")
        if parsed:
            key, value = parsed
            options[key] = value
    return options


def read_option_file(path: Path) -> dict[str, str]:
    with open(path) as f:
        return parse_options(f, str(path))


def interpolate(
    options: Mapping[str, str],
    environ: Mapping[str, str],
) -> dict[str, str]:
    """Expand ``$name`` references in every option value."""
    resolved: dict[str, str] = {}

    def resolve(key: str, chain: tuple[str, ...]) -> str:
        if key in resolved:
            return resolved[key]
        if key in chain:
            cycle = " -> ".join((*chain, key))
            raise ConfigError(f"Circular option reference: {cycle}")

        def substitute(match: re.Match) -> str:
            name = match.group(1) or match.group(2)
            option_key = _normalize_key(name)
            if option_key in options:
                return resolve(option_key, (*chain, key))
            if name in environ:
                return environ[name]
            raise UndefinedVariableError(name, key)

        resolved[key] = _VARIABLE_RE.sub(substitute, options[key])
        return resolved[key]

    for key in options:
        resolve(key, ())
    return resolved


def _to_bool(key: str, value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"Option '{key}' expects a boolean, got '{value}'")


def _to_path(value: str) -> Path:
    return Path(value).expanduser()


def load_settings(
    tokens: Iterable[str] = (),
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Merge defaults, the config file and command-line tokens into ``Settings``.

    Args:
        tokens: Raw command-line option tokens, e.g. ``["--submodule"]``.
        config_path: Explicit config file. When omitted the default file is
            read if it exists; an explicit path must exist.
        environ: Environment used for ``$NAME`` expansion (defaults to
            ``os.environ``).

    Raises:
        ConfigError: On any unknown key, undefined variable or bad value.
    """
    env = os.environ if environ is None else environ
    options = dict(OPTION_DEFAULTS)

    if config_path is not None:
        path = _to_path(str(config_path))
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        options.update(read_option_file(path))
    else:
        default = _to_path(interpolate({"config": DEFAULT_CONFIG_FILE}, env)["config"])
        if default.is_file():
            options.update(read_option_file(default))

    options.update(parse_options(tokens))
    values = interpolate(options, env)

    return Settings(
        dotfiles=_to_path(values["dotfiles"]),
        bundle_dir=_to_path(values["bundle_dir"]),
        trash_dir=_to_path(values["trash_dir"]),
        doc_dir=_to_path(values["doc_dir"]),
        vimrc=_to_path(values["vimrc"]),
        verbose=_to_bool("verbose", values["verbose"]),
        submodule=_to_bool("submodule", values["submodule"]),
        updates=_to_bool("updates", values["updates"]),
    )
