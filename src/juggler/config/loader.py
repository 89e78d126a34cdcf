"""
juggler — runtime config loader.

File: src/juggler/config/loader.py

Purpose
- Build the effective settings for a data source from defaults, an optional
  ``juggler.toml``, ``JUGGLER_<SECTION>_<KEY>`` environment variables, and
  dotted ``--set`` overrides from the CLI.

Functional requirements
- Later sources win: CLI > env > file > defaults.
- Environment values are coerced to the type of the default they replace.
- The merged result is validated before it is returned.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final

from juggler.config.schema import assert_valid_config, default_config, merge_config
from juggler.errors import JugglerError

DEFAULT_CONFIG_FILE: Final[str] = "juggler.toml"
ENV_PREFIX: Final[str] = "JUGGLER_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})


class ConfigLoadError(JugglerError, ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults.

    Without ``config_path`` a ``juggler.toml`` in the working directory is used
    when present; an explicit path must exist.
    """

    if config_path is None:
        file_payload = _read_toml(Path.cwd() / DEFAULT_CONFIG_FILE, required=False)
    else:
        file_payload = _read_toml(Path(config_path).expanduser(), required=True)

    # File errors are reported before env/CLI values are applied on top.
    settings = assert_valid_config(merge_config(default_config(), file_payload))
    settings = merge_config(settings, _env_overrides(environ))
    settings = merge_config(settings, _dotted_overrides(cli_overrides or {}))
    return assert_valid_config(settings)


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.is_file():
        if required:
            raise ConfigLoadError(f"config file not found: {path.resolve()}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_overrides(environ: Mapping[str, str] | None) -> dict[str, dict[str, Any]]:
    env = os.environ if environ is None else environ
    overrides: dict[str, dict[str, Any]] = {}
    for section, defaults in default_config().items():
        for key, default in defaults.items():
            name = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
            raw = env.get(name)
            if raw is None:
                continue
            coerce = _coercer_for(default)
            try:
                value = coerce(raw.strip())
            except ValueError as exc:
                raise ConfigLoadError(f"{name} -> {section}.{key}: {exc}") from exc
            overrides.setdefault(section, {})[key] = value
    return overrides


def _coercer_for(default: object) -> Callable[[str], object]:
    if isinstance(default, bool):
        return _parse_bool
    if isinstance(default, int):
        return _parse_int
    return str


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"expected a boolean (true/false/1/0/yes/no/on/off), got {raw!r}")


def _parse_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"expected an integer, got {raw!r}") from None


def _dotted_overrides(overrides: Mapping[str, object]) -> dict[str, Any]:
    nested: dict[str, Any] = {}
    for dotted, value in overrides.items():
        *parents, leaf = dotted.split(".")
        if not leaf or not all(parents):
            raise ConfigLoadError(f"invalid override key {dotted!r}")
        node = nested
        for part in parents:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise ConfigLoadError(f"override {dotted!r} conflicts with another override")
        node[leaf] = value
    return nested


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "load_config",
]
