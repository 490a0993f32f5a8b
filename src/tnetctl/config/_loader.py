# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Raw configuration sources: TOML files and ``TNETCTL_`` environment variables.

Every function here works on plain nested dicts. Validation into typed
sections happens afterwards, in `Config.from_dict`.
"""

import copy
import os
import re
import tomllib
from collections.abc import Mapping
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any

import orjson

from tnetctl.exceptions import ConfigLoadError

ENV_PREFIX = "TNETCTL_"

# Separates section and key in environment variable names
ENV_KEY_SEPARATOR = "__"

_BOOLEANS = {"true": True, "false": False}

_POSITION_PATTERN = re.compile(r"\(at line (\d+), column (\d+)\)")


def _error_position(error: ValueError) -> tuple[int | None, int | None]:
    line = getattr(error, "lineno", None)
    column = getattr(error, "colno", None)
    if line is None and (match := _POSITION_PATTERN.search(str(error))):
        line, column = int(match.group(1)), int(match.group(2))
    return line, column


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Load one TOML configuration file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ConfigLoadError: If the file is not valid TOML. The error carries
            the line and column reported by the parser.
    """
    raw = path.read_bytes()
    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        msg = f"Invalid configuration file {path}: {e}"
        line, column = _error_position(e)
        raise ConfigLoadError(msg, path=path, line=line, column=column) from e


def deep_merge(
    base: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    override: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Return ``base`` with ``override`` layered on top.

    Tables merge key by key; any other value in ``override``, lists
    included, replaces the one in ``base`` wholesale. The result shares no
    mutable state with either input.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_string_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Convert an environment string to the TOML type it most likely means.

    Booleans are matched case-insensitively. Numbers without a dot become
    ints, with a dot floats. Bracketed or braced text is tried as JSON.
    Anything that fails to convert stays a string, so ``0.0.0.0`` is kept
    as an address.

    Examples:
        >>> parse_string_value("8080")
        8080
        >>> parse_string_value('["tnet", "-v"]')
        ['tnet', '-v']
    """
    if value.lower() in _BOOLEANS:
        return _BOOLEANS[value.lower()]

    number_type = float if "." in value else int
    try:
        return number_type(value)
    except ValueError:
        pass

    if value[:1] + value[-1:] in ("[]", "{}"):
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            pass

    return value


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Assign ``value`` at a dotted path such as ``server.port``.

    Missing tables along the path are created; a scalar in the way is
    replaced by a table.
    """
    *tables, leaf = key_path.split(".")
    target = d
    for table in tables:
        child = target.get(table)
        if not isinstance(child, dict):
            child = target[table] = {}
        target = child
    target[leaf] = value


def parse_env_vars(prefix: str = ENV_PREFIX) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect ``<prefix>SECTION__KEY`` variables into a nested dict.

    ``TNETCTL_PROCESS__KILL_AFTER=3`` sets ``process.kill_after``. Names
    without the ``__`` separator, such as ``TNETCTL_STRICT_CONFIG``, are
    flags read elsewhere and are skipped.
    """
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    for name, raw in os.environ.items():
        if not name.startswith(prefix):
            continue
        key = name.removeprefix(prefix)
        if ENV_KEY_SEPARATOR not in key:
            continue
        key_path = key.lower().replace(ENV_KEY_SEPARATOR, ".")
        set_nested_key(overrides, key_path, parse_string_value(raw))
    return overrides
