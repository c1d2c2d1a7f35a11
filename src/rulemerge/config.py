"""Layered configuration for rulemerge, persisted as TOML.

Sections are dataclasses registered with ``@configurable``. A loaded
section is built from three layers, later layers winning::

    code defaults
    ~/.config/rulemerge/config.toml     global (user-wide)
    .rulemerge/config.toml              local  (project root)

The project root is the enclosing git checkout, or the cwd outside one.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger("rulemerge.config")

DEFAULTS = "default"
GLOBAL = "global"
LOCAL = "local"

_REGISTRY: dict[str, type] = {}


def configurable(section: str):
    """Class decorator — register a dataclass as a configurable section."""

    def decorator(cls: type[T]) -> type[T]:
        _REGISTRY[section] = cls
        return cls

    return decorator


def _section_class(section: str) -> type:
    cls = _REGISTRY.get(section)
    if cls is None:
        raise KeyError(f"Unknown config section: {section}")
    return cls


# ---------------------------------------------------------------------------
# Layer locations
# ---------------------------------------------------------------------------

def _global_path() -> pathlib.Path:
    return pathlib.Path.home() / ".config" / "rulemerge" / "config.toml"


def _local_path(root: pathlib.Path) -> pathlib.Path:
    return root / ".rulemerge" / "config.toml"


def find_repo_root(cwd: pathlib.Path) -> pathlib.Path | None:
    """Return the nearest ancestor of *cwd* holding ``.git``, if any."""
    for candidate in (cwd.resolve(), *cwd.resolve().parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def project_root(root: pathlib.Path | None = None) -> pathlib.Path:
    if root is not None:
        return root
    cwd = pathlib.Path.cwd()
    return find_repo_root(cwd) or cwd


def layer_path(scope: str, root: pathlib.Path | None = None) -> pathlib.Path:
    """Return the TOML file backing *scope* (``global`` or ``local``)."""
    if scope == GLOBAL:
        return _global_path()
    if scope == LOCAL:
        return _local_path(project_root(root))
    raise ValueError(f"Unknown config scope: {scope}")


def _read_layer(path: pathlib.Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _write_layer(path: pathlib.Path, data: dict[str, Any]) -> None:
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())


# ---------------------------------------------------------------------------
# Value coercion (CLI strings → field types)
# ---------------------------------------------------------------------------

def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


_COERCERS = {
    "bool": lambda v: v.lower() in ("true", "1", "yes", "on"),
    "int": int,
    "float": float,
    "list": _split_list,
    "str": str,
}


def _type_name(cls: type, key: str) -> str:
    """Return the base type name of field *key* (``list[str]`` → ``list``)."""
    for f in dataclasses.fields(cls):
        if f.name == key:
            annotation = f.type if isinstance(f.type, str) else f.type.__name__
            return annotation.split("[", 1)[0]
    raise KeyError(f"Unknown key: {key}")


def coerce(section: str, key: str, value: str) -> Any:
    """Convert CLI text *value* to the type of ``section.key``."""
    name = _type_name(_section_class(section), key)
    return _COERCERS.get(name, str)(value)


_TOML_TYPES = {"bool": bool, "int": int, "float": (int, float), "str": str}


def _conform(cls: type, key: str, value: Any) -> Any:
    """Fit a TOML layer *value* to the type of field *key*.

    Strings go through the CLI coercers, so ``languages = "python"`` reads
    as ``["python"]``. Any other mismatch raises ``ValueError``.
    """
    name = _type_name(cls, key)
    if isinstance(value, str) and name != "str":
        return _COERCERS[name](value) if name in _COERCERS else value
    if name == "list":
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return value
    elif name in _TOML_TYPES:
        # bool is an int subclass; only a bool field takes true/false.
        if isinstance(value, _TOML_TYPES[name]) and (
            name == "bool" or not isinstance(value, bool)
        ):
            return float(value) if name == "float" else value
    else:
        return value
    raise ValueError(f"expected {name}, got {type(value).__name__} {value!r}")


# ---------------------------------------------------------------------------
# Core API
# ---------------------------------------------------------------------------

def list_sections() -> dict[str, type]:
    """Return a copy of the registry."""
    return dict(_REGISTRY)


def _layers(section: str, root: pathlib.Path | None) -> list[tuple[str, dict]]:
    return [
        (GLOBAL, _read_layer(layer_path(GLOBAL)).get(section, {})),
        (LOCAL, _read_layer(layer_path(LOCAL, root)).get(section, {})),
    ]


def describe(section: str, root: pathlib.Path | None = None) -> dict[str, tuple[Any, str]]:
    """Map each key of *section* to ``(effective value, layer it came from)``.

    Layer values that cannot be fitted to the field's type are logged and
    skipped, leaving the lower layer's value in effect.
    """
    cls = _section_class(section)
    defaults = cls()
    result = {
        f.name: (getattr(defaults, f.name), DEFAULTS) for f in dataclasses.fields(cls)
    }
    for scope, values in _layers(section, root):
        for key, value in values.items():
            if key not in result:
                continue
            try:
                result[key] = (_conform(cls, key, value), scope)
            except ValueError as exc:
                logger.warning(
                    "Ignoring %s config %s.%s: %s", scope, section, key, exc
                )
    return result


def load(section: str, root: pathlib.Path | None = None) -> Any:
    """Build the effective config instance for *section*."""
    cls = _section_class(section)
    overrides = {
        key: value
        for key, (value, scope) in describe(section, root).items()
        if scope != DEFAULTS
    }
    return cls(**overrides)


def get_effective(section: str, key: str, root: pathlib.Path | None = None) -> Any:
    """Get the effective value for a single config key."""
    return getattr(load(section, root), key)


def set_value(
    section: str,
    key: str,
    value: Any,
    *,
    scope: str = LOCAL,
    root: pathlib.Path | None = None,
) -> None:
    """Persist ``section.key = value`` in the *scope* layer."""
    if isinstance(value, str):
        value = coerce(section, key, value)
    else:
        _type_name(_section_class(section), key)

    path = layer_path(scope, root)
    data = _read_layer(path)
    data.setdefault(section, {})[key] = value
    _write_layer(path, data)


def reset_value(
    section: str,
    key: str,
    *,
    scope: str = LOCAL,
    root: pathlib.Path | None = None,
) -> bool:
    """Drop an override from the *scope* layer. Returns True if one existed."""
    path = layer_path(scope, root)
    data = _read_layer(path)
    values = data.get(section, {})
    if key not in values:
        return False
    del values[key]
    if not values:
        del data[section]
    _write_layer(path, data)
    return True
