"""Manifest model and loader for ``build.yaml``.

A manifest looks like::

    merge_rules:
      - name: python_django
        base_files: [base.md]
        include_files: [python.md, django.md]
        output: build/python_django.md
        order: [base, language, framework]
    settings:
      separator: "\\n\\n---\\n\\n"
      preserve_comments: true
      merge_headers: false

Relative paths resolve against the directory holding the manifest.
Parsing is side-effect free; nothing here touches the documents.
"""

from __future__ import annotations

import dataclasses
import pathlib
from typing import Any

import yaml

import rulemerge.errors

BASE = "base"
LANGUAGE = "language"
FRAMEWORK = "framework"
CATEGORIES = (BASE, LANGUAGE, FRAMEWORK)
INCLUDE_CATEGORIES = (LANGUAGE, FRAMEWORK)

DEFAULT_SEPARATOR = "\n\n---\n\n"
DEFAULT_ORDER = CATEGORIES


@dataclasses.dataclass(frozen=True)
class IncludeFile:
    """An include document, optionally pinned to a category."""

    path: str
    category: str | None = None


@dataclasses.dataclass(frozen=True)
class MergeRule:
    name: str
    base_files: tuple[str, ...]
    include_files: tuple[IncludeFile, ...]
    output: str
    order: tuple[str, ...] = DEFAULT_ORDER


@dataclasses.dataclass(frozen=True)
class Settings:
    separator: str = DEFAULT_SEPARATOR
    preserve_comments: bool = True
    merge_headers: bool = False
    allow_empty_categories: bool = False
    comment_delimiters: tuple[str, str] = ("<!--", "-->")


@dataclasses.dataclass(frozen=True)
class Manifest:
    rules: tuple[MergeRule, ...]
    settings: Settings = dataclasses.field(default_factory=Settings)
    root: pathlib.Path = pathlib.Path(".")

    def rule(self, name: str) -> MergeRule:
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(name)

    @property
    def rule_names(self) -> list[str]:
        return [r.name for r in self.rules]

    def resolve(self, path: str) -> pathlib.Path:
        """Resolve a manifest-relative path."""
        candidate = pathlib.Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self.root / candidate


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------

def _require_str(value: Any, field: str, rule: str | None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise rulemerge.errors.ManifestError(
            f"{field} must be a non-empty string", field=field, rule=rule
        )
    return value


def _str_list(value: Any, field: str, rule: str | None) -> list[str]:
    if not isinstance(value, list):
        raise rulemerge.errors.ManifestError(
            f"{field} must be a list", field=field, rule=rule
        )
    return [_require_str(v, field, rule) for v in value]


def _parse_include(entry: Any, rule: str) -> IncludeFile:
    if isinstance(entry, str):
        return IncludeFile(_require_str(entry, "include_files", rule))
    if isinstance(entry, dict):
        path = _require_str(entry.get("path"), "include_files.path", rule)
        category = entry.get("category")
        if category is not None and category not in INCLUDE_CATEGORIES:
            raise rulemerge.errors.ManifestError(
                f"unrecognised include category {category!r} for {path}",
                field="include_files.category",
                rule=rule,
            )
        return IncludeFile(path, category)
    raise rulemerge.errors.ManifestError(
        "include_files entries must be paths or {path, category} mappings",
        field="include_files",
        rule=rule,
    )


def _parse_order(value: Any, rule: str) -> tuple[str, ...]:
    if value is None:
        return DEFAULT_ORDER
    tags = _str_list(value, "order", rule)
    seen: set[str] = set()
    for tag in tags:
        if tag not in CATEGORIES:
            raise rulemerge.errors.ManifestError(
                f"unrecognised category {tag!r} in order "
                f"(expected one of {', '.join(CATEGORIES)})",
                field="order",
                rule=rule,
            )
        if tag in seen:
            raise rulemerge.errors.ManifestError(
                f"category {tag!r} appears more than once in order",
                field="order",
                rule=rule,
            )
        seen.add(tag)
    return tuple(tags)


def _parse_rule(raw: Any, index: int) -> MergeRule:
    if not isinstance(raw, dict):
        raise rulemerge.errors.ManifestError(
            f"merge_rules[{index}] must be a mapping", field="merge_rules"
        )
    if "name" not in raw:
        raise rulemerge.errors.ManifestError(
            f"merge_rules[{index}] is missing name", field="name"
        )
    name = _require_str(raw["name"], "name", None)
    for required in ("output", "base_files"):
        if required not in raw:
            raise rulemerge.errors.ManifestError(
                f"rule {name!r} is missing {required}", field=required, rule=name
            )

    base_files = _str_list(raw["base_files"], "base_files", name)
    if not base_files:
        raise rulemerge.errors.ManifestError(
            f"rule {name!r} has no base_files", field="base_files", rule=name
        )
    includes_raw = raw.get("include_files")
    if includes_raw is None:
        includes_raw = []
    if not isinstance(includes_raw, list):
        raise rulemerge.errors.ManifestError(
            "include_files must be a list", field="include_files", rule=name
        )

    return MergeRule(
        name=name,
        base_files=tuple(base_files),
        include_files=tuple(_parse_include(e, name) for e in includes_raw),
        output=_require_str(raw["output"], "output", name),
        order=_parse_order(raw.get("order"), name),
    )


def _parse_settings(raw: Any) -> Settings:
    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        raise rulemerge.errors.ManifestError(
            "settings must be a mapping", field="settings"
        )
    defaults = Settings()
    kwargs: dict[str, Any] = {}

    if "separator" in raw:
        if not isinstance(raw["separator"], str):
            raise rulemerge.errors.ManifestError(
                "separator must be a string", field="separator"
            )
        kwargs["separator"] = raw["separator"]
    for flag in ("preserve_comments", "merge_headers", "allow_empty_categories"):
        if flag in raw:
            if not isinstance(raw[flag], bool):
                raise rulemerge.errors.ManifestError(
                    f"{flag} must be true or false", field=flag
                )
            kwargs[flag] = raw[flag]
    if "comment_delimiters" in raw:
        delims = _str_list(raw["comment_delimiters"], "comment_delimiters", None)
        if len(delims) != 2:
            raise rulemerge.errors.ManifestError(
                "comment_delimiters must be [open, close]",
                field="comment_delimiters",
            )
        kwargs["comment_delimiters"] = (delims[0], delims[1])

    return dataclasses.replace(defaults, **kwargs)


# ---------------------------------------------------------------------------
# Core API
# ---------------------------------------------------------------------------

def parse_manifest(text: str, root: pathlib.Path | None = None) -> Manifest:
    """Parse manifest *text* into a :class:`Manifest`.

    Raises :class:`~rulemerge.errors.ManifestError` on any structural
    problem. Rule names and resolved output paths must be unique.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise rulemerge.errors.ManifestError(
            f"manifest is not valid YAML: {exc}"
        ) from exc

    if not isinstance(data, dict):
        raise rulemerge.errors.ManifestError("manifest must be a mapping")
    rules_raw = data.get("merge_rules")
    if not isinstance(rules_raw, list):
        raise rulemerge.errors.ManifestError(
            "merge_rules must be a list", field="merge_rules"
        )

    manifest = Manifest(
        rules=tuple(_parse_rule(raw, i) for i, raw in enumerate(rules_raw)),
        settings=_parse_settings(data.get("settings")),
        root=root if root is not None else pathlib.Path("."),
    )

    names: set[str] = set()
    outputs: dict[pathlib.Path, str] = {}
    for rule in manifest.rules:
        if rule.name in names:
            raise rulemerge.errors.ManifestError(
                f"duplicate rule name {rule.name!r}", field="name", rule=rule.name
            )
        names.add(rule.name)
        out = manifest.resolve(rule.output).resolve()
        if out in outputs:
            raise rulemerge.errors.ManifestError(
                f"rules {outputs[out]!r} and {rule.name!r} share output {rule.output}",
                field="output",
                rule=rule.name,
            )
        outputs[out] = rule.name
    return manifest


def load_manifest(path: str | pathlib.Path) -> Manifest:
    """Read and parse the manifest file at *path*."""
    path = pathlib.Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise rulemerge.errors.ManifestError(
            f"cannot read manifest {path}: {exc}"
        ) from exc
    return parse_manifest(text, root=path.parent)
