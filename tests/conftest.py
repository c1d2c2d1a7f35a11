"""Shared test fixtures for rulemerge tests."""

from __future__ import annotations

import pathlib

import pytest
import yaml

import rulemerge.config

BASE_MD = """\
# Coding Rules

- Keep functions small
"""

PYTHON_MD = """\
# Coding Rules

- Use type hints on public functions
"""

DJANGO_MD = """\
# Django

- Keep views thin
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch):
    """Point the global config layer at a temp file and run inside tmp_path."""
    global_toml = tmp_path / "global_config" / "config.toml"
    monkeypatch.setattr(rulemerge.config, "_global_path", lambda: global_toml)
    monkeypatch.chdir(tmp_path)
    return global_toml


@pytest.fixture
def rules_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create base.md, python.md and django.md under tmp_path/rules."""
    root = tmp_path / "rules"
    root.mkdir()
    (root / "base.md").write_text(BASE_MD)
    (root / "python.md").write_text(PYTHON_MD)
    (root / "django.md").write_text(DJANGO_MD)
    return root


@pytest.fixture
def write_manifest(rules_dir: pathlib.Path):
    """Factory writing a build.yaml next to the rule documents."""

    def _create(rules: list[dict], settings: dict | None = None) -> pathlib.Path:
        data: dict = {"merge_rules": rules}
        if settings is not None:
            data["settings"] = settings
        path = rules_dir / "build.yaml"
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _create


@pytest.fixture
def python_django_rule() -> dict:
    return {
        "name": "python_django",
        "base_files": ["base.md"],
        "include_files": ["python.md", "django.md"],
        "output": "build/python_django.md",
        "order": ["base", "language", "framework"],
    }
