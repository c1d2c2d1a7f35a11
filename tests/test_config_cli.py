"""Tests for rulemerge.config_cli — the ``rulemerge config`` subcommands."""

from __future__ import annotations

import pathlib

import pytest

import rulemerge.config
import rulemerge.config_cli


class TestConfigCli:
    def test_list_shows_sections(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert rulemerge.config_cli.main(["list"]) == 0
        out = capsys.readouterr().out
        assert "[build]" in out
        assert "max_workers: int = 4" in out
        assert "[classify]" in out

    def test_get_default(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert rulemerge.config_cli.main(["get", "build.max_workers"]) == 0
        assert capsys.readouterr().out.strip() == "4"

    def test_get_list_is_comma_joined(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rulemerge.config.set_value("classify", "languages", "python,go", root=tmp_path)
        assert rulemerge.config_cli.main(
            ["get", "classify.languages", "--path", str(tmp_path)]
        ) == 0
        assert capsys.readouterr().out.strip() == "python,go"

    def test_get_bad_key_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert rulemerge.config_cli.main(["get", "max_workers"]) == 1
        assert "expected section.key" in capsys.readouterr().err

    def test_set_then_get(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = ["--path", str(tmp_path)]
        assert rulemerge.config_cli.main(["set", "build.max_workers", "8", *path]) == 0
        assert "Set build.max_workers = 8 (local)" in capsys.readouterr().out
        assert rulemerge.config.load("build", root=tmp_path).max_workers == 8

    def test_set_unknown_key(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert rulemerge.config_cli.main(["set", "build.nope", "1"]) == 1
        assert "Unknown key" in capsys.readouterr().err

    def test_reset(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = ["--path", str(tmp_path)]
        rulemerge.config_cli.main(["set", "build.log_level", "INFO", *path])
        assert rulemerge.config_cli.main(["reset", "build.log_level", *path]) == 0
        assert "Reset build.log_level (local)" in capsys.readouterr().out
        assert rulemerge.config_cli.main(["reset", "build.log_level", *path]) == 0
        assert "No local override" in capsys.readouterr().out

    def test_show_with_origin(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        rulemerge.config.set_value("build", "max_workers", 2, root=tmp_path)
        rulemerge.config_cli.main(["show", "--origin", "--path", str(tmp_path)])
        out = capsys.readouterr().out
        assert "max_workers = 2  # local" in out
        assert "log_level = 'WARNING'  # default" in out

    def test_no_subcommand_prints_help(self) -> None:
        assert rulemerge.config_cli.main([]) == 1
