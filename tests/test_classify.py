"""Tests for rulemerge.classify -- caller-supplied include classification."""

from __future__ import annotations

import rulemerge.classify


class TestIdentifier:
    def test_stem_is_lowercased(self) -> None:
        assert rulemerge.classify.identifier("rules/Python.md") == "python"

    def test_only_last_suffix_dropped(self) -> None:
        assert rulemerge.classify.identifier("next.js.md") == "next.js"


class TestLookupClassifier:
    def test_language_and_framework(self) -> None:
        classify = rulemerge.classify.lookup_classifier(["python"], ["django"])
        assert classify("python.md") == "language"
        assert classify("lang/django.md") == "framework"

    def test_unknown_is_none(self) -> None:
        classify = rulemerge.classify.lookup_classifier(["python"], ["django"])
        assert classify("house-style.md") is None

    def test_lookup_is_case_insensitive(self) -> None:
        classify = rulemerge.classify.lookup_classifier(["Go"], [])
        assert classify("GO.md") == "language"

    def test_framework_wins_when_listed_twice(self) -> None:
        classify = rulemerge.classify.lookup_classifier(["swift"], ["swift"])
        assert classify("swift.md") == "framework"

    def test_no_classifier(self) -> None:
        assert rulemerge.classify.no_classifier("python.md") is None
