"""Error taxonomy for rulemerge builds.

``ManifestError`` aborts a whole build. The remaining errors are scoped to
a single rule and are collected into the build report.
"""

from __future__ import annotations


class RuleMergeError(Exception):
    """Base class for all rulemerge errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ManifestError(RuleMergeError):
    """The manifest is malformed or internally inconsistent."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        rule: str | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.rule = rule


class CategoryResolutionError(RuleMergeError):
    """A rule's ``order`` cannot be satisfied by its documents."""

    def __init__(
        self,
        message: str,
        *,
        rule: str,
        category: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.rule = rule
        self.category = category
        self.path = path


class MissingDocumentError(RuleMergeError):
    """A referenced document does not exist or cannot be read."""

    def __init__(self, rule: str, path: str, reason: str = "not found") -> None:
        super().__init__(f"document {path} {reason}")
        self.rule = rule
        self.path = path


class WriteError(RuleMergeError):
    """The rule's output could not be written."""

    def __init__(self, rule: str, path: str, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"cannot write {path}{detail}")
        self.rule = rule
        self.path = path
