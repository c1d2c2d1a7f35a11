"""Category classification for include documents.

The engine never decides on its own whether ``python.md`` is a language
document. Callers hand it a classifier: any callable taking the include
path as written in the manifest and returning ``"language"``,
``"framework"`` or ``None``.
"""

from __future__ import annotations

import pathlib
from typing import TYPE_CHECKING

import rulemerge.manifest

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    Classifier = Callable[[str], "str | None"]


def identifier(path: str) -> str:
    """Return the lookup key for *path*: its lower-cased file stem.

    ``rules/Python.md`` -> ``python``; ``next.js.md`` -> ``next.js``.
    """
    return pathlib.PurePath(path).stem.lower()


def lookup_classifier(
    languages: Iterable[str] = (),
    frameworks: Iterable[str] = (),
) -> Classifier:
    """Build a classifier from explicit language and framework identifiers.

    An identifier listed under both is a framework: framework files are
    the more specific of the two.
    """
    table: dict[str, str] = {}
    for name in languages:
        table[name.lower()] = rulemerge.manifest.LANGUAGE
    for name in frameworks:
        table[name.lower()] = rulemerge.manifest.FRAMEWORK

    def classify(path: str) -> str | None:
        return table.get(identifier(path))

    return classify


def no_classifier(path: str) -> str | None:
    """Classifier that knows nothing; every include must declare its category."""
    return None
