"""Merge engine — resolve, assemble, and write rule documents.

Each merge rule is built independently:

1. resolve its documents into the categories named by ``order``
2. read every document fresh from disk
3. join documents and categories with the manifest separator
4. replace the output file atomically

A failing rule never stops the others; ``run_build`` collects every
per-rule error into a :class:`BuildReport`.
"""

from __future__ import annotations

import concurrent.futures
import dataclasses
import logging
import os
import pathlib
import tempfile
import threading
from typing import TYPE_CHECKING

import rulemerge.errors
import rulemerge.manifest
import rulemerge.markup

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rulemerge.classify import Classifier

logger = logging.getLogger("rulemerge.engine")

OK = "ok"
FAILED = "failed"
CANCELLED = "cancelled"
DRY_RUN = "dry-run"


@dataclasses.dataclass(frozen=True)
class CategoryGroup:
    category: str
    paths: tuple[pathlib.Path, ...]


@dataclasses.dataclass(frozen=True)
class ResolvedRule:
    rule: rulemerge.manifest.MergeRule
    groups: tuple[CategoryGroup, ...]
    output: pathlib.Path

    @property
    def documents(self) -> list[pathlib.Path]:
        return [p for g in self.groups for p in g.paths]


@dataclasses.dataclass
class RuleResult:
    name: str
    output: pathlib.Path | None
    status: str
    error: rulemerge.errors.RuleMergeError | None = None
    size: int = 0


@dataclasses.dataclass
class BuildReport:
    results: list[RuleResult] = dataclasses.field(default_factory=list)
    interrupted: bool = False

    def _with(self, status: str) -> list[RuleResult]:
        return [r for r in self.results if r.status == status]

    @property
    def succeeded(self) -> list[RuleResult]:
        return [r for r in self.results if r.status in (OK, DRY_RUN)]

    @property
    def failed(self) -> list[RuleResult]:
        return self._with(FAILED)

    @property
    def cancelled(self) -> list[RuleResult]:
        return self._with(CANCELLED)

    @property
    def ok(self) -> bool:
        return not self.interrupted and not self.failed and not self.cancelled


# ---------------------------------------------------------------------------
# Category resolution
# ---------------------------------------------------------------------------

def resolve_rule(
    manifest: rulemerge.manifest.Manifest,
    rule: rulemerge.manifest.MergeRule,
    classifier: Classifier,
) -> ResolvedRule:
    """Assign the rule's documents to the categories in its ``order``.

    Raises :class:`~rulemerge.errors.CategoryResolutionError` when
    ``order`` has no base category, when an include has no usable
    category, or when a category in ``order`` ends up empty and the
    manifest does not allow empty categories.
    """
    buckets: dict[str, list[pathlib.Path]] = {c: [] for c in rule.order}
    if rulemerge.manifest.BASE not in buckets:
        raise rulemerge.errors.CategoryResolutionError(
            "rule has base_files but order has no base category",
            rule=rule.name,
            category=rulemerge.manifest.BASE,
            path=rule.base_files[0],
        )
    buckets[rulemerge.manifest.BASE] = [manifest.resolve(p) for p in rule.base_files]

    for include in rule.include_files:
        category = include.category or classifier(include.path)
        if category is None:
            raise rulemerge.errors.CategoryResolutionError(
                f"cannot classify include {include.path}; declare its category",
                rule=rule.name,
                path=include.path,
            )
        if category not in buckets:
            raise rulemerge.errors.CategoryResolutionError(
                f"include {include.path} is a {category} document but "
                f"order has no {category} category",
                rule=rule.name,
                category=category,
                path=include.path,
            )
        buckets[category].append(manifest.resolve(include.path))

    groups = []
    for category in rule.order:
        paths = buckets[category]
        if not paths:
            if manifest.settings.allow_empty_categories:
                logger.debug("Rule %s: skipping empty %s category", rule.name, category)
                continue
            raise rulemerge.errors.CategoryResolutionError(
                f"order names {category} but no {category} documents resolve",
                rule=rule.name,
                category=category,
            )
        groups.append(CategoryGroup(category, tuple(paths)))

    return ResolvedRule(rule, tuple(groups), manifest.resolve(rule.output))


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

def read_document(rule_name: str, path: pathlib.Path) -> str:
    """Read one source document as UTF-8, line endings untouched."""
    try:
        with open(path, encoding="utf-8", newline="") as fh:
            return fh.read()
    except FileNotFoundError as exc:
        raise rulemerge.errors.MissingDocumentError(rule_name, str(path)) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise rulemerge.errors.MissingDocumentError(
            rule_name, str(path), f"is unreadable ({exc})"
        ) from exc


def assemble(
    groups: Iterable[Iterable[str]],
    settings: rulemerge.manifest.Settings,
) -> str:
    """Join grouped document texts into the final output text."""
    sep = settings.separator
    blocks = []
    for texts in groups:
        if not settings.preserve_comments:
            texts = [
                rulemerge.markup.strip_comments(t, settings.comment_delimiters)
                for t in texts
            ]
        blocks.append(sep.join(texts))
    merged = sep.join(blocks)
    if settings.merge_headers:
        merged = rulemerge.markup.merge_headers(merged)
    return merged


def render_resolved(
    resolved: ResolvedRule,
    settings: rulemerge.manifest.Settings,
) -> str:
    name = resolved.rule.name
    texts = [[read_document(name, p) for p in g.paths] for g in resolved.groups]
    return assemble(texts, settings)


def render_rule(
    manifest: rulemerge.manifest.Manifest,
    rule: rulemerge.manifest.MergeRule,
    classifier: Classifier,
) -> str:
    """Return the merged text for *rule* without writing anything."""
    return render_resolved(resolve_rule(manifest, rule, classifier), manifest.settings)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def write_atomic(rule_name: str, path: pathlib.Path, text: str) -> int:
    """Replace *path* with *text* in one step.

    The text goes to a temp file beside *path* and is moved over it, so a
    reader sees either the old file or the new one. Returns bytes written.
    """
    data = text.encode("utf-8")
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
        raise rulemerge.errors.WriteError(
            rule_name, str(path), exc.strerror or str(exc)
        ) from exc
    return len(data)


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

def build_rule(
    manifest: rulemerge.manifest.Manifest,
    rule: rulemerge.manifest.MergeRule,
    classifier: Classifier,
    *,
    dry_run: bool = False,
    cancel: threading.Event | None = None,
) -> RuleResult:
    """Build a single rule, turning rule-scoped errors into a result."""
    if cancel is not None and cancel.is_set():
        logger.debug("Rule %s cancelled before start", rule.name)
        return RuleResult(rule.name, None, CANCELLED)

    logger.debug("Rule %s: building", rule.name)
    output = manifest.resolve(rule.output)
    try:
        resolved = resolve_rule(manifest, rule, classifier)
        text = render_resolved(resolved, manifest.settings)
        if dry_run:
            size = len(text.encode("utf-8"))
            return RuleResult(rule.name, output, DRY_RUN, size=size)
        size = write_atomic(rule.name, output, text)
    except (
        rulemerge.errors.CategoryResolutionError,
        rulemerge.errors.MissingDocumentError,
        rulemerge.errors.WriteError,
    ) as exc:
        logger.warning("Rule %s failed: %s: %s", rule.name, exc.kind, exc)
        return RuleResult(rule.name, output, FAILED, error=exc)

    logger.info("Wrote %s (%d bytes) for rule %s", output, size, rule.name)
    return RuleResult(rule.name, output, OK, size=size)


def select_rules(
    manifest: rulemerge.manifest.Manifest,
    rule_names: Iterable[str] | None = None,
) -> list[rulemerge.manifest.MergeRule]:
    """Return the rules to build, in manifest order.

    Unknown names are a :class:`~rulemerge.errors.ManifestError`.
    """
    if rule_names is None:
        return list(manifest.rules)
    wanted = set(rule_names)
    unknown = sorted(wanted - set(manifest.rule_names))
    if unknown:
        raise rulemerge.errors.ManifestError(
            f"no such rule: {', '.join(unknown)}", field="name"
        )
    return [r for r in manifest.rules if r.name in wanted]


def run_build(
    manifest: rulemerge.manifest.Manifest,
    classifier: Classifier,
    *,
    rule_names: Iterable[str] | None = None,
    max_workers: int | None = None,
    cancel: threading.Event | None = None,
    dry_run: bool = False,
) -> BuildReport:
    """Build the selected rules in parallel and collect their results.

    Results come back in manifest order whatever order rules finish in.
    A ``KeyboardInterrupt`` while waiting sets *cancel*, lets running rules
    finish, and returns the report with ``interrupted`` set; rules that
    never started are reported as cancelled.
    """
    rules = select_rules(manifest, rule_names)
    report = BuildReport()
    if not rules:
        return report

    if cancel is None:
        cancel = threading.Event()
    workers = max(1, min(max_workers or len(rules), len(rules)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(
                build_rule, manifest, rule, classifier, dry_run=dry_run, cancel=cancel
            )
            for rule in rules
        ]
        try:
            concurrent.futures.wait(futures)
        except KeyboardInterrupt:
            # Rules not yet started bail out; running ones finish their replace.
            cancel.set()
            report.interrupted = True
    report.results = [f.result() for f in futures]

    if report.interrupted:
        logger.warning(
            "Build interrupted: %d succeeded, %d failed, %d cancelled",
            len(report.succeeded),
            len(report.failed),
            len(report.cancelled),
        )
    elif report.failed:
        logger.warning(
            "Build finished: %d succeeded, %d failed",
            len(report.succeeded),
            len(report.failed),
        )
    else:
        logger.info("Build finished: %d succeeded", len(report.succeeded))
    return report
