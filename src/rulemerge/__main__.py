"""rulemerge CLI — assemble rule documents from a build manifest.

Usage:
    rulemerge build [manifest] [--rule NAME]... [--jobs N] [--dry-run] [-v]
                           Build every rule (or only the named ones)
    rulemerge check [manifest]
                           Validate the manifest and resolve every rule
    rulemerge list [manifest]
                           Show rules, outputs, and resolved documents
    rulemerge render [manifest] <rule>
                           Print one rule's merged text to stdout
    rulemerge config <cmd> Layered configuration (list/get/set/reset/show)

The manifest defaults to build.default_manifest (build.yaml).
Exit codes: 0 success, 1 one or more rules failed, 2 bad manifest,
130 interrupted (rules not yet started are skipped).
"""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys

import rulemerge.build_config  # noqa: F401  (registers sections)
import rulemerge.classify
import rulemerge.config
import rulemerge.engine
import rulemerge.errors
import rulemerge.manifest

EXIT_OK = 0
EXIT_RULES_FAILED = 1
EXIT_BAD_MANIFEST = 2
EXIT_INTERRUPTED = 130


def _setup_logging(verbose: bool) -> None:
    cfg = rulemerge.config.load("build")
    level = logging.DEBUG if verbose else getattr(
        logging, str(cfg.log_level).upper(), logging.WARNING
    )
    logging.basicConfig(level=level, format="%(message)s")


def _classifier():
    cfg = rulemerge.config.load("classify")
    return rulemerge.classify.lookup_classifier(cfg.languages, cfg.frameworks)


def _add_manifest_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "manifest",
        nargs="?",
        default=None,
        help="Path to the build manifest (default: build.default_manifest)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log at DEBUG level"
    )


def _load(args: argparse.Namespace) -> rulemerge.manifest.Manifest | None:
    path = args.manifest or rulemerge.config.load("build").default_manifest
    try:
        return rulemerge.manifest.load_manifest(pathlib.Path(path))
    except rulemerge.errors.ManifestError as exc:
        _print_manifest_error(exc)
        return None


def _print_manifest_error(exc: rulemerge.errors.ManifestError) -> None:
    where = ""
    if exc.rule:
        where += f" rule={exc.rule}"
    if exc.field:
        where += f" field={exc.field}"
    print(f"ManifestError:{where} {exc}", file=sys.stderr)


def _display(path: pathlib.Path, root: pathlib.Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def _print_failure(result: rulemerge.engine.RuleResult) -> None:
    exc = result.error
    print(f"FAILED {result.name}: {exc.kind}: {exc}", file=sys.stderr)


def _print_report(report: rulemerge.engine.BuildReport, *, dry_run: bool) -> None:
    prefix = "[dry-run] " if dry_run else ""
    for result in report.results:
        if result.status in (rulemerge.engine.OK, rulemerge.engine.DRY_RUN):
            print(f"{prefix}ok {result.name} -> {result.output} ({result.size} bytes)")
        elif result.status == rulemerge.engine.FAILED:
            _print_failure(result)
        else:
            print(f"cancelled {result.name}")

    summary = f"{len(report.succeeded)} succeeded, {len(report.failed)} failed"
    if report.cancelled:
        summary += f", {len(report.cancelled)} cancelled"
    print(f"{prefix}{summary}")
    if report.failed:
        print("Failed: " + ", ".join(r.name for r in report.failed))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_build(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="rulemerge build")
    _add_manifest_arg(parser)
    parser.add_argument(
        "--rule",
        action="append",
        dest="rules",
        default=None,
        help="Only build this rule (repeatable)",
    )
    parser.add_argument(
        "--jobs", "-j", type=int, default=None, help="Rules built in parallel"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Resolve and render, write nothing"
    )
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    manifest = _load(args)
    if manifest is None:
        return EXIT_BAD_MANIFEST

    jobs = args.jobs or rulemerge.config.load("build").max_workers
    try:
        report = rulemerge.engine.run_build(
            manifest,
            _classifier(),
            rule_names=args.rules,
            max_workers=jobs,
            dry_run=args.dry_run,
        )
    except rulemerge.errors.ManifestError as exc:
        _print_manifest_error(exc)
        return EXIT_BAD_MANIFEST

    if report.interrupted:
        print("\nBuild interrupted.", file=sys.stderr)
    _print_report(report, dry_run=args.dry_run)
    if report.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_OK if report.ok else EXIT_RULES_FAILED


def _cmd_check(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="rulemerge check")
    _add_manifest_arg(parser)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    manifest = _load(args)
    if manifest is None:
        return EXIT_BAD_MANIFEST

    classifier = _classifier()
    failures = 0
    for rule in manifest.rules:
        try:
            resolved = rulemerge.engine.resolve_rule(manifest, rule, classifier)
            missing = [p for p in resolved.documents if not p.is_file()]
            if missing:
                raise rulemerge.errors.MissingDocumentError(rule.name, str(missing[0]))
        except (
            rulemerge.errors.CategoryResolutionError,
            rulemerge.errors.MissingDocumentError,
        ) as exc:
            failures += 1
            print(f"FAILED {rule.name}: {exc.kind}: {exc}", file=sys.stderr)
            continue
        print(f"ok {rule.name}")

    print(f"{len(manifest.rules) - failures} valid, {failures} invalid")
    return EXIT_RULES_FAILED if failures else EXIT_OK


def _cmd_list(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="rulemerge list")
    _add_manifest_arg(parser)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    manifest = _load(args)
    if manifest is None:
        return EXIT_BAD_MANIFEST

    classifier = _classifier()
    for rule in manifest.rules:
        print(f"{rule.name} -> {rule.output}")
        try:
            resolved = rulemerge.engine.resolve_rule(manifest, rule, classifier)
        except rulemerge.errors.CategoryResolutionError as exc:
            print(f"  unresolved: {exc}")
            continue
        for group in resolved.groups:
            names = ", ".join(_display(p, manifest.root) for p in group.paths)
            print(f"  {group.category:<10s} {names}")
    return EXIT_OK


def _cmd_render(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="rulemerge render")
    parser.add_argument("args", nargs="+", metavar="[manifest] rule")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log at DEBUG level"
    )
    parsed = parser.parse_args(argv)
    if len(parsed.args) > 2:
        parser.error("expected [manifest] rule")
    _setup_logging(parsed.verbose)

    *manifest_arg, rule_name = parsed.args
    parsed.manifest = manifest_arg[0] if manifest_arg else None
    manifest = _load(parsed)
    if manifest is None:
        return EXIT_BAD_MANIFEST

    try:
        rule = manifest.rule(rule_name)
    except KeyError:
        print(f"ManifestError: no such rule: {rule_name}", file=sys.stderr)
        return EXIT_BAD_MANIFEST

    try:
        text = rulemerge.engine.render_rule(manifest, rule, _classifier())
    except (
        rulemerge.errors.CategoryResolutionError,
        rulemerge.errors.MissingDocumentError,
    ) as exc:
        print(f"FAILED {rule.name}: {exc.kind}: {exc}", file=sys.stderr)
        return EXIT_RULES_FAILED
    sys.stdout.write(text)
    return EXIT_OK


def _cmd_config(argv: list[str]) -> int:
    import rulemerge.config_cli

    return rulemerge.config_cli.main(argv)


_COMMANDS = {
    "build": _cmd_build,
    "check": _cmd_check,
    "list": _cmd_list,
    "render": _cmd_render,
    "config": _cmd_config,
}


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args or args[0] not in _COMMANDS:
        print(__doc__)
        return 1
    return _COMMANDS[args[0]](args[1:])


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
