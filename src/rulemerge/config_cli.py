"""CLI for rulemerge configuration.

Usage:
    rulemerge config list                         Show all configurable sections
    rulemerge config get <section.key>            Print effective value
    rulemerge config set [--global] <key> <value> Write a config value
    rulemerge config reset [--global] <key>       Remove an override
    rulemerge config show [--origin]              Dump full effective config
"""

from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path

import rulemerge.build_config  # noqa: F401  (registers sections)
import rulemerge.config


def _split_key(key: str) -> tuple[str, str] | None:
    section, dot, field = key.partition(".")
    if not dot or not section or not field:
        print(f"Invalid key format: {key!r} (expected section.key)", file=sys.stderr)
        return None
    return section, field


def cmd_list() -> int:
    """Print all registered sections with their fields and defaults."""
    sections = rulemerge.config.list_sections()
    if not sections:
        print("No configurable sections registered.")
        return 0

    for name, cls in sorted(sections.items()):
        defaults = cls()
        print(f"[{name}]")
        for f in dataclasses.fields(cls):
            type_name = f.type if isinstance(f.type, str) else f.type.__name__
            print(f"  {f.name}: {type_name} = {getattr(defaults, f.name)!r}")
        print()
    return 0


def cmd_get(key: str, root: Path) -> int:
    parts = _split_key(key)
    if parts is None:
        return 1
    try:
        value = rulemerge.config.get_effective(*parts, root)
    except (KeyError, AttributeError) as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if isinstance(value, list):
        value = ",".join(value)
    print(value)
    return 0


def cmd_set(key: str, value: str, *, global_flag: bool, root: Path) -> int:
    parts = _split_key(key)
    if parts is None:
        return 1
    scope = rulemerge.config.GLOBAL if global_flag else rulemerge.config.LOCAL
    try:
        rulemerge.config.set_value(*parts, value, scope=scope, root=root)
    except (KeyError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"Set {key} = {value} ({scope})")
    return 0


def cmd_reset(key: str, *, global_flag: bool, root: Path) -> int:
    parts = _split_key(key)
    if parts is None:
        return 1
    scope = rulemerge.config.GLOBAL if global_flag else rulemerge.config.LOCAL
    if rulemerge.config.reset_value(*parts, scope=scope, root=root):
        print(f"Reset {key} ({scope})")
    else:
        print(f"No {scope} override for {key}")
    return 0


def cmd_show(root: Path, *, origin: bool = False) -> int:
    """Dump the full effective config, optionally with each value's layer."""
    for name in sorted(rulemerge.config.list_sections()):
        print(f"[{name}]")
        for key, (value, scope) in rulemerge.config.describe(name, root).items():
            suffix = f"  # {scope}" if origin else ""
            print(f"  {key} = {value!r}{suffix}")
        print()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``rulemerge config``."""
    parser = argparse.ArgumentParser(
        prog="rulemerge config",
        description="Layered rulemerge configuration.",
    )
    sub = parser.add_subparsers(dest="subcmd")

    sub.add_parser("list", help="Show all configurable sections")

    p_get = sub.add_parser("get", help="Print effective value")
    p_get.add_argument("key", help="section.key")
    p_get.add_argument("--path", type=Path, default=None)

    p_set = sub.add_parser("set", help="Set a config value")
    p_set.add_argument("key", help="section.key")
    p_set.add_argument("value", help="New value (comma-separated for lists)")
    p_set.add_argument("--global", dest="global_flag", action="store_true")
    p_set.add_argument("--path", type=Path, default=None)

    p_reset = sub.add_parser("reset", help="Remove an override")
    p_reset.add_argument("key", help="section.key")
    p_reset.add_argument("--global", dest="global_flag", action="store_true")
    p_reset.add_argument("--path", type=Path, default=None)

    p_show = sub.add_parser("show", help="Dump full effective config")
    p_show.add_argument("--origin", action="store_true", help="Show source layer")
    p_show.add_argument("--path", type=Path, default=None)

    args = parser.parse_args(argv)

    if args.subcmd == "list":
        return cmd_list()
    elif args.subcmd == "get":
        return cmd_get(args.key, args.path)
    elif args.subcmd == "set":
        return cmd_set(
            args.key, args.value, global_flag=args.global_flag, root=args.path
        )
    elif args.subcmd == "reset":
        return cmd_reset(args.key, global_flag=args.global_flag, root=args.path)
    elif args.subcmd == "show":
        return cmd_show(args.path, origin=args.origin)
    else:
        parser.print_help()
        return 1
