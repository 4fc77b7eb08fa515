from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from .core.errors import ConfigError
from .policy.loader import load_policies, parse_policy_text

EXIT_OK = 0
EXIT_CONFIG_ERRORS = 2
EXIT_USAGE = 3


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _schema_errors(doc: Any) -> List[Dict[str, Any]]:
    try:
        from .policy.schema import validate_document

        return validate_document(doc)
    except RuntimeError:
        # jsonschema is optional; fall back to the structural checks below.
        return []


def _print(errors: List[Dict[str, Any]], fmt: str) -> None:
    if fmt == "json":
        print(json.dumps(errors, ensure_ascii=False))
        return
    if not errors:
        print("OK")
        return
    for e in errors:
        where = f"{e['path']}: " if e.get("path") else ""
        print(f"{where}{e['message']}")


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        text = _read_text(args.policy)
    except FileNotFoundError:
        print(f"actionacl: no such file: {args.policy}", file=sys.stderr)
        return EXIT_USAGE

    filename = None if args.policy == "-" else args.policy
    try:
        doc = parse_policy_text(text, filename=filename)
    except Exception as e:  # JSON and YAML decode errors alike
        _print([{"message": f"cannot parse policy document: {e}", "path": ""}], args.format)
        return EXIT_CONFIG_ERRORS

    errors = _schema_errors(doc)
    if not errors:
        try:
            load_policies(doc)
        except ConfigError as e:
            errors = [{"message": str(e), "path": ""}]

    _print(errors, args.format)
    return EXIT_CONFIG_ERRORS if errors else EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    from . import __version__

    parser = argparse.ArgumentParser(prog="actionacl", description="actionacl policy tools")
    parser.add_argument("--version", action="version", version=f"actionacl {__version__}")
    sub = parser.add_subparsers(dest="command")

    p_val = sub.add_parser("validate", help="Validate a policy document (JSON or YAML)")
    p_val.add_argument("policy", help="Path to the policy document, or '-' for stdin")
    p_val.add_argument("--format", choices=("text", "json"), default="text")
    p_val.set_defaults(func=cmd_validate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --version and --help exit with 0; surface that as a return code.
        if e.code in (0, None):
            return EXIT_OK
        raise
    func = getattr(args, "func", None)
    if func is None:
        parser.print_usage()
        return EXIT_USAGE
    return int(func(args))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
