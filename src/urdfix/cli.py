"""Command-line interface.

Exit codes: 0 when clean, 1 when issues or differences were found, 2 when
the input could not be read or parsed, or the options are invalid.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .analysis import analyze
from .config import DUPLICATE_POLICIES, UrdfixConfig
from .core import Document, Severity
from .diff import diff
from .exceptions import ConfigError, UrdfParseError
from .fix import fix
from .formatter import format_document
from .io import parse_document
from .lint import has_issues, lint
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ISSUES = 1
EXIT_FAILURE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="urdfix",
        description="Lint, fix, format and diff URDF robot descriptions.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--strict", action="store_true", help="Report warnings as errors.")
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON.")
    parser.add_argument(
        "--duplicate-policy",
        choices=DUPLICATE_POLICIES,
        default="first",
        help="Which occurrence of a duplicated name survives 'fix'.",
    )
    parser.add_argument(
        "--remove-unused-materials",
        action="store_true",
        help="Drop top-level materials no visual refers to during 'fix'.",
    )
    parser.add_argument(
        "--fix-naming",
        action="store_true",
        help="Rename links and joints whose names are not identifiers during 'fix'.",
    )
    parser.add_argument("--jobs", type=int, default=1, help="Threads used to run lint rules.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    lint_cmd = subparsers.add_parser("lint", help="Report every diagnostic.")
    lint_cmd.add_argument("file")

    validate_cmd = subparsers.add_parser("validate", help="Report errors only.")
    validate_cmd.add_argument("file")

    fix_cmd = subparsers.add_parser("fix", help="Apply the fix pipeline and print the result.")
    fix_cmd.add_argument("file")
    fix_output = fix_cmd.add_mutually_exclusive_group()
    fix_output.add_argument("-o", "--output", help="Write the fixed document to this file.")
    fix_output.add_argument("--in-place", action="store_true", help="Overwrite the input file.")

    format_cmd = subparsers.add_parser("format", help="Rewrite in canonical layout.")
    format_cmd.add_argument("file")
    format_output = format_cmd.add_mutually_exclusive_group()
    format_output.add_argument("-o", "--output", help="Write the formatted document to this file.")
    format_output.add_argument("--in-place", action="store_true", help="Overwrite the input file.")
    format_output.add_argument(
        "--check",
        action="store_true",
        help="Only report whether the file is already formatted.",
    )

    analyze_cmd = subparsers.add_parser("analyze", help="Print structure statistics.")
    analyze_cmd.add_argument("file")

    diff_cmd = subparsers.add_parser("diff", help="Structural differences between two files.")
    diff_cmd.add_argument("before")
    diff_cmd.add_argument("after")

    return parser


def _load(path: str) -> Tuple[bytes, Document]:
    content = Path(path).read_bytes()
    return content, parse_document(content, source=path)


def _emit_json(payload) -> None:
    print(json.dumps(payload, indent=2))


def _write(text: str, output: Optional[str]) -> None:
    if output is None:
        sys.stdout.write(text)
    else:
        Path(output).write_text(text, encoding="utf-8")
        logger.info("Wrote %s", output)


def _cmd_lint(args, config: UrdfixConfig) -> int:
    _, document = _load(args.file)
    diagnostics = lint(document, config)
    if args.command == "validate":
        diagnostics = tuple(d for d in diagnostics if d.severity == Severity.ERROR)
    if args.json:
        _emit_json([d.to_dict() for d in diagnostics])
    else:
        for diagnostic in diagnostics:
            print(diagnostic)
        if not diagnostics:
            print(f"{args.file}: no issues found")
    return EXIT_ISSUES if has_issues(diagnostics) else EXIT_OK


def _cmd_fix(args, config: UrdfixConfig) -> int:
    _, document = _load(args.file)
    result = fix(document, config)
    output = args.file if args.in_place else args.output
    _write(format_document(result.document), output)

    if args.json:
        report = {
            "log": [entry.to_dict() for entry in result.log],
            "unresolved": [d.to_dict() for d in result.unresolved],
        }
        print(json.dumps(report, indent=2), file=sys.stderr)
    else:
        for entry in result.log:
            print(entry, file=sys.stderr)
        for diagnostic in result.unresolved:
            print(diagnostic, file=sys.stderr)
    return EXIT_ISSUES if result.unresolved else EXIT_OK


def _cmd_format(args, config: UrdfixConfig) -> int:
    content, document = _load(args.file)
    formatted = format_document(document)
    if args.check:
        if formatted.encode("utf-8") != content:
            print(f"would reformat {args.file}")
            return EXIT_ISSUES
        return EXIT_OK
    _write(formatted, args.file if args.in_place else args.output)
    return EXIT_OK


def _cmd_analyze(args, config: UrdfixConfig) -> int:
    _, document = _load(args.file)
    stats = analyze(document)
    if args.json:
        _emit_json(stats.to_dict())
        return EXIT_OK
    print(f"Robot: {stats.name}")
    print(f"Links: {stats.total_links}")
    print(f"Joints: {stats.total_joints}")
    print(f"Materials: {stats.total_materials}")
    for joint_type, count in stats.joint_types:
        print(f"  {joint_type}: {count}")
    props = stats.link_properties
    print(
        f"Links with visual: {props.with_visual}, collision: {props.with_collision}, "
        f"inertial: {props.with_inertial}, empty: {props.empty}"
    )
    print(f"Tree depth: {stats.tree_depth}")
    for chain in stats.chains:
        print(f"Chain {chain.name}: {' -> '.join(chain.links)} ({chain.length} joints)")
    return EXIT_OK


def _cmd_diff(args, config: UrdfixConfig) -> int:
    _, before = _load(args.before)
    _, after = _load(args.after)
    entries = diff(before, after)
    if args.json:
        _emit_json([entry.to_dict() for entry in entries])
    else:
        for entry in entries:
            print(entry)
    return EXIT_ISSUES if entries else EXIT_OK


COMMANDS = {
    "lint": _cmd_lint,
    "validate": _cmd_lint,
    "fix": _cmd_fix,
    "format": _cmd_format,
    "analyze": _cmd_analyze,
    "diff": _cmd_diff,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    try:
        config = UrdfixConfig.create(
            verbose=args.verbose,
            strict=args.strict,
            duplicate_policy=args.duplicate_policy,
            remove_unused_materials=args.remove_unused_materials,
            fix_naming=args.fix_naming,
            lint_workers=args.jobs,
        )
        return COMMANDS[args.command](args, config)
    except (UrdfParseError, ConfigError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE
