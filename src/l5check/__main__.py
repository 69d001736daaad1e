"""Command-line interface for the L5 type checker.

Usage:
    python -m l5check "(define (x : number) 5)"
    python -m l5check --program "(L5 (define (x : number) 5) (+ x 1))"
    python -m l5check --program -f examples/pairs.l5
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from l5check.typecheck import check_expression_type, check_program_type

logger = logging.getLogger("l5check")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="l5check",
        description="Type check an L5 expression or program.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("source", nargs="?", help="L5 source text")
    source.add_argument("-f", "--file", type=Path, help="read the source from FILE")
    parser.add_argument(
        "-p",
        "--program",
        action="store_true",
        help="treat the source as an (L5 ...) program",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the checker and print the type. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.file is not None:
        if not args.file.exists():
            print(f"Error: File not found: {args.file}", file=sys.stderr)
            return 1
        try:
            source = args.file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            print(f"Error: Cannot read {args.file}: {err}", file=sys.stderr)
            return 1
        logger.debug("Read %d characters from %s", len(source), args.file)
    else:
        source = args.source

    check = check_program_type if args.program else check_expression_type
    result = check(source)
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    print(result.type_str)
    return 0


if __name__ == "__main__":
    sys.exit(main())
