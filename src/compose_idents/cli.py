"""Command line entry point.

Usage:
    compose-idents invocation.txt
    compose-idents --seed 1 < invocation.txt
    compose-idents invocation.txt --config settings.yaml -v
"""

import argparse
import sys
from pathlib import Path

from . import compose
from .config import configure_logging, load_settings
from .errors import ComposeError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Expand a compose_idents invocation and print the generated code"
    )
    parser.add_argument(
        "file",
        type=Path,
        nargs="?",
        default=None,
        help="File holding the invocation arguments (stdin if omitted)",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for hash()")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    if args.seed is not None:
        settings.seed = args.seed
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    source = args.file.read_text() if args.file else sys.stdin.read()
    try:
        output = compose(source, settings)
    except ComposeError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
