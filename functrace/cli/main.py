"""Main CLI entry point for functrace."""

import argparse
import sys
from typing import Optional

from .commands import run_capture


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the functrace CLI."""
    parser = argparse.ArgumentParser(
        prog='functrace',
        description='Run a function trace and capture its output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run_parser = subparsers.add_parser('run', help='Run the trace command for a target')
    run_parser.add_argument(
        'path',
        type=str,
        help='Target passed as the last argument of the trace command'
    )
    run_parser.add_argument(
        '--config',
        type=str,
        help='Path to YAML capture configuration'
    )
    run_parser.add_argument(
        '--cwd',
        type=str,
        help='Override the working directory'
    )
    run_parser.add_argument(
        '--command',
        dest='trace_command',
        type=str,
        metavar='CMD',
        help='Override the command prefix, shell-quoted (e.g. --command "dotnet run --no-build")'
    )
    run_parser.add_argument(
        '--timeout',
        type=float,
        help='Kill the command after this many seconds'
    )
    run_parser.add_argument(
        '--output',
        type=str,
        metavar='FILE',
        help='Write captured stdout to FILE instead of stdout'
    )
    run_parser.add_argument(
        '--json',
        action='store_true',
        help='Print a JSON summary of the capture'
    )
    run_parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    run_parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error output'
    )
    run_parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='info',
        help='Set log level'
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.command == 'run':
        return run_capture(parsed_args)

    parser.print_help()
    return 1


if __name__ == '__main__':
    sys.exit(main())
