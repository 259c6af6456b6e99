"""Run command implementation."""

import json
import logging
import shlex
import sys
from argparse import Namespace
from pathlib import Path

from functrace.config import CaptureConfig, ConfigLoader
from functrace.exceptions import ValidationError, ConfigValidationError, CaptureTimeoutError
from functrace.exec import ProcessOutputCapturer


logger = logging.getLogger(__name__)


NOT_FOUND = 127
NOT_EXEC = 126
SIGNAL_BASE = 128


def shell_exit_code(returncode: int) -> int:
    """Map a negative Popen returncode (killed by signal N) to the shell's 128 + N."""
    if returncode < 0:
        return SIGNAL_BASE - returncode
    return returncode


def configure_logging(args: Namespace) -> None:
    """Set up root logging from --log-level, --debug and --quiet."""
    log_level = getattr(logging, args.log_level.upper())
    if args.debug:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_config(args: Namespace) -> CaptureConfig:
    """Load the config file, if any, and apply command line overrides."""
    if args.config:
        config = ConfigLoader().load(Path(args.config))
    else:
        config = CaptureConfig()

    if args.trace_command:
        config.command = shlex.split(args.trace_command)
    if args.cwd:
        config.working_dir = Path(args.cwd)
        config.base_dir = Path.cwd()
    if args.timeout is not None:
        config.timeout_sec = args.timeout

    errors = config.validate()
    if errors:
        raise ConfigValidationError([ValidationError(message=message) for message in errors])

    return config


def run_capture(args: Namespace) -> int:
    """
    Run the trace command and emit what it captured.

    Returns the child's exit code, or the validation/launch/timeout code.
    """
    configure_logging(args)

    try:
        config = build_config(args)
    except ConfigValidationError as e:
        for error in e.errors:
            logger.error(f"Validation error: {error.message}")
        return e.exit_code

    capturer = ProcessOutputCapturer(config)
    try:
        result = capturer.capture(args.path)
    except CaptureTimeoutError as e:
        logger.error(str(e))
        if e.messages:
            sys.stderr.write(e.messages)
        return e.exit_code
    except FileNotFoundError as e:
        logger.error(f"Failed to start {capturer.build_command(args.path)}: {e}")
        return NOT_FOUND
    except OSError as e:
        # PermissionError, NotADirectoryError and the rest
        logger.error(f"Failed to start {capturer.build_command(args.path)}: {e}")
        return NOT_EXEC

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(result.stdout)
        logger.info(f"Wrote {len(result.stdout)} bytes to {output_path}")

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        if not args.output:
            sys.stdout.buffer.write(result.stdout)
            sys.stdout.buffer.flush()
        if result.messages:
            sys.stderr.write(result.messages)
            sys.stderr.flush()

    exit_code = shell_exit_code(result.exit_code)
    if exit_code != 0:
        logger.debug(f"Trace command exited with code {result.exit_code}")

    return exit_code
