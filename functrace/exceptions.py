"""Functrace exceptions."""

from typing import List, Optional
from dataclasses import dataclass


@dataclass
class ValidationError:
    """Single configuration validation error."""
    message: str
    path: str = ""
    exit_code: int = 2


class ConfigValidationError(Exception):
    """Raised when a capture configuration fails validation.

    The loader collects every problem it finds before raising, so the CLI
    can report them all and map to the validation exit code.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error at '{error.path}': {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))


class CaptureTimeoutError(Exception):
    """Raised when the child process outlives its deadline.

    The child has already been killed and reaped, and both streams drained,
    when this is raised. Whatever it wrote before being killed is kept on
    the exception.
    """

    exit_code = 124

    def __init__(
        self,
        timeout_sec: float,
        output: bytes = b"",
        messages: str = "",
        command: Optional[List[str]] = None,
    ):
        self.timeout_sec = timeout_sec
        self.output = output
        self.messages = messages
        self.command = command or []
        super().__init__(f"Command timed out after {timeout_sec} seconds")
