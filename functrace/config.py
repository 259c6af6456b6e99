"""Capture configuration and its YAML loader."""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from functrace.exceptions import ValidationError, ConfigValidationError


logger = logging.getLogger(__name__)


DEFAULT_COMMAND = ["dotnet", "run", "--no-build"]
DEFAULT_WORKING_DIR = "../../.."


@dataclass
class CaptureConfig:
    """
    Settings for launching the trace command.

    Attributes:
        command: Fixed command prefix; the target path is appended as the last argument
        working_dir: Directory the command runs in (relative values resolve against base_dir)
        base_dir: Anchor for a relative working_dir (default: current directory)
        encoding: Encoding used to decode standard error
        timeout_sec: Optional deadline in seconds; None waits for exit indefinitely
        env: Extra environment variables layered over the parent environment
    """
    command: List[str] = field(default_factory=lambda: list(DEFAULT_COMMAND))
    working_dir: Union[str, Path] = DEFAULT_WORKING_DIR
    base_dir: Optional[Path] = None
    encoding: str = "utf-8"
    timeout_sec: Optional[float] = None
    env: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> List[str]:
        """
        Validate the configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.command:
            errors.append("command cannot be empty")
        elif not all(isinstance(token, str) and token for token in self.command):
            errors.append("command must contain only non-empty strings")

        if self.timeout_sec is not None and self.timeout_sec <= 0:
            errors.append(f"timeout_sec must be positive, got {self.timeout_sec}")

        try:
            "".encode(self.encoding)
        except LookupError:
            errors.append(f"Unknown encoding '{self.encoding}'")

        return errors

    def resolve_working_dir(self) -> Path:
        """Absolute working directory for the child process."""
        working_dir = Path(self.working_dir)
        if not working_dir.is_absolute():
            base_dir = self.base_dir if self.base_dir is not None else Path.cwd()
            working_dir = base_dir / working_dir
        return working_dir.resolve()


class ConfigLoader:
    """Loads and validates capture configuration from YAML."""

    KNOWN_KEYS = {"command", "working_dir", "encoding", "timeout_sec", "env"}

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, config_path: Path) -> CaptureConfig:
        """
        Load a configuration file.

        Relative working_dir values resolve against the file's directory.

        Raises:
            ConfigValidationError: If the file cannot be read or is invalid
        """
        self.errors = []
        config_path = Path(config_path)
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load config: {e}")
            self._raise_validation_errors()

        if data is None:
            data = {}

        logger.debug(f"Loaded config from {config_path}")
        return self.from_dict(data, base_dir=config_path.resolve().parent)

    def from_dict(self, data: Any, base_dir: Optional[Path] = None) -> CaptureConfig:
        """Build a config from a parsed mapping, collecting every error before raising."""
        self.errors = []

        if not isinstance(data, dict):
            self._add_error("Config must be a YAML object/dictionary")
            self._raise_validation_errors()

        unknown = sorted(str(key) for key in set(data) - self.KNOWN_KEYS)
        for key in unknown:
            self._add_error(f"Unknown field '{key}'", key)

        kwargs: Dict[str, Any] = {"base_dir": base_dir}

        command = data.get("command")
        if command is not None:
            if isinstance(command, str):
                try:
                    command = shlex.split(command)
                except ValueError as e:
                    self._add_error(f"'command' could not be split: {e}", "command")
                    command = []
            if not isinstance(command, list):
                self._add_error(f"'command' must be a string or list, got {type(command).__name__}", "command")
            else:
                kwargs["command"] = command

        working_dir = data.get("working_dir")
        if working_dir is not None:
            if not isinstance(working_dir, str):
                self._add_error(f"'working_dir' must be a string, got {type(working_dir).__name__}", "working_dir")
            else:
                kwargs["working_dir"] = working_dir

        encoding = data.get("encoding")
        if encoding is not None:
            if not isinstance(encoding, str):
                self._add_error(f"'encoding' must be a string, got {type(encoding).__name__}", "encoding")
            else:
                kwargs["encoding"] = encoding

        timeout_sec = data.get("timeout_sec")
        if timeout_sec is not None:
            # bool is an int subclass, reject it explicitly
            if isinstance(timeout_sec, bool) or not isinstance(timeout_sec, (int, float)):
                self._add_error(f"'timeout_sec' must be a number, got {type(timeout_sec).__name__}", "timeout_sec")
            else:
                kwargs["timeout_sec"] = timeout_sec

        env = data.get("env")
        if env is not None:
            if not isinstance(env, dict):
                self._add_error(f"'env' must be a mapping, got {type(env).__name__}", "env")
            else:
                for key, value in env.items():
                    if value is None:
                        self._add_error(f"env value for '{key}' must not be null", f"env.{key}")
                kwargs["env"] = {str(key): str(value) for key, value in env.items() if value is not None}

        config = CaptureConfig(**kwargs)
        for message in config.validate():
            self._add_error(message)

        self._raise_validation_errors()
        return config

    def _add_error(self, message: str, path: str = "") -> None:
        self.errors.append(ValidationError(message=message, path=path))

    def _raise_validation_errors(self) -> None:
        if self.errors:
            raise ConfigValidationError(self.errors)
