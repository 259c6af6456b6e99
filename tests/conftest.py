"""Shared fixtures: child processes are small Python scripts run by the current interpreter."""

import sys
import textwrap
from pathlib import Path

import pytest

from functrace.config import CaptureConfig


@pytest.fixture
def write_script(tmp_path):
    """Return a helper that writes a target script into the temp directory."""
    def _write(name: str, body: str) -> Path:
        script = tmp_path / name
        script.write_text(textwrap.dedent(body), encoding="utf-8")
        return script
    return _write


@pytest.fixture
def python_config(tmp_path):
    """Config that runs targets with the current interpreter in the temp directory."""
    return CaptureConfig(command=[sys.executable, "-u"], working_dir=tmp_path)
