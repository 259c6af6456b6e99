"""
Capture result record.
Holds one invocation's standard output buffer, standard error text and metadata.
"""

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List


@dataclass
class CaptureResult:
    """Result of a single captured run."""
    command: List[str]
    working_dir: Path
    exit_code: int
    output: io.BytesIO = field(default_factory=io.BytesIO)  # Full stdout, positioned at 0
    messages: str = ""  # Full stderr, decoded
    duration_ms: int = 0
    encoding: str = "utf-8"

    @property
    def stdout(self) -> bytes:
        return self.output.getvalue()

    def output_text(self) -> str:
        """Decode captured stdout with the run's encoding."""
        return self.stdout.decode(self.encoding, errors='replace')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly summary."""
        return {
            "command": list(self.command),
            "working_dir": str(self.working_dir),
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
            "output": self.output_text(),
            "output_bytes": len(self.stdout),
            "messages": self.messages,
        }
