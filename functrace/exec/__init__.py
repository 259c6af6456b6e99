"""
Execution module for functrace.
Handles launching the trace command and capturing its output streams.
"""

from .result import CaptureResult
from .capturer import ProcessOutputCapturer, StreamDrain, run

__all__ = [
    "CaptureResult",
    "ProcessOutputCapturer",
    "StreamDrain",
    "run",
]
