"""Audible notification for anomaly events.

Only the detector calls this, and it treats every failure as ignorable.
"""

import sys
from typing import Optional, TextIO


class TerminalBell:
    """Ring the terminal bell on the server console."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def __call__(self) -> None:
        stream = self.stream or sys.stderr
        stream.write("\a")
        stream.flush()
