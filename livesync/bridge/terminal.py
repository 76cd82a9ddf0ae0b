import re
import sys
import logging
from typing import List, Optional, TextIO

TAGGED_LINE = re.compile(r"\[\S+\]")

class TerminalSink:
    """Line-oriented output terminal for the preview session.

    Drops a write whose joined text equals the previous write. This catches
    the same line arriving twice through one channel; MessageBridge catches
    repeats per source before they get here.
    """

    def __init__(self, stream: Optional[TextIO] = None, name: str = "Live Preview"):
        self.stream = stream if stream is not None else sys.stdout
        self.name = name
        self.lines: List[str] = []
        self._last_line: Optional[str] = None
        self._disposed = False

    def write(self, *parts) -> bool:
        if self._disposed:
            return False

        line = " ".join(str(p) for p in parts)
        if line == self._last_line:
            return False
        self._last_line = line

        self.lines.append(line)
        self.stream.write(line + "\n")
        self.stream.flush()
        return True

    def dispose(self):
        self._disposed = True

    @property
    def disposed(self) -> bool:
        return self._disposed

class TerminalLogHandler(logging.Handler):
    """Mirror tagged log lines ("[tag] ...") onto a terminal"""

    def __init__(self, sink: TerminalSink, level: int = logging.INFO):
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord):
        try:
            message = self.format(record)
            if TAGGED_LINE.search(message):
                self.sink.write(message)
        except Exception:
            self.handleError(record)
