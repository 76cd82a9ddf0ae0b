import asyncio
import json
import logging
from typing import Dict, List, Optional
from dataclasses import dataclass, asdict

from ..core.editor import EditorHost, Position
from ..monitoring.metrics import MetricsTracker

logger = logging.getLogger(__name__)

DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
ANCHOR_COLUMN = 1024  # past the end of any real line
DEFAULT_FLUSH_DELAY_MS = 250

def str_to_hash(s: str) -> str:
    """Content-independent identifier for a path: int32 rolling hash in base 32"""
    units = s.encode('utf-16-le')
    h = 0
    for i in range(0, len(units), 2):
        h = (h << 5) - h + int.from_bytes(units[i:i + 2], 'little')
        h = (h + 2**31) % 2**32 - 2**31
    return _to_base(abs(h), 32)

def _to_base(value: int, base: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, base)
        digits.append(DIGITS[rem])
    return "".join(reversed(digits))

def annotation_color(dark_theme: bool) -> str:
    return "#ebb549" if dark_theme else "#f69d50"

@dataclass
class AnnotationEntry:
    display_text: str
    source_line: int  # 1-based

@dataclass
class RenderHint:
    trailing_text: str
    color: str

@dataclass
class TextRange:
    start: Position
    end: Position

@dataclass
class DecorationRecord:
    render_hint: RenderHint
    target_range: TextRange

    @classmethod
    def from_entry(cls, entry: AnnotationEntry, color: str) -> "DecorationRecord":
        anchor = Position(line=entry.source_line - 1, column=ANCHOR_COLUMN)
        return cls(
            render_hint=RenderHint(trailing_text=entry.display_text, color=color),
            target_range=TextRange(start=anchor, end=Position(anchor.line, anchor.column))
        )

class DecorationStore:
    """Per-file inline annotations, flushed to the editor through one debounce timer.

    The timer is shared across files: a new flush request replaces any pending
    one, whichever file it was for.
    """

    def __init__(self, host: EditorHost, metrics: Optional[MetricsTracker] = None):
        self.host = host
        self.metrics = metrics or MetricsTracker()
        self.decorations: Dict[str, List[DecorationRecord]] = {}
        self._snapshot = "empty"
        self._timer: Optional[asyncio.TimerHandle] = None

    def set_annotations(self, file_name: str, entries: List[AnnotationEntry], color: str):
        """Replace all decorations for a file"""
        key = str_to_hash(file_name or "")
        self.decorations[key] = [DecorationRecord.from_entry(e, color) for e in entries]
        self.schedule_flush(file_name)

    def decorations_for(self, file_name: str) -> List[DecorationRecord]:
        return self.decorations.get(str_to_hash(file_name), [])

    def schedule_flush(self, file_name: Optional[str], delay_ms: int = DEFAULT_FLUSH_DELAY_MS,
                       force: bool = False) -> bool:
        if not file_name:
            return False

        snapshot = self._serialize()
        if not force and snapshot == self._snapshot:
            logger.debug(f"Decorations unchanged, skipping flush for {file_name}")
            return False
        self._snapshot = snapshot

        if self._timer is not None:
            self._timer.cancel()

        loop = asyncio.get_running_loop()
        requested = self.metrics.time()
        self._timer = loop.call_later(delay_ms / 1000, self._flush, file_name, requested)
        return True

    def _flush(self, file_name: str, requested: float):
        self._timer = None
        records = self.decorations_for(file_name)
        for view in self._views_for(file_name):
            view.set_decorations(records)
        self.metrics.record('flush_latency', self.metrics.time() - requested)
        self.metrics.record('decorations_flushed')

    def _views_for(self, file_name: str):
        return [view for view in self.host.visible_editors() if view.file_name == file_name]

    def _serialize(self) -> str:
        return json.dumps(
            {key: [asdict(r) for r in records] for key, records in self.decorations.items()},
            sort_keys=True
        )

    def cancel_pending(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def clear_all(self):
        """Drop every decoration and remove them from all visible editors"""
        self.cancel_pending()
        self.decorations = {}
        self._snapshot = "empty"
        for view in self.host.visible_editors():
            view.set_decorations([])
