import asyncio
import itertools
import json
import logging
import os
from typing import Any, Callable, Dict, List, Mapping, Optional

from .classifier import classify, extract_body
from .decorations import AnnotationEntry, DecorationStore, annotation_color
from .page_buffer import PageBuffer
from .rules import (is_previewable, should_highlight, should_inject_body,
                    should_inject_css, should_navigate)
from .websocket_server import PreviewServer
from ..core.config_manager import PreviewConfig
from ..core.editor import EditorEvent, EditorEventType, EditorHost
from ..monitoring.metrics import MetricsTracker

logger = logging.getLogger(__name__)

# the preview re-parses the page after a reload; push the body again meanwhile
RECONFIRM_DELAYS_MS = (250, 500, 1000)

class CommandDispatcher:
    """Turns editor events and worker reports into preview-server commands"""

    def __init__(self, host: EditorHost, store: DecorationStore, buffer: PageBuffer,
                 config_provider: Callable[[], PreviewConfig],
                 metrics: Optional[MetricsTracker] = None):
        self.host = host
        self.store = store
        self.buffer = buffer
        self.config_provider = config_provider
        self.metrics = metrics or MetricsTracker()
        self.server: Optional[PreviewServer] = None
        self.workspace: Optional[str] = None
        self.root_absolute: str = ""
        self.active_file: str = ""
        self._reconfirm_timers: Dict[int, asyncio.TimerHandle] = {}
        self._timer_keys = itertools.count()

    @property
    def config(self) -> PreviewConfig:
        return self.config_provider()

    def _server_running(self) -> bool:
        return self.server is not None and self.server.is_running

    def handle_event(self, event: EditorEvent):
        """Route an editor event to its handler"""
        if not self._server_running():
            return

        handlers = {
            EditorEventType.ACTIVE_EDITOR_CHANGED: self._on_active_editor_changed,
            EditorEventType.SELECTION_CHANGED: self._on_text_event,
            EditorEventType.DOCUMENT_CHANGED: self._on_text_event,
            EditorEventType.DOCUMENT_SAVED: self._on_document_saved,
        }
        handler = handlers.get(event.type)
        if handler:
            self.metrics.record(f'event_{event.type.value}')
            handler(event)
        else:
            logger.warning(f"Unknown editor event: {event.type}")

    def _on_active_editor_changed(self, event: EditorEvent):
        self.store.schedule_flush(event.file_name, force=True)
        self.navigate(event.file_name, event.text)

    def _on_text_event(self, event: EditorEvent):
        if not is_previewable(event.file_name):
            return
        if not should_inject_body(self.config):
            return

        self.buffer.update_page(event.file_name, event.text)
        self.update_body(self.buffer.current.file_name)

    def _on_document_saved(self, event: EditorEvent):
        kind = classify(event.file_name)
        config = self.config

        # css injection already refreshed the stylesheet
        if should_inject_css(config) and kind.is_stylesheet:
            return

        self.server.reload_all()
        self.metrics.record('reloads_issued')

        if not kind.is_markup or not should_inject_body(config):
            return

        self.update_body(event.file_name)
        loop = asyncio.get_running_loop()
        for delay in RECONFIRM_DELAYS_MS:
            key = next(self._timer_keys)
            self._reconfirm_timers[key] = loop.call_later(delay / 1000, self._reconfirm, key, event.file_name)

    def _reconfirm(self, key: int, file_name: str):
        self._reconfirm_timers.pop(key, None)
        self.update_body(file_name)

    def update_body(self, file_name: Optional[str]) -> bool:
        """Push the buffered body to the preview, only for a stable edit"""
        if not self._server_running():
            return False
        if not self.buffer.is_stable():
            logger.debug(f"Edit not stable yet, holding body update for {file_name}")
            return False
        if not is_previewable(file_name):
            return False
        config = self.config
        if not should_inject_body(config):
            return False

        editor = self.host.active_editor()
        cursor = editor.cursor if editor is not None else None

        self.server.update_body(
            file_name,
            extract_body(self.buffer.current.text),
            should_highlight(file_name, config),
            cursor
        )
        self.metrics.record('body_updates_pushed')
        return True

    def navigate(self, file_name: Optional[str], text: Optional[str]) -> bool:
        if not self._server_running():
            return False
        if not file_name or not text:
            return False
        if not should_navigate(file_name, text, self.config):
            return False

        if self.active_file == file_name:
            return False
        self.active_file = file_name

        if not self.workspace:
            return False

        relative = self.relative_path(file_name)
        self.server.navigate(f"/{relative}")
        self.metrics.record('navigations_issued')
        return True

    def relative_path(self, file_name: str) -> str:
        """Path relative to the served root, with forward slashes"""
        relative = file_name.replace(self.root_absolute, "", 1) if self.root_absolute else file_name
        return relative.replace(os.sep, "/").lstrip("/")

    def on_worker_message(self, raw: str):
        """Map a worker lint report onto decorations for the tracked file"""
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            self.metrics.record_error('malformed_worker_message', str(e))
            logger.error(f"Dropping malformed worker message: {e}")
            return

        if not isinstance(payload, dict):
            return
        report = payload.get('report')
        if not isinstance(report, dict) or not isinstance(report.get('results'), list):
            return

        file_name = self.buffer.current.file_name
        color = annotation_color(self.host.is_dark_theme())
        results = report['results']

        if len(results) == 0:
            self.store.set_annotations(file_name, [], color)
            return
        if not isinstance(results[0], Mapping):
            logger.error("Dropping worker report with a malformed result")
            return

        entries = self._annotations(results[0].get('messages'))
        self.store.set_annotations(file_name, entries, color)

    @staticmethod
    def _annotations(messages: Any) -> List[AnnotationEntry]:
        entries = []
        if not isinstance(messages, list):
            return entries
        for m in messages:
            if not isinstance(m, Mapping):
                continue
            line = m.get('line')
            if not isinstance(line, int) or isinstance(line, bool):
                continue
            entries.append(AnnotationEntry(display_text=f"// {m.get('message', '')}", source_line=line))
        return entries

    def dispose(self):
        for timer in self._reconfirm_timers.values():
            timer.cancel()
        self._reconfirm_timers.clear()
        self.active_file = ""
