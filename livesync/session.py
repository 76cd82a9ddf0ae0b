import logging
import os
from typing import Callable, Optional, TextIO

from .bridge.message_bridge import SERVER, WORKER, MessageBridge
from .bridge.terminal import TerminalLogHandler, TerminalSink
from .core.config_manager import ConfigManager, PreviewConfig
from .core.editor import EditorEvent, EditorHost
from .monitoring.metrics import MetricsTracker
from .preview.classifier import classify
from .preview.decorations import DecorationStore, annotation_color
from .preview.dispatcher import CommandDispatcher
from .preview.lifecycle import ServerLifecycle, ServerState, StateStore, status_indicator
from .preview.page_buffer import PageBuffer
from .preview.rules import should_inject_body
from .preview.websocket_server import PreviewServer, WebSocketPreviewServer
from .worker.lint_worker import LintWorker

logger = logging.getLogger(__name__)

class LiveSyncSession:
    """One editor session driving one live preview server.

    Owns all mutable state: the page buffer, the decoration store, the
    message bridge, the active-file memo and the lifecycle flag.
    """

    def __init__(self, host: EditorHost,
                 server_factory: Callable[[], PreviewServer] = WebSocketPreviewServer,
                 worker_factory: Optional[Callable[[], LintWorker]] = None,
                 state_store: Optional[StateStore] = None,
                 terminal_stream: Optional[TextIO] = None):
        self.host = host
        self.server_factory = server_factory
        self.worker_factory = worker_factory
        self.terminal_stream = terminal_stream
        self.metrics = MetricsTracker()
        self.config_manager = ConfigManager(host.get_settings())

        self.buffer = PageBuffer()
        self.store = DecorationStore(host, self.metrics)
        self.bridge = MessageBridge(None, self.metrics)
        self.dispatcher = CommandDispatcher(
            host, self.store, self.buffer, self._current_config, self.metrics
        )
        self.lifecycle = ServerLifecycle(state_store or StateStore(), self._start, self._close)
        self.lifecycle.subscribe(self._update_status)

        self.server: Optional[PreviewServer] = None
        self.worker: Optional[LintWorker] = None
        self.terminal: Optional[TerminalSink] = None
        self._log_handler: Optional[TerminalLogHandler] = None
        self._temp_root: Optional[str] = None
        self.root = ""
        self.open_url = ""
        self.status = status_indicator(ServerState.OFF)

    @property
    def config(self) -> PreviewConfig:
        return self.config_manager.config

    def _current_config(self) -> PreviewConfig:
        return self.config_manager.config

    @property
    def state(self) -> ServerState:
        return self.lifecycle.state

    def _update_status(self, state: ServerState):
        color = annotation_color(self.host.is_dark_theme()) if state is ServerState.ON else None
        self.status = status_indicator(state, self.open_url, color)

    def _inform(self, message: str):
        logger.info(message)
        self.host.show_information(message)

    async def start(self, target: Optional[str] = None) -> Optional[str]:
        return await self.lifecycle.request_start(target)

    async def close(self) -> str:
        return await self.lifecycle.request_close()

    async def toggle(self, target: Optional[str] = None) -> Optional[str]:
        return await self.lifecycle.toggle(target)

    def handle_event(self, event: EditorEvent):
        self.dispatcher.handle_event(event)

    def _relay_server_message(self, message):
        self.bridge.relay(SERVER, message)

    def _relay_worker_log(self, message):
        self.bridge.relay(WORKER, message)

    def _open_terminal(self):
        if self.terminal is not None:
            return
        self.terminal = TerminalSink(self.terminal_stream)
        self.bridge.sink = self.terminal
        self._log_handler = TerminalLogHandler(self.terminal)
        logging.getLogger("livesync").addHandler(self._log_handler)

    def _close_terminal(self):
        if self._log_handler is not None:
            logging.getLogger("livesync").removeHandler(self._log_handler)
            self._log_handler = None
        if self.terminal is not None:
            self.terminal.dispose()
            self.terminal = None
        self.bridge.sink = None
        self.bridge.reset()

    async def _start(self, target: Optional[str]) -> bool:
        start_worker = False
        started_at = self.metrics.time()

        self._open_terminal()

        if self.server is None:
            self.server = self.server_factory()
            start_worker = True

        self.server.remove_message_listener(self._relay_server_message)
        self.server.add_message_listener(self._relay_server_message)

        self.config_manager.settings = self.host.get_settings()
        self.config_manager.reset()
        workspace = self.host.workspace_root()
        config = self.config_manager.load(workspace)

        if workspace:
            await self._start_in_workspace(workspace, target, config)
        else:
            # a single file was opened instead of a folder
            self._inform('No workspace found! You probably opened a "single file" instead of a "folder".')

            editor = self.host.active_editor()
            if editor is None or not editor.file_name:
                self._inform("Could not detect a valid file.")
                return False

            self.root = os.path.dirname(editor.file_name)
            await self.server.start(
                root=self.root,
                open=os.path.basename(editor.file_name),
                host=config.host,
                port=config.port,
                non_interactive=True
            )
            self.dispatcher.root_absolute = self.root

        self.open_url = self.server.open_url
        self.dispatcher.server = self.server
        self.dispatcher.workspace = workspace

        if start_worker and self.worker_factory is not None:
            self.worker = self.worker_factory()
            self.worker.on_message(self.dispatcher.on_worker_message)
            self.worker.on_log(self._relay_worker_log)
            await self.worker.spawn()

        self.metrics.record('start_time', self.metrics.time() - started_at)
        return True

    async def _start_in_workspace(self, workspace: str, target: Optional[str], config: PreviewConfig):
        stat = await self.host.stat(target) if target else None
        is_dir = stat is not None and stat.is_dir
        # opening a directory serves it as the root; the workspace itself is no temporary root
        if is_dir:
            relative_root = os.path.relpath(target, workspace)
            self._temp_root = None if relative_root == os.curdir else relative_root

        if self._temp_root:
            self.root = self._temp_root
        elif config.root:
            self.root = config.root
        else:
            self.root = ""

        root_absolute = os.path.join(workspace, self.root) if self.root else workspace
        self.dispatcher.root_absolute = root_absolute

        if config.debug:
            self._debug('DEBUG:', '"workspace", "root" and "open" will be passed to the preview server')
            self._debug('Workspace:', workspace)
            self._debug('Root:', self.root)
            self._debug('Absolute (workspace + root):', root_absolute)
            self._debug('File:', target or "")

        options = {
            **config.as_options(),
            'inject_body': should_inject_body(config),
            'root': self.root,
            'workspace': workspace,
            'non_interactive': True,
        }

        if target and not is_dir:
            open_target = self.dispatcher.relative_path(target)
            is_file = os.path.splitext(open_target)[1] != ""

            # everything other than .html and .php is served as a preview page
            if is_file and not classify(open_target).is_previewable:
                open_target += ".preview"

            self.dispatcher.active_file = target
            options['open'] = open_target

        if config.debug:
            self._debug('Open:', options.get('open', ""))

        await self.server.start(**options)

    def _debug(self, *parts):
        if self.terminal is not None:
            self.terminal.write(*parts)

    async def _close(self):
        self._temp_root = None
        self.dispatcher.server = None
        self.dispatcher.dispose()

        if self.server is not None:
            self.server.remove_message_listener(self._relay_server_message)
            await self.server.shutdown()
            self.server = None

        if self.worker is not None:
            await self.worker.stop()
            self.worker = None

        self.store.clear_all()
        self._close_terminal()
        self.open_url = ""

    async def deactivate(self):
        await self.lifecycle.request_close()
        self.dispose()

    def dispose(self):
        """Cancel pending timers and remove every rendered decoration"""
        self.dispatcher.dispose()
        self.store.clear_all()
        self.buffer.reset()
        self._close_terminal()
