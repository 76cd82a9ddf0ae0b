import pytest
import io
from pathlib import Path

from livesync.core.config_manager import PreviewConfig
from livesync.core.editor import EditorHost, EditorView
from livesync.preview.decorations import DecorationStore
from livesync.preview.dispatcher import CommandDispatcher
from livesync.preview.page_buffer import PageBuffer
from livesync.preview.websocket_server import PreviewServer

class FakePreviewServer(PreviewServer):
    """Records every command instead of talking to a browser"""

    def __init__(self, start_gate=None, fail_start=False):
        super().__init__()
        self.calls = []
        self.running = False
        self.start_gate = start_gate
        self.fail_start = fail_start
        self.start_options = None

    @property
    def is_running(self):
        return self.running

    async def start(self, **options):
        self.start_options = options
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.fail_start:
            raise RuntimeError("port in use")
        self.running = True
        self.open_url = f"http://localhost:5555/{options.get('open', '')}"
        self.emit_message({'msg': '[Live Preview] started'})
        return self

    async def shutdown(self):
        self.running = False
        self.calls.append(('shutdown',))

    def navigate(self, path):
        self.calls.append(('navigate', path))

    def reload_all(self):
        self.calls.append(('reload',))

    def update_body(self, file_name, body, highlight, cursor=None):
        self.calls.append(('update_body', file_name, body, highlight, cursor))

    def highlight(self, file_name, position):
        self.calls.append(('highlight', file_name, position))

    def named(self, name):
        return [call for call in self.calls if call[0] == name]

@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "index.html").write_text("<html><body>hi</body></html>")
    (tmp_path / "style.css").write_text("body { color: red; }")
    return tmp_path

@pytest.fixture
def host(workspace):
    return EditorHost(workspace=str(workspace))

@pytest.fixture
def preview_config():
    return PreviewConfig(navigate=True, inject_body=True)

@pytest.fixture
def fake_server():
    server = FakePreviewServer()
    server.running = True
    return server

@pytest.fixture
def dispatcher(host, preview_config, fake_server, workspace):
    store = DecorationStore(host)
    dispatcher = CommandDispatcher(host, store, PageBuffer(), lambda: preview_config)
    dispatcher.server = fake_server
    dispatcher.workspace = str(workspace)
    dispatcher.root_absolute = str(workspace)
    yield dispatcher
    dispatcher.dispose()
    store.cancel_pending()

@pytest.fixture
def terminal_stream():
    return io.StringIO()

@pytest.fixture
def open_view(host):
    def _open(path: str, text: str = "") -> EditorView:
        view = EditorView(path, text)
        host.views.append(view)
        host.active = view
        return view
    return _open
