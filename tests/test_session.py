import pytest
import asyncio
import json

from livesync.core.editor import EditorEvent, EditorEventType, EditorHost, EditorView
from livesync.preview.decorations import AnnotationEntry
from livesync.preview.lifecycle import STATE_KEY, ServerState
from livesync.session import LiveSyncSession
from conftest import FakePreviewServer

HTML = "<html><body>hi</body></html>"

class FakeWorker:
    def __init__(self):
        self.listeners = []
        self.log_listeners = []
        self.spawned = 0
        self.stopped = 0

    def on_message(self, listener):
        self.listeners.append(listener)

    def on_log(self, listener):
        self.log_listeners.append(listener)

    async def spawn(self):
        self.spawned += 1

    async def stop(self):
        self.stopped += 1

    def emit(self, payload):
        for listener in self.listeners:
            listener(json.dumps(payload))

@pytest.fixture
def servers():
    return []

@pytest.fixture
def workers():
    return []

@pytest.fixture
def session(host, servers, workers, terminal_stream):
    host.settings = {'livePreview.injectBody': True, 'livePreview.navigate': True}

    def server_factory():
        server = FakePreviewServer()
        servers.append(server)
        return server

    def worker_factory():
        worker = FakeWorker()
        workers.append(worker)
        return worker

    session = LiveSyncSession(host, server_factory=server_factory, worker_factory=worker_factory,
                              terminal_stream=terminal_stream)
    yield session
    session.dispose()

class TestSessionStart:
    @pytest.mark.asyncio
    async def test_start_in_workspace(self, session, servers, workers, workspace):
        assert await session.start(str(workspace / "index.html")) == "done"

        assert session.state is ServerState.ON
        options = servers[0].start_options
        assert options['open'] == "index.html"
        assert options['root'] == ""
        assert options['workspace'] == str(workspace)
        assert options['inject_body'] is True
        assert options['non_interactive'] is True
        assert session.status.text == "$(zap) http://localhost:5555/index.html"
        assert workers[0].spawned == 1

    @pytest.mark.asyncio
    async def test_non_markup_files_open_as_preview(self, session, servers, workspace):
        await session.start(str(workspace / "style.css"))
        assert servers[0].start_options['open'] == "style.css.preview"

    @pytest.mark.asyncio
    async def test_directory_becomes_root(self, session, servers, workspace):
        (workspace / "site").mkdir()
        await session.start(str(workspace / "site"))

        assert servers[0].start_options['root'] == "site"
        assert session.dispatcher.root_absolute == str(workspace / "site")

    @pytest.mark.asyncio
    async def test_workspace_directory_serves_workspace_root(self, session, servers, workspace):
        await session.start(str(workspace))

        options = servers[0].start_options
        assert options['root'] == ""
        assert 'open' not in options
        assert session.dispatcher.root_absolute == str(workspace)

        (workspace / "pages").mkdir()
        about = workspace / "pages" / "about.html"
        about.write_text(HTML)
        session.handle_event(EditorEvent(EditorEventType.ACTIVE_EDITOR_CHANGED, str(about), HTML))
        assert servers[0].named('navigate') == [('navigate', '/pages/about.html')]

    @pytest.mark.asyncio
    async def test_second_start_is_ignored(self, session, servers, workers):
        assert await session.start() == "done"
        assert await session.start() is None

        assert len(servers) == 1
        assert len(workers) == 1
        assert session.state is ServerState.ON

    @pytest.mark.asyncio
    async def test_config_file_root(self, session, servers, workspace):
        (workspace / ".livepreviewrc").write_text(json.dumps({'root': "public", 'navigate': False}))
        await session.start()

        assert servers[0].start_options['root'] == "public"
        assert session.config.navigate is True
        assert 'open' not in servers[0].start_options

    @pytest.mark.asyncio
    async def test_server_messages_reach_terminal(self, session, terminal_stream):
        await session.start()
        assert "[Live Preview] started" in terminal_stream.getvalue()

    @pytest.mark.asyncio
    async def test_debug_output(self, session, workspace, terminal_stream):
        (workspace / ".livepreviewrc").write_text(json.dumps({'debug': True}))
        await session.start(str(workspace / "index.html"))

        output = terminal_stream.getvalue()
        assert f"Workspace: {workspace}" in output
        assert "Open: index.html" in output

    @pytest.mark.asyncio
    async def test_start_failure_propagates(self, host, terminal_stream):
        session = LiveSyncSession(host, server_factory=lambda: FakePreviewServer(fail_start=True),
                                  terminal_stream=terminal_stream)
        with pytest.raises(RuntimeError):
            await session.start()
        assert session.state is ServerState.LOADING
        session.dispose()

class TestSingleFileMode:
    @pytest.mark.asyncio
    async def test_active_document_directory_is_root(self, tmp_path, terminal_stream):
        page = tmp_path / "page.html"
        page.write_text(HTML)
        host = EditorHost(workspace=None)
        host.active = EditorView(str(page), HTML)
        server = FakePreviewServer()

        session = LiveSyncSession(host, server_factory=lambda: server, terminal_stream=terminal_stream)
        assert await session.start() == "done"

        assert server.start_options['root'] == str(tmp_path)
        assert server.start_options['open'] == "page.html"
        assert any("No workspace found" in m for m in host.messages)
        session.dispose()

    @pytest.mark.asyncio
    async def test_no_active_document_aborts(self, terminal_stream):
        host = EditorHost(workspace=None)
        session = LiveSyncSession(host, server_factory=FakePreviewServer, terminal_stream=terminal_stream)

        assert await session.start() == "aborted"
        assert session.state is ServerState.OFF
        assert "Could not detect a valid file." in host.messages
        session.dispose()

class TestSessionEndToEnd:
    @pytest.mark.asyncio
    async def test_edit_then_selection_pushes_body_once(self, session, servers, workspace, open_view):
        await session.start()
        index = str(workspace / "index.html")
        open_view(index, HTML)

        session.handle_event(EditorEvent(EditorEventType.DOCUMENT_CHANGED, index, HTML))
        session.handle_event(EditorEvent(EditorEventType.SELECTION_CHANGED, index, HTML))

        updates = servers[0].named('update_body')
        assert len(updates) == 1
        assert updates[0][1] == index
        assert updates[0][2] == "hi"

    @pytest.mark.asyncio
    async def test_zero_diagnostics_clear_decorations(self, session, workers, workspace, open_view):
        await session.start()
        index = str(workspace / "index.html")
        view = open_view(index, HTML)
        session.handle_event(EditorEvent(EditorEventType.DOCUMENT_CHANGED, index, HTML))

        workers[0].emit({'report': {'results': [{'messages': [{'message': "x", 'ruleId': "r", 'line': 1}]}]}})
        await asyncio.sleep(0.3)
        assert len(view.decorations) == 1

        workers[0].emit({'report': {'results': []}})
        await asyncio.sleep(0.3)
        assert session.store.decorations_for(index) == []
        assert view.decorations == []

    @pytest.mark.asyncio
    async def test_navigation_on_editor_switch(self, session, servers, workspace):
        await session.start()
        (workspace / "about.html").write_text(HTML)
        about = str(workspace / "about.html")

        session.handle_event(EditorEvent(EditorEventType.ACTIVE_EDITOR_CHANGED, about, HTML))
        session.handle_event(EditorEvent(EditorEventType.ACTIVE_EDITOR_CHANGED, about, HTML))
        assert servers[0].named('navigate') == [('navigate', '/about.html')]

class TestSessionClose:
    @pytest.mark.asyncio
    async def test_close_clears_everything(self, session, servers, workers, workspace, open_view):
        await session.start()
        index = str(workspace / "index.html")
        view = open_view(index, HTML)
        session.store.set_annotations(index, [AnnotationEntry("// x", 1)], "#fff")
        await asyncio.sleep(0.3)

        assert await session.close() == "done"

        assert session.state is ServerState.OFF
        assert session.lifecycle.state_store.get(STATE_KEY) == "off"
        assert servers[0].named('shutdown') == [('shutdown',)]
        assert workers[0].stopped == 1
        assert view.decorations == []
        assert session.terminal is None
        assert session.status.text == "$(play-circle) Go Live"

    @pytest.mark.asyncio
    async def test_restart_creates_fresh_server_and_worker(self, session, servers, workers):
        await session.toggle()
        await session.toggle()
        await session.toggle()

        assert session.state is ServerState.ON
        assert len(servers) == 2
        assert len(workers) == 2

    @pytest.mark.asyncio
    async def test_events_after_close_are_ignored(self, session, servers, workspace):
        await session.start()
        await session.close()
        index = str(workspace / "index.html")

        session.handle_event(EditorEvent(EditorEventType.DOCUMENT_SAVED, index))
        assert servers[0].named('reload') == []

    @pytest.mark.asyncio
    async def test_deactivate(self, session, servers):
        await session.start()
        await session.deactivate()
        assert session.state is ServerState.OFF
        assert session.buffer.current.file_name == ""
