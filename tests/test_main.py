from livesync.main import build_session, parse_args
from livesync.preview.lifecycle import ServerState
from livesync.worker.lint_worker import LintWorker

class TestMain:
    def test_parse_args(self, tmp_path):
        args = parse_args([str(tmp_path / "index.html"), "--workspace", str(tmp_path),
                           "--port", "8080", "--inject-body", "--worker", "node lint.js --json"])
        assert args.port == 8080
        assert args.inject_body is True
        assert args.worker == "node lint.js --json"

    def test_build_session(self, tmp_path):
        args = parse_args(["--workspace", str(tmp_path), "--inject-body", "--worker", "node lint.js"])
        session = build_session(args)

        assert session.host.workspace_root() == str(tmp_path)
        assert session.state is ServerState.OFF
        worker = session.worker_factory()
        assert isinstance(worker, LintWorker)
        assert worker.command == ["node", "lint.js"]

        config = session.config_manager.load()
        assert config.inject_body is True
        assert config.port == args.port

    def test_build_session_without_worker(self, tmp_path):
        session = build_session(parse_args(["--workspace", str(tmp_path)]))
        assert session.worker_factory is None
