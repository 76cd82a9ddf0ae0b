import argparse
import asyncio
import logging
import os
import shlex
from typing import List, Optional

from .core.editor import EditorHost
from .session import LiveSyncSession
from .worker.lint_worker import LintWorker

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="livesync", description="Serve a workspace with live preview")
    parser.add_argument("target", nargs="?", default=None, help="file or directory to open")
    parser.add_argument("--workspace", default=os.getcwd())
    parser.add_argument("--port", type=int, default=5555)
    parser.add_argument("--inject-body", action="store_true")
    parser.add_argument("--worker", default=None, help="lint worker command line")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)

def build_session(args: argparse.Namespace) -> LiveSyncSession:
    settings = {
        'livePreview.port': args.port,
        'livePreview.injectBody': args.inject_body,
        'livePreview.navigate': True,
    }
    host = EditorHost(workspace=os.path.abspath(args.workspace), settings=settings)

    worker_factory = None
    if args.worker:
        command = shlex.split(args.worker)
        worker_factory = lambda: LintWorker(command, cwd=host.workspace_root())

    return LiveSyncSession(host, worker_factory=worker_factory)

async def run(args: argparse.Namespace):
    session = build_session(args)
    target = os.path.abspath(args.target) if args.target else None
    await session.start(target)
    try:
        await asyncio.Event().wait()
    finally:
        await session.deactivate()

def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
