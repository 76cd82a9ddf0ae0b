import asyncio
import logging
from typing import Any, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

# one report per line; reports for large documents run well past the 64 KiB default
DEFAULT_LINE_LIMIT = 16 * 1024 * 1024

class LintWorker:
    """Out-of-process lint worker emitting one JSON report per stdout line"""

    def __init__(self, command: Sequence[str], cwd: Optional[str] = None,
                 line_limit: int = DEFAULT_LINE_LIMIT):
        self.command = list(command)
        self.cwd = cwd
        self.line_limit = line_limit
        self.process: Optional[asyncio.subprocess.Process] = None
        self._listeners: List[Callable[[str], None]] = []
        self._log_listeners: List[Callable[[dict], None]] = []
        self._readers: List[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    def on_message(self, listener: Callable[[str], None]):
        self._listeners.append(listener)

    def on_log(self, listener: Callable[[dict], None]):
        self._log_listeners.append(listener)

    async def spawn(self):
        """Start the worker process"""
        if self.is_running:
            return
        self.process = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
            limit=self.line_limit
        )
        logger.info(f"Lint worker started (pid {self.process.pid})")
        self._readers = [
            asyncio.create_task(self._read_reports(self.process.stdout)),
            asyncio.create_task(self._read_logs(self.process.stderr)),
        ]

    async def send(self, payload: str):
        """Write one line to the worker's stdin"""
        if not self.is_running or self.process.stdin is None:
            return
        self.process.stdin.write(payload.encode() + b"\n")
        await self.process.stdin.drain()

    async def _read_reports(self, stream: asyncio.StreamReader):
        async for text in self._lines(stream):
            text = text.strip()
            if text:
                self._deliver(self._listeners, text)

    async def _read_logs(self, stream: asyncio.StreamReader):
        async for text in self._lines(stream):
            self._deliver(self._log_listeners, {'msg': text.rstrip()})

    async def _lines(self, stream: asyncio.StreamReader):
        while True:
            try:
                line = await stream.readline()
            except ValueError as e:
                # the reader discards the oversized line and stays usable
                logger.error(f"Dropping oversized worker line: {e}")
                continue
            if not line:
                return
            yield line.decode(errors='replace')

    def _deliver(self, listeners: List[Callable], message: Any):
        for listener in list(listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Worker message listener failed")

    async def stop(self, timeout: float = 2.0):
        """Terminate the worker process"""
        if self.process is None:
            return
        if self.process.returncode is None:
            try:
                self.process.terminate()
                await asyncio.wait_for(self.process.wait(), timeout)
            except ProcessLookupError:
                pass
            except asyncio.TimeoutError:
                self.process.kill()
                await self.process.wait()
        await asyncio.gather(*self._readers, return_exceptions=True)
        self._readers = []
        logger.info("Lint worker stopped")
        self.process = None
