import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Set
import websockets
from websockets.asyncio.server import ServerConnection, serve
from dataclasses import asdict, is_dataclass

logger = logging.getLogger(__name__)

class PreviewServer:
    """Live preview collaborator: receives navigation, reload and body commands"""

    is_running: bool = False
    open_url: str = ""

    def __init__(self):
        self._message_listeners: List[Callable[[Any], None]] = []

    def add_message_listener(self, listener: Callable[[Any], None]):
        if listener not in self._message_listeners:
            self._message_listeners.append(listener)

    def remove_message_listener(self, listener: Callable[[Any], None]):
        if listener in self._message_listeners:
            self._message_listeners.remove(listener)

    def emit_message(self, message: Any):
        for listener in list(self._message_listeners):
            listener(message)

    async def start(self, **options) -> "PreviewServer":
        raise NotImplementedError

    async def shutdown(self):
        raise NotImplementedError

    def navigate(self, path: str):
        raise NotImplementedError

    def reload_all(self):
        raise NotImplementedError

    def update_body(self, file_name: str, body: str, highlight: bool, cursor: Any = None):
        raise NotImplementedError

    def highlight(self, file_name: str, position: Any):
        raise NotImplementedError

class WebSocketPreviewServer(PreviewServer):
    """Broadcasts preview commands as JSON to every connected browser client"""

    def __init__(self, host: str = "localhost", port: int = 5555):
        super().__init__()
        self.host = host
        self.port = port
        self.clients: Set[ServerConnection] = set()
        self.options: Dict[str, Any] = {}
        self._server = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._server is not None

    async def start(self, **options) -> "WebSocketPreviewServer":
        """Start the WebSocket server"""
        self.options = options
        self.host = options.get('host') or self.host
        self.port = options.get('port', self.port)
        self._server = await serve(self._handle_client, self.host, self.port)

        # port 0 binds an ephemeral port
        sockets = self._server.sockets
        if sockets:
            self.port = sockets[0].getsockname()[1]

        open_target = options.get('open') or ""
        self.open_url = f"http://{self.host}:{self.port}/{open_target}"
        self.emit_message({'msg': f"[Live Preview] Serving {options.get('root') or '.'} at {self.open_url}"})
        logger.info(f"Preview server started on ws://{self.host}:{self.port}")
        return self

    async def shutdown(self):
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.clients.clear()
        self.emit_message({'msg': "[Live Preview] Server stopped"})
        logger.info("Preview server stopped")

    async def _handle_client(self, websocket: ServerConnection):
        """Handle individual client connections"""
        self.clients.add(websocket)
        try:
            async for message in websocket:
                logger.debug(f"Client message: {message}")
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self.clients.discard(websocket)

    def navigate(self, path: str):
        self._send({'type': 'navigate', 'path': path})

    def reload_all(self):
        self._send({'type': 'reload'})

    def update_body(self, file_name: str, body: str, highlight: bool, cursor: Any = None):
        self._send({
            'type': 'update_body',
            'file': file_name,
            'body': body,
            'highlight': highlight,
            'cursor': asdict(cursor) if is_dataclass(cursor) else cursor
        })

    def highlight(self, file_name: str, position: Any):
        self._send({
            'type': 'highlight',
            'file': file_name,
            'position': asdict(position) if is_dataclass(position) else position
        })

    def _send(self, message: Dict[str, Any]):
        task = asyncio.get_running_loop().create_task(self._broadcast(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _broadcast(self, message: Dict[str, Any]):
        """Broadcast message to all connected clients"""
        message_str = json.dumps(message)
        results = await asyncio.gather(
            *(client.send(message_str) for client in list(self.clients)),
            return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, websockets.exceptions.ConnectionClosed):
                logger.error(f"Error broadcasting to client: {result}")
