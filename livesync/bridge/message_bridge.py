import logging
from typing import Any, Dict, Optional, Mapping

from .terminal import TerminalSink
from ..monitoring.metrics import MetricsTracker

logger = logging.getLogger(__name__)

WORKER = "worker"
SERVER = "server"

class MessageBridge:
    """Relay worker and preview-server messages onto the terminal.

    A message identical to the previous one from the same source is dropped,
    since both collaborators repeat progress lines across internal retries.
    """

    def __init__(self, sink: Optional[TerminalSink] = None, metrics: Optional[MetricsTracker] = None):
        self.sink = sink
        self.metrics = metrics or MetricsTracker()
        self.last_messages: Dict[str, Any] = {}

    def relay(self, source: str, message: Any) -> bool:
        if not message:
            return False

        text = self._message_text(message)
        if not text:
            logger.debug(f"Dropping empty message from {source}")
            return False

        if self.last_messages.get(source) == message:
            self.metrics.record('duplicate_messages_dropped')
            return False

        if self.sink is None:
            return False
        self.last_messages[source] = message
        self.metrics.record('messages_relayed')
        return self.sink.write(text)

    def reset(self):
        self.last_messages.clear()

    @staticmethod
    def _message_text(message: Any) -> str:
        if isinstance(message, Mapping):
            message = message.get('msg')
        if isinstance(message, (list, tuple)):
            return " ".join(str(part) for part in message if part is not None).strip()
        if isinstance(message, str):
            return message.strip()
        return ""
