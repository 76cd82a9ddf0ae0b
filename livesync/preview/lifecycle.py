import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

NAMESPACE = "livePreview"
STATE_KEY = f"{NAMESPACE}.state"

class ServerState(Enum):
    OFF = "off"
    LOADING = "loading"
    ON = "on"

@dataclass
class StatusIndicator:
    text: str
    tooltip: Optional[str]
    color: Optional[str]

def status_indicator(state: ServerState, open_url: str = "", color: Optional[str] = None) -> StatusIndicator:
    """Status bar affordance for a lifecycle state"""
    if state is ServerState.ON:
        return StatusIndicator(text=f"$(zap) {open_url}", tooltip="Close Live Preview", color=color)
    if state is ServerState.LOADING:
        return StatusIndicator(text="$(sync~spin) Going Live...", tooltip=None, color=None)
    return StatusIndicator(text="$(play-circle) Go Live", tooltip="Open Live Preview", color=None)

class StateStore:
    """Namespaced key/value state owned by one session"""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def update(self, key: str, value: Any):
        self._values[key] = value

class ServerLifecycle:
    """off -> loading -> on -> loading -> off

    LOADING is the only guard against overlapping transitions: a toggle that
    arrives mid-transition is dropped, not queued.
    """

    def __init__(self, state_store: StateStore,
                 on_start: Callable[..., Awaitable[bool]],
                 on_close: Callable[[], Awaitable[None]]):
        self.state_store = state_store
        self._on_start = on_start
        self._on_close = on_close
        self._listeners: List[Callable[[ServerState], None]] = []
        self.state_store.update(STATE_KEY, ServerState.OFF.value)

    @property
    def state(self) -> ServerState:
        return ServerState(self.state_store.get(STATE_KEY, ServerState.OFF.value))

    def subscribe(self, listener: Callable[[ServerState], None]):
        self._listeners.append(listener)

    def _set_state(self, state: ServerState):
        self.state_store.update(STATE_KEY, state.value)
        logger.debug(f"Preview server state: {state.value}")
        for listener in self._listeners:
            listener(state)

    async def request_start(self, target: Optional[str] = None) -> Optional[str]:
        if self.state is not ServerState.OFF:
            logger.debug(f"Ignoring start request while {self.state.value}")
            return None

        self._set_state(ServerState.LOADING)

        # failures propagate and leave the state at LOADING
        started = await self._on_start(target)
        if not started:
            self._set_state(ServerState.OFF)
            return "aborted"

        self._set_state(ServerState.ON)
        return "done"

    async def request_close(self) -> str:
        if self.state is ServerState.OFF:
            return "done"

        self._set_state(ServerState.LOADING)
        await self._on_close()
        self._set_state(ServerState.OFF)
        return "done"

    async def toggle(self, target: Optional[str] = None) -> Optional[str]:
        state = self.state
        if state is ServerState.ON:
            return await self.request_close()
        if state is ServerState.OFF:
            return await self.request_start(target)
        return None
