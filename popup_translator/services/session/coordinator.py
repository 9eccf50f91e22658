"""
Session Coordinator - fences overlapping translation requests.

A user may trigger a second translation before the first one finishes.
Each trigger begins a new session on its surface (e.g. one per UI pane);
beginning a session atomically supersedes the previous one, whose late
events must then be discarded by the consumer.

Sessions are never torn down. An abandoned session simply stops being
current: its network call may run to completion, but nothing it emits is
forwarded.

State machine per surface:
    IDLE -> STREAMING(id) -> IDLE            (terminal event of the current id)
                          -> STREAMING(new)  (begin() abandons the old id)
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from popup_translator.config.constants import DEFAULT_SURFACE

logger = logging.getLogger(__name__)


class SurfaceState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"


@dataclass(frozen=True)
class SessionId:
    """
    Opaque identifier of one translation attempt.

    `generation` increases monotonically per surface; `token` keeps ids
    unique across surfaces and coordinator instances.
    """
    surface: str
    generation: int
    token: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time, compare=False)

    def __str__(self) -> str:
        return f"{self.surface}:{self.generation}:{self.token[:8]}"


@dataclass
class _Surface:
    """Current-session pointer of one surface, guarded by its own lock."""
    generation: int = 0
    current: Optional[SessionId] = None
    state: SurfaceState = SurfaceState.IDLE
    lock: threading.Lock = field(default_factory=threading.Lock)


class SessionCoordinator:
    """Issues session ids and answers whether an id is still current."""

    def __init__(self):
        self._surfaces: Dict[str, _Surface] = {}
        self._surfaces_lock = threading.Lock()  # Protects _surfaces dict access

    def _surface(self, name: str) -> _Surface:
        with self._surfaces_lock:
            surface = self._surfaces.get(name)
            if surface is None:
                surface = self._surfaces[name] = _Surface()
            return surface

    def _existing(self, name: str) -> Optional[_Surface]:
        with self._surfaces_lock:
            return self._surfaces.get(name)

    def begin(self, surface: str = DEFAULT_SURFACE) -> SessionId:
        """Allocate a new session and make it current, superseding any previous one."""
        state = self._surface(surface)
        with state.lock:
            state.generation += 1
            previous = state.current
            session = SessionId(surface=surface, generation=state.generation)
            state.current = session
            state.state = SurfaceState.STREAMING

        if previous is not None:
            logger.debug(f"[SessionCoordinator] {session} supersedes {previous}")
        return session

    def is_current(self, session: SessionId) -> bool:
        """True iff `session` is the session currently marked current on its surface."""
        state = self._existing(session.surface)
        if state is None:
            return False
        with state.lock:
            return state.current == session

    def finish(self, session: SessionId) -> bool:
        """
        Mark the surface idle after the terminal event of `session`.

        Returns:
            True if `session` was current; stale sessions leave the surface untouched
        """
        state = self._existing(session.surface)
        if state is None:
            return False
        with state.lock:
            if state.current != session:
                return False
            state.state = SurfaceState.IDLE
            return True

    def release(self, surface: str) -> None:
        """
        Forget a surface entirely.

        Used for short-lived private surfaces; any session still tagged with
        it stops being current.
        """
        with self._surfaces_lock:
            self._surfaces.pop(surface, None)

    def surfaces(self) -> List[str]:
        """Names of the surfaces that have begun at least one session."""
        with self._surfaces_lock:
            return list(self._surfaces)

    def current(self, surface: str = DEFAULT_SURFACE) -> Optional[SessionId]:
        state = self._existing(surface)
        if state is None:
            return None
        with state.lock:
            return state.current

    def state(self, surface: str = DEFAULT_SURFACE) -> SurfaceState:
        state = self._existing(surface)
        if state is None:
            return SurfaceState.IDLE
        with state.lock:
            return state.state
