"""
Dot Trace - Session Store

In-memory registry of live playthroughs for the HTTP layer. Nothing is
persisted: a restart drops every session.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence
from uuid import uuid4

from ..config import settings
from .game_state import GameStateMachine, StateEvent
from .input_buffer import InputCoalescer
from .stages import STAGE_CATALOG, StageConfig

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    session_id: str
    machine: GameStateMachine
    coalescer: InputCoalescer
    created_at: float = field(default_factory=time.time)
    last_seen_at: float = field(default_factory=time.time)
    events: int = 0

    def __post_init__(self):
        self.machine.add_listener(self.record_event)

    def touch(self) -> None:
        self.last_seen_at = time.time()

    def record_event(self, event: StateEvent) -> None:
        self.events += 1


class SessionStore:
    """Bounded LRU of sessions; the least recently used one is evicted first."""

    def __init__(
        self,
        max_sessions: Optional[int] = None,
        hint_extra_cells: Optional[int] = None,
        catalog: Sequence[StageConfig] = STAGE_CATALOG,
    ):
        self.max_sessions = settings.MAX_SESSIONS if max_sessions is None else max_sessions
        self.hint_extra_cells = hint_extra_cells
        self.catalog = tuple(catalog)
        self._sessions: "OrderedDict[str, GameSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def create(self, config: StageConfig) -> GameSession:
        """
        Starts a new playthrough at `config`.

        Stage generation runs before the session is registered, so a
        PatternGenerationError leaves the store unchanged.
        """
        machine = GameStateMachine(catalog=self.catalog, hint_extra_cells=self.hint_extra_cells)
        machine.start_stage(config)

        session = GameSession(
            session_id=uuid4().hex,
            machine=machine,
            coalescer=InputCoalescer(machine),
        )

        self._sessions[session.session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info("[Sessions] Evicted %s (limit %d)", evicted_id, self.max_sessions)

        logger.info("[Sessions] Created %s at stage %d", session.session_id, config.order)
        return session

    def get(self, session_id: str) -> Optional[GameSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        self._sessions.move_to_end(session_id)
        session.touch()
        return session

    def delete(self, session_id: str) -> bool:
        removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info("[Sessions] Deleted %s", session_id)
        return removed is not None

    def stats(self) -> Dict[str, int]:
        return {"active": len(self._sessions), "limit": self.max_sessions}
