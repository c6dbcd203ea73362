"""
Dot Trace - Input Coalescer

Sits between raw pointer sampling and the state machine. Pointer events
arrive far more often than the cell under the finger changes, so repeated
samples are dropped, and sliding back onto the previous cell is a
backtrack rather than a move.
"""

import logging
from typing import Iterable, List

from .game_state import GameStateMachine, GameStatus, MoveResult
from .grid import Cell

logger = logging.getLogger(__name__)


class InputCoalescer:
    def __init__(self, machine: GameStateMachine):
        self.machine = machine
        self.drawing = False
        self.undo_count = 0

    def begin_draw(self) -> None:
        self.drawing = True

    def end_draw(self) -> None:
        self.drawing = False

    def feed(self, cell: Cell) -> List[MoveResult]:
        """
        One pointer sample. Returns the move results it produced: none for
        dropped samples and backtracks, one for a proposed move.
        """
        if not self.drawing:
            return []
        state = self.machine.state
        if state.status == GameStatus.WON:
            return []

        path = state.current_path
        if path and path[-1] == cell:
            return []
        if len(path) >= 2 and path[-2] == cell:
            self.machine.undo_last_move()
            self.undo_count += 1
            return []

        return [self.machine.propose_move(cell)]

    def feed_many(self, cells: Iterable[Cell]) -> List[MoveResult]:
        results = []
        samples = 0
        for cell in cells:
            samples += 1
            results.extend(self.feed(cell))
        logger.debug("[Input] %d samples -> %d moves", samples, len(results))
        return results
