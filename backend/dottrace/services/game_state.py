"""
Dot Trace - Game State Machine

Runtime core of a playthrough: the path being drawn, dot progress, timers
and the move counter.

    IDLE --first move--> PLAYING --last cell--> WON
      ^                                         |
      +--------------- reset_stage -------------+
                       advance_stage (next stage, IDLE)

Every operation replaces the state snapshot as a whole, so listeners and
callers never observe a half-applied move. Rejected moves leave the
snapshot untouched.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import settings
from .dots import place_dots
from .errors import InvalidTransitionError, NoNextStageError, PatternGenerationError
from .grading import StageGrade, grade_stage
from .grid import Cell, Dot, Segment, in_bounds
from .patterns import generate
from .stages import STAGE_CATALOG, StageConfig, next_stage
from .validator import check_solution, is_adjacent, split_segments

logger = logging.getLogger(__name__)


class GameStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    WON = "won"


class MoveRejection(str, Enum):
    NOT_ADJACENT = "not_adjacent"
    ALREADY_VISITED = "already_visited"
    DOT_ORDER_VIOLATION = "dot_order_violation"


# ============================================
# SNAPSHOTS
# ============================================

@dataclass(frozen=True)
class GameState:
    stage_order: int
    grid_size: int
    dot_count: int
    current_path: Tuple[Cell, ...] = ()
    visited_dots: Tuple[int, ...] = ()
    next_expected_dot: int = 1
    stage_timer: float = 0.0
    global_timer: float = 0.0
    move_count: int = 0
    status: GameStatus = GameStatus.IDLE

    @property
    def last_cell(self) -> Optional[Cell]:
        return self.current_path[-1] if self.current_path else None

    @property
    def total_cells(self) -> int:
        return self.grid_size * self.grid_size

    @property
    def progress(self) -> float:
        """Filled share of the grid, 0..1."""
        return len(self.current_path) / self.total_cells


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a proposed move. `state` is the snapshot after the call."""
    cell: Cell
    accepted: bool
    state: GameState
    rejection: Optional[MoveRejection] = None
    offending_dot: Optional[int] = None
    expected_dot: Optional[int] = None

    @property
    def won(self) -> bool:
        return self.accepted and self.state.status == GameStatus.WON


@dataclass(frozen=True)
class StageCompleted:
    stage_order: int
    move_count: int
    stage_timer: float
    global_timer: float
    grade: StageGrade


@dataclass(frozen=True)
class StateEvent:
    """
    kind: stage_started, move_accepted, move_rejected, undo, reset, tick,
    stage_completed
    """
    kind: str
    state: GameState
    move: Optional[MoveResult] = None
    completed: Optional[StageCompleted] = None


Listener = Callable[[StateEvent], None]


# ============================================
# STATE MACHINE
# ============================================

class GameStateMachine:
    """
    One playthrough. Synchronous, one driving caller.

    Rule order for a proposed move:
    1. already on the path -> ALREADY_VISITED
    2. first cell must be dot 1, later cells must touch the path end
       -> DOT_ORDER_VIOLATION / NOT_ADJACENT
    3. any cell after the final dot -> DOT_ORDER_VIOLATION (the stroke ends there)
    4. a dot other than the next expected one -> DOT_ORDER_VIOLATION
    """

    def __init__(
        self,
        catalog: Sequence[StageConfig] = STAGE_CATALOG,
        hint_extra_cells: Optional[int] = None,
    ):
        self._catalog = tuple(catalog)
        self._hint_extra_cells = settings.HINT_EXTRA_CELLS if hint_extra_cells is None else hint_extra_cells
        self._listeners: List[Listener] = []

        self._config: Optional[StageConfig] = None
        self._state: Optional[GameState] = None
        self._solution: Tuple[Cell, ...] = ()
        self._dots: Tuple[Dot, ...] = ()
        self._dot_by_cell: Dict[Cell, int] = {}
        self._solution_index: Dict[Cell, int] = {}
        self._redo_stack: List[Cell] = []
        self._rejected_moves = 0
        self._completed: Optional[StageCompleted] = None

    # ----- read access -----

    @property
    def state(self) -> GameState:
        self._require_stage()
        return self._state

    @property
    def config(self) -> StageConfig:
        self._require_stage()
        return self._config

    @property
    def solution(self) -> Tuple[Cell, ...]:
        self._require_stage()
        return self._solution

    @property
    def dots(self) -> Tuple[Dot, ...]:
        self._require_stage()
        return self._dots

    @property
    def completed(self) -> Optional[StageCompleted]:
        """Completion record of the current stage, None until WON."""
        return self._completed

    @property
    def has_next_stage(self) -> bool:
        return next_stage(self.config, self._catalog) is not None

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def rejected_moves(self) -> int:
        return self._rejected_moves

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ----- stage lifecycle -----

    def start_stage(self, config: StageConfig) -> GameState:
        """Generates the stage and resets everything, both timers included."""
        self._load_stage(config, global_timer=0.0)
        return self._state

    def reset_stage(self) -> GameState:
        """Same solution and dots, empty path, stage timer zero, global timer kept."""
        state = self.state
        self._state = GameState(
            stage_order=state.stage_order,
            grid_size=state.grid_size,
            dot_count=state.dot_count,
            global_timer=state.global_timer,
        )
        self._redo_stack.clear()
        self._rejected_moves = 0
        self._completed = None
        logger.info("[Game] Stage %d reset", state.stage_order)
        self._emit(StateEvent("reset", self._state))
        return self._state

    def advance_stage(self) -> GameState:
        """Next catalog stage; only from WON. The global timer keeps counting."""
        state = self.state
        if state.status != GameStatus.WON:
            raise InvalidTransitionError(f"Cannot advance from {state.status.value}, stage is not won")

        upcoming = next_stage(self._config, self._catalog)
        if upcoming is None:
            raise NoNextStageError(f"Stage {self._config.order} is the final stage")

        self._load_stage(upcoming, global_timer=state.global_timer)
        return self._state

    def _load_stage(self, config: StageConfig, global_timer: float) -> None:
        solution = generate(config.grid_size, config.pattern_type)
        dots = place_dots(solution, config.dot_count)

        errors = check_solution(solution, config.grid_size, dots)
        if errors:
            logger.error("[Game] Stage %d setup failed: %s", config.order, errors)
            raise PatternGenerationError(config.pattern_type, config.grid_size, "; ".join(errors))

        self._config = config
        self._solution = tuple(solution)
        self._dots = tuple(dots)
        self._dot_by_cell = {dot.cell: dot.index for dot in dots}
        self._solution_index = {cell: i for i, cell in enumerate(solution)}
        self._redo_stack.clear()
        self._rejected_moves = 0
        self._completed = None
        self._state = GameState(
            stage_order=config.order,
            grid_size=config.grid_size,
            dot_count=config.dot_count,
            global_timer=global_timer,
        )

        logger.info(
            "[Game] Stage %d started: %s %dx%d, %d dots",
            config.order, config.pattern_type.value, config.grid_size, config.grid_size, config.dot_count,
        )
        self._emit(StateEvent("stage_started", self._state))

    # ----- moves -----

    def propose_move(self, cell: Cell) -> MoveResult:
        """Tries to extend the path by one cell."""
        state = self.state
        if state.status == GameStatus.WON:
            raise InvalidTransitionError("Stage is already won")
        if not in_bounds(cell, state.grid_size):
            raise ValueError(f"Cell {cell.key} is outside the {state.grid_size}x{state.grid_size} grid")

        result = self._apply_move(state, cell)
        if result.accepted:
            self._redo_stack.clear()
        return result

    def redo_move(self) -> Optional[MoveResult]:
        """Re-proposes the most recently undone cell. None when nothing to redo."""
        state = self.state
        if state.status == GameStatus.WON:
            raise InvalidTransitionError("Stage is already won")
        if not self._redo_stack:
            return None
        cell = self._redo_stack.pop()
        result = self._apply_move(state, cell)
        if not result.accepted:
            self._redo_stack.clear()
        return result

    def _apply_move(self, state: GameState, cell: Cell) -> MoveResult:
        rejection = self._check_move(state, cell)
        if rejection is not None:
            self._rejected_moves += 1
            logger.debug("[Game] Rejected %s: %s", cell.key, rejection.rejection.value)
            self._emit(StateEvent("move_rejected", state, move=rejection))
            return rejection

        visited_dots = state.visited_dots
        next_expected = state.next_expected_dot
        if self._dot_by_cell.get(cell) == next_expected:
            visited_dots = visited_dots + (next_expected,)
            next_expected += 1

        new_state = replace(
            state,
            current_path=state.current_path + (cell,),
            visited_dots=visited_dots,
            next_expected_dot=next_expected,
            move_count=state.move_count + 1,
            status=GameStatus.PLAYING,
        )
        if self._is_won(new_state):
            new_state = replace(new_state, status=GameStatus.WON)

        self._state = new_state
        result = MoveResult(cell=cell, accepted=True, state=new_state)
        self._emit(StateEvent("move_accepted", new_state, move=result))

        if new_state.status == GameStatus.WON:
            self._complete_stage(new_state)
        return result

    def _check_move(self, state: GameState, cell: Cell) -> Optional[MoveResult]:
        if cell in state.current_path:
            return MoveResult(cell, False, state, MoveRejection.ALREADY_VISITED)

        last = state.last_cell
        if last is None:
            first_dot = self._dots[0]
            if cell != first_dot.cell:
                return MoveResult(
                    cell, False, state, MoveRejection.DOT_ORDER_VIOLATION,
                    offending_dot=self._dot_by_cell.get(cell),
                    expected_dot=first_dot.index,
                )
        elif not is_adjacent(last, cell):
            return MoveResult(cell, False, state, MoveRejection.NOT_ADJACENT)

        if state.next_expected_dot > len(self._dots):
            return MoveResult(
                cell, False, state, MoveRejection.DOT_ORDER_VIOLATION,
                offending_dot=len(self._dots),
            )

        dot_index = self._dot_by_cell.get(cell)
        if dot_index is not None and dot_index != state.next_expected_dot:
            return MoveResult(
                cell, False, state, MoveRejection.DOT_ORDER_VIOLATION,
                offending_dot=dot_index,
                expected_dot=state.next_expected_dot,
            )
        return None

    def _is_won(self, state: GameState) -> bool:
        if len(state.current_path) != state.total_cells:
            return False
        if state.next_expected_dot != len(self._dots) + 1:
            return False
        if state.current_path[-1] != self._dots[-1].cell:
            return False
        return not check_solution(state.current_path, state.grid_size, self._dots)

    def _complete_stage(self, state: GameState) -> None:
        attempts = state.move_count + self._rejected_moves
        accuracy = state.move_count / attempts * 100 if attempts else 100.0
        grade = grade_stage(
            order=state.stage_order,
            move_count=state.move_count,
            optimal_moves=state.total_cells,
            elapsed_seconds=state.stage_timer,
            accuracy=accuracy,
        )
        self._completed = StageCompleted(
            stage_order=state.stage_order,
            move_count=state.move_count,
            stage_timer=state.stage_timer,
            global_timer=state.global_timer,
            grade=grade,
        )
        logger.info(
            "[Game] Stage %d won: %d moves, %.1fs, grade %s",
            state.stage_order, state.move_count, state.stage_timer, grade.grade,
        )
        self._emit(StateEvent("stage_completed", state, completed=self._completed))

    def undo_last_move(self) -> GameState:
        """Removes the last cell. No-op on an empty path, forbidden once WON."""
        state = self.state
        if state.status == GameStatus.WON:
            raise InvalidTransitionError("Cannot undo a won stage")
        if not state.current_path:
            return state

        removed = state.current_path[-1]
        visited_dots = state.visited_dots
        next_expected = state.next_expected_dot
        if visited_dots and self._dot_by_cell.get(removed) == visited_dots[-1]:
            visited_dots = visited_dots[:-1]
            next_expected -= 1

        self._state = replace(
            state,
            current_path=state.current_path[:-1],
            visited_dots=visited_dots,
            next_expected_dot=next_expected,
        )
        self._redo_stack.append(removed)
        self._emit(StateEvent("undo", self._state))
        return self._state

    # ----- time -----

    def tick(self, elapsed_seconds: float) -> GameState:
        """Stage timer runs only while PLAYING, the global timer always."""
        if elapsed_seconds < 0:
            raise ValueError(f"elapsed_seconds must not be negative, got {elapsed_seconds}")
        state = self.state
        stage_timer = state.stage_timer
        if state.status == GameStatus.PLAYING:
            stage_timer += elapsed_seconds
        self._state = replace(
            state,
            stage_timer=stage_timer,
            global_timer=state.global_timer + elapsed_seconds,
        )
        self._emit(StateEvent("tick", self._state))
        return self._state

    # ----- assistance -----

    def hint(self, extra_cells: Optional[int] = None) -> List[Cell]:
        """
        Solution cells to draw next: from the end of the player's path
        through the next expected dot, plus `extra_cells` beyond it.

        If the path has left the solution the hint starts over from dot 1.
        Empty once the stage is won.
        """
        state = self.state
        if state.status == GameStatus.WON:
            return []
        extra = self._hint_extra_cells if extra_cells is None else max(0, extra_cells)

        path = state.current_path
        on_track = tuple(self._solution[:len(path)]) == path
        if path and on_track:
            start = len(path)
            target = state.next_expected_dot
        else:
            start = 0
            target = min(2, len(self._dots))

        if target > len(self._dots):
            end = len(self._solution)
        else:
            target_cell = self._dots[target - 1].cell
            end = min(self._solution_index[target_cell] + 1 + extra, len(self._solution))
        return list(self._solution[start:end])

    def segments(self) -> List[Segment]:
        """Completed dot-to-dot segments of the current path."""
        return split_segments(self.state.current_path, self._dots)

    # ----- internals -----

    def _require_stage(self) -> None:
        if self._state is None:
            raise InvalidTransitionError("No stage started")

    def _emit(self, event: StateEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
