"""
Game state machine tests: move rules, undo/redo, reset, timers, stage
progression and listener events.
"""
import dataclasses

import pytest

from dottrace.services.errors import InvalidTransitionError, NoNextStageError
from dottrace.services.game_state import GameStateMachine, GameStatus, MoveRejection
from dottrace.services.grid import Cell
from dottrace.services.patterns import MAX_GRID_SIZE, MIN_GRID_SIZE, PatternType
from dottrace.services.stages import STAGE_CATALOG, StageConfig

from conftest import SNAKE_3, play


def three_dot_machine():
    m = GameStateMachine()
    m.start_stage(StageConfig(grid_size=3, pattern_type=PatternType.SNAKE, order=1, dot_count=3))
    return m


# ============================================
# START
# ============================================

def test_start_stage_state(machine):
    state = machine.state

    assert state.status == GameStatus.IDLE
    assert state.current_path == ()
    assert state.stage_timer == 0
    assert state.global_timer == 0
    assert state.next_expected_dot == 1
    assert machine.solution == tuple(SNAKE_3)
    assert [dot.cell for dot in machine.dots] == [Cell(0, 0), Cell(2, 2)]


def test_operations_before_start_raise():
    m = GameStateMachine()
    with pytest.raises(InvalidTransitionError):
        m.propose_move(Cell(0, 0))
    with pytest.raises(InvalidTransitionError):
        m.undo_last_move()
    with pytest.raises(InvalidTransitionError):
        m.tick(1.0)


# ============================================
# MOVES
# ============================================

def test_non_adjacent_move_rejected(machine):
    first = machine.propose_move(Cell(0, 0))
    before = machine.state

    result = machine.propose_move(Cell(1, 1))

    assert first.accepted
    assert not result.accepted
    assert result.rejection == MoveRejection.NOT_ADJACENT
    assert machine.state is before
    assert machine.state.current_path == (Cell(0, 0),)


def test_first_move_must_be_dot_one(machine):
    result = machine.propose_move(Cell(0, 1))

    assert result.rejection == MoveRejection.DOT_ORDER_VIOLATION
    assert result.expected_dot == 1
    assert machine.state.status == GameStatus.IDLE
    assert machine.state.move_count == 0


def test_already_visited_checked_first(machine):
    play(machine, SNAKE_3[:5])

    # (0,0) is both visited and not adjacent to (1,1)
    result = machine.propose_move(Cell(0, 0))
    assert result.rejection == MoveRejection.ALREADY_VISITED

    result = machine.propose_move(Cell(0, 1))
    assert result.rejection == MoveRejection.ALREADY_VISITED
    assert len(machine.state.current_path) == 5


def test_dot_out_of_order_rejected():
    m = three_dot_machine()
    play(m, [Cell(0, 0), Cell(1, 0), Cell(2, 0), Cell(2, 1)])

    result = m.propose_move(Cell(2, 2))

    assert result.rejection == MoveRejection.DOT_ORDER_VIOLATION
    assert result.offending_dot == 3
    assert result.expected_dot == 2
    assert m.state.next_expected_dot == 2


def test_first_move_starts_playing(machine):
    machine.propose_move(Cell(0, 0))
    state = machine.state

    assert state.status == GameStatus.PLAYING
    assert state.visited_dots == (1,)
    assert state.next_expected_dot == 2
    assert state.move_count == 1


def test_replay_solution_wins(machine):
    results = play(machine, SNAKE_3)
    state = machine.state

    assert all(result.accepted for result in results)
    assert results[-1].won
    assert state.status == GameStatus.WON
    assert state.move_count == 9
    assert state.visited_dots == (1, 2)
    assert machine.completed.move_count == 9
    assert machine.completed.grade.grade == "Perfect"


@pytest.mark.parametrize("stage", STAGE_CATALOG, ids=lambda s: s.pattern_type.value)
def test_replay_every_catalog_stage(stage):
    m = GameStateMachine()
    m.start_stage(stage)

    results = play(m, m.solution)

    assert not [r for r in results if not r.accepted]
    assert m.state.status == GameStatus.WON
    assert m.state.move_count == stage.grid_size ** 2
    assert len(m.segments()) == stage.dot_count - 1


@pytest.mark.parametrize("size", range(MIN_GRID_SIZE, MAX_GRID_SIZE + 1))
@pytest.mark.parametrize("pattern", list(PatternType), ids=lambda p: p.value)
def test_replay_every_pattern_and_size(pattern, size):
    for count in sorted({2, 3, size, size * size}):
        m = GameStateMachine()
        m.start_stage(StageConfig(grid_size=size, pattern_type=pattern, order=1, dot_count=count))

        results = play(m, m.solution)

        assert all(result.accepted for result in results)
        assert m.rejected_moves == 0
        assert m.state.status == GameStatus.WON
        assert m.state.move_count == size * size


def test_final_dot_ends_the_stroke(machine):
    early = [Cell(0, 0), Cell(1, 0), Cell(2, 0), Cell(2, 1), Cell(2, 2)]
    assert all(result.accepted for result in play(machine, early))

    result = machine.propose_move(Cell(1, 2))

    assert result.rejection == MoveRejection.DOT_ORDER_VIOLATION
    assert result.offending_dot == 2
    assert result.expected_dot is None
    assert machine.state.current_path == tuple(early)
    assert machine.state.status == GameStatus.PLAYING

    # backing off the final dot reopens the path
    machine.undo_last_move()
    assert machine.propose_move(Cell(1, 1)).accepted


def test_moves_after_win_raise(machine):
    play(machine, SNAKE_3)
    with pytest.raises(InvalidTransitionError):
        machine.propose_move(Cell(0, 0))
    with pytest.raises(InvalidTransitionError):
        machine.undo_last_move()


def test_out_of_grid_cell_raises(machine):
    with pytest.raises(ValueError):
        machine.propose_move(Cell(3, 0))


def test_snapshots_are_immutable(machine):
    with pytest.raises(dataclasses.FrozenInstanceError):
        machine.state.move_count = 5


# ============================================
# UNDO / REDO
# ============================================

def test_undo_on_empty_path_is_noop(machine):
    before = machine.state
    assert machine.undo_last_move() is before


def test_undo_removes_exactly_one_cell(machine):
    play(machine, SNAKE_3[:4])

    state = machine.undo_last_move()

    assert state.current_path == tuple(SNAKE_3[:3])
    assert state.status == GameStatus.PLAYING
    # undone moves still count
    assert state.move_count == 4


def test_undo_rolls_back_dot():
    m = three_dot_machine()
    play(m, SNAKE_3[:5])
    assert m.state.next_expected_dot == 3

    state = m.undo_last_move()

    assert state.visited_dots == (1,)
    assert state.next_expected_dot == 2


def test_undo_to_empty_keeps_playing(machine):
    machine.propose_move(Cell(0, 0))
    state = machine.undo_last_move()

    assert state.current_path == ()
    assert state.next_expected_dot == 1
    assert state.status == GameStatus.PLAYING


def test_redo_reapplies_undone_cell(machine):
    play(machine, SNAKE_3[:3])
    machine.undo_last_move()
    assert machine.can_redo

    result = machine.redo_move()

    assert result.accepted
    assert result.cell == SNAKE_3[2]
    assert machine.state.current_path == tuple(SNAKE_3[:3])
    assert not machine.can_redo


def test_redo_with_nothing_to_redo(machine):
    assert machine.redo_move() is None


def test_new_move_clears_redo(machine):
    play(machine, SNAKE_3[:3])
    machine.undo_last_move()

    machine.propose_move(SNAKE_3[2])

    assert not machine.can_redo


def test_redo_drains_then_finishing_move_wins(machine):
    play(machine, SNAKE_3[:8])
    machine.undo_last_move()

    assert machine.redo_move().cell == SNAKE_3[7]
    assert machine.redo_move() is None
    assert machine.state.current_path == tuple(SNAKE_3[:8])
    assert machine.propose_move(SNAKE_3[8]).won


# ============================================
# RESET / ADVANCE / TICK
# ============================================

def test_reset_then_replay_wins(machine):
    play(machine, SNAKE_3[:6])
    machine.tick(4.0)

    state = machine.reset_stage()

    assert state.status == GameStatus.IDLE
    assert state.current_path == ()
    assert state.move_count == 0
    assert state.stage_timer == 0
    assert state.global_timer == 4.0
    assert machine.solution == tuple(SNAKE_3)

    play(machine, SNAKE_3)
    assert machine.state.status == GameStatus.WON
    assert machine.state.move_count == 9


def test_reset_after_win(machine):
    play(machine, SNAKE_3)
    assert machine.reset_stage().status == GameStatus.IDLE
    assert machine.completed is None


def test_tick_only_runs_stage_timer_while_playing(machine):
    machine.tick(2.0)
    assert machine.state.stage_timer == 0
    assert machine.state.global_timer == 2.0

    machine.propose_move(Cell(0, 0))
    machine.tick(1.5)
    assert machine.state.stage_timer == 1.5
    assert machine.state.global_timer == 3.5

    play(machine, SNAKE_3[1:])
    machine.tick(10.0)
    assert machine.state.stage_timer == 1.5
    assert machine.state.global_timer == 13.5


def test_negative_tick_raises(machine):
    with pytest.raises(ValueError):
        machine.tick(-1)


def test_advance_requires_win():
    m = GameStateMachine()
    m.start_stage(STAGE_CATALOG[0])
    with pytest.raises(InvalidTransitionError):
        m.advance_stage()


def test_advance_keeps_global_timer():
    m = GameStateMachine()
    m.start_stage(STAGE_CATALOG[0])
    m.propose_move(m.solution[0])
    m.tick(12.0)
    play(m, m.solution[1:])

    state = m.advance_stage()

    assert m.config == STAGE_CATALOG[1]
    assert state.stage_order == 2
    assert state.status == GameStatus.IDLE
    assert state.stage_timer == 0
    assert state.global_timer == 12.0


def test_advance_from_custom_stage_goes_to_catalog(machine):
    play(machine, SNAKE_3)
    machine.advance_stage()
    assert machine.config == STAGE_CATALOG[1]


def test_advance_after_final_stage_raises(snake3_config):
    m = GameStateMachine(catalog=[snake3_config])
    m.start_stage(snake3_config)
    play(m, SNAKE_3)

    assert not m.has_next_stage
    with pytest.raises(NoNextStageError):
        m.advance_stage()


# ============================================
# HINT / SEGMENTS / EVENTS
# ============================================

def test_hint_from_empty_path_reaches_second_dot():
    m = GameStateMachine()
    m.start_stage(STAGE_CATALOG[0])  # 5x5 snake, dots at 0, 8, 16, 24

    assert m.hint(extra_cells=0) == list(m.solution[:9])
    assert m.hint(extra_cells=3) == list(m.solution[:12])


def test_hint_continues_from_progress():
    m = GameStateMachine()
    m.start_stage(STAGE_CATALOG[0])
    play(m, m.solution[:3])

    assert m.hint(extra_cells=0) == list(m.solution[3:9])


def test_hint_restarts_when_off_track():
    m = GameStateMachine()
    m.start_stage(STAGE_CATALOG[0])
    play(m, [Cell(0, 0), Cell(1, 0)])

    assert m.hint(extra_cells=0) == list(m.solution[:9])


def test_hint_empty_after_win(machine):
    play(machine, SNAKE_3)
    assert machine.hint() == []


def test_segments_follow_progress():
    m = three_dot_machine()
    play(m, SNAKE_3[:7])

    segments = m.segments()

    assert len(segments) == 1
    assert segments[0].cells == tuple(SNAKE_3[:5])


def test_listener_receives_events(machine):
    events = []
    machine.add_listener(events.append)

    machine.propose_move(Cell(1, 1))
    play(machine, SNAKE_3)

    kinds = [event.kind for event in events]
    assert kinds[0] == "move_rejected"
    assert kinds.count("move_accepted") == 9
    assert kinds[-1] == "stage_completed"
    completed = events[-1].completed
    assert completed.move_count == 9
    assert completed.stage_order == 1


def test_rejections_lower_accuracy(machine):
    machine.propose_move(Cell(1, 1))
    play(machine, SNAKE_3)

    assert machine.rejected_moves == 1
    assert machine.completed.grade.accuracy == pytest.approx(90.0)


def test_removed_listener_gets_nothing(machine):
    events = []
    machine.add_listener(events.append)
    machine.remove_listener(events.append)

    machine.propose_move(Cell(0, 0))

    assert events == []
