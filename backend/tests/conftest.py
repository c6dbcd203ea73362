"""
Pytest configuration and shared fixtures for Dot Trace tests.
"""
import pytest

from dottrace.services.game_state import GameStateMachine
from dottrace.services.grid import Cell
from dottrace.services.patterns import PatternType, _generate_checked
from dottrace.services.stages import StageConfig


SNAKE_3 = [
    Cell(0, 0), Cell(0, 1), Cell(0, 2),
    Cell(1, 2), Cell(1, 1), Cell(1, 0),
    Cell(2, 0), Cell(2, 1), Cell(2, 2),
]


@pytest.fixture
def snake3_config():
    """3x3 snake, dots on the first and last cell."""
    return StageConfig(grid_size=3, pattern_type=PatternType.SNAKE, order=1, dot_count=2)


@pytest.fixture
def machine(snake3_config):
    """State machine with the 3x3 snake stage started."""
    m = GameStateMachine()
    m.start_stage(snake3_config)
    return m


@pytest.fixture
def clear_pattern_cache():
    _generate_checked.cache_clear()
    yield
    _generate_checked.cache_clear()


@pytest.fixture
def client():
    """API client with a fresh session store and rate limiting off."""
    from fastapi.testclient import TestClient

    from dottrace.main import app
    from dottrace.middleware.security import limiter
    from dottrace.services.sessions import SessionStore

    app.state.sessions = SessionStore(max_sessions=50, hint_extra_cells=8)
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    limiter.enabled = True
    limiter.reset()


def play(machine, cells):
    """Proposes every cell in order, returns the move results."""
    return [machine.propose_move(cell) for cell in cells]
