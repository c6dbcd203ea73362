"""
Dot Trace - Game API

Thin HTTP adapter over the game state machine:
1. catalog, generated patterns and path validation (stateless)
2. sessions: one GameStateMachine per session, kept in memory
3. moves arrive as batches of pointer samples and go through the coalescer
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from ..schemas import (
    StageResponse, StagesResponse, PatternResponse, DotModel,
    ValidateRequest, ValidateResponse,
    SessionCreateRequest, SessionResponse, GameStateResponse, CompletionResponse,
    MovesRequest, MovesResponse, MoveResultModel, RedoResponse,
    TickRequest, HintResponse,
)
from ..middleware.security import game_rate_limit, limiter, validate_json_size
from ..services.dots import place_dots
from ..services.game_state import GameState, GameStatus, MoveResult
from ..services.grading import calculate_time_limit
from ..services.grid import Cell, in_bounds
from ..services.patterns import (
    MAX_GRID_SIZE, MIN_GRID_SIZE, generate, normalize_pattern_type, pattern_metrics,
)
from ..services.sessions import GameSession, SessionStore
from ..services.stages import StageConfig, get_stage, list_stages
from ..services.validator import check_solution, split_segments

router = APIRouter(prefix="/game", tags=["game"])


# ============================================
# DEPENDENCIES
# ============================================

def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> GameSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


# ============================================
# SERIALIZERS
# ============================================

def _parse_cells(keys: List[str], grid_size: Optional[int] = None) -> List[Cell]:
    cells = []
    for key in keys:
        try:
            cell = Cell.parse(key)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Invalid cell key: {key}")
        if grid_size is not None and not in_bounds(cell, grid_size):
            raise HTTPException(status_code=422, detail=f"Cell {key} is outside the {grid_size}x{grid_size} grid")
        cells.append(cell)
    return cells


def _parse_pattern(value: str):
    try:
        return normalize_pattern_type(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _serialize_stage(config: StageConfig) -> StageResponse:
    return StageResponse(
        order=config.order,
        grid_size=config.grid_size,
        pattern_type=config.pattern_type.value,
        dot_count=config.dot_count,
        description=config.description,
        time_limit=calculate_time_limit(config.order),
    )


def _serialize_state(state: GameState, session: Optional[GameSession] = None) -> GameStateResponse:
    return GameStateResponse(
        stage_order=state.stage_order,
        grid_size=state.grid_size,
        dot_count=state.dot_count,
        current_path=[cell.key for cell in state.current_path],
        visited_dots=list(state.visited_dots),
        next_expected_dot=state.next_expected_dot,
        stage_timer=state.stage_timer,
        global_timer=state.global_timer,
        move_count=state.move_count,
        status=state.status.value,
        can_redo=session.machine.can_redo if session else False,
    )


def _serialize_move(result: MoveResult) -> MoveResultModel:
    return MoveResultModel(
        cell=result.cell.key,
        accepted=result.accepted,
        rejection=result.rejection.value if result.rejection else None,
        offending_dot=result.offending_dot,
        expected_dot=result.expected_dot,
    )


def _serialize_completion(session: GameSession) -> Optional[CompletionResponse]:
    completed = session.machine.completed
    if completed is None:
        return None
    grade = completed.grade
    return CompletionResponse(
        stage_order=completed.stage_order,
        move_count=completed.move_count,
        stage_timer=completed.stage_timer,
        global_timer=completed.global_timer,
        grade=grade.grade,
        score=grade.score,
        time_limit=grade.time_limit,
        time_bonus=grade.time_bonus,
        efficiency_bonus=grade.efficiency_bonus,
        message=grade.message,
        has_next_stage=session.machine.has_next_stage,
    )


def _serialize_session(session: GameSession) -> SessionResponse:
    machine = session.machine
    return SessionResponse(
        session_id=session.session_id,
        stage=_serialize_stage(machine.config),
        dots=[DotModel(index=dot.index, cell=dot.cell.key) for dot in machine.dots],
        state=_serialize_state(machine.state, session),
        completed=_serialize_completion(session),
    )


# ============================================
# CATALOG & PATTERNS
# ============================================

@router.get("/stages", response_model=StagesResponse)
@limiter.limit(game_rate_limit)
async def get_stages(request: Request):
    stages = [_serialize_stage(config) for config in list_stages()]
    return StagesResponse(stages=stages, count=len(stages))


@router.get("/patterns/{pattern}/{grid_size}", response_model=PatternResponse)
@limiter.limit(game_rate_limit)
async def get_pattern(request: Request, pattern: str, grid_size: int):
    pattern_type = _parse_pattern(pattern)
    if not MIN_GRID_SIZE <= grid_size <= MAX_GRID_SIZE:
        raise HTTPException(
            status_code=422,
            detail=f"grid_size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}",
        )

    solution = generate(grid_size, pattern_type)
    metrics = pattern_metrics(solution)
    return PatternResponse(
        pattern_type=pattern_type.value,
        grid_size=grid_size,
        solution=[cell.key for cell in solution],
        turn_count=metrics.turn_count,
        longest_run=metrics.longest_run,
        complexity=metrics.complexity,
    )


@router.post("/validate", response_model=ValidateResponse, dependencies=[Depends(validate_json_size)])
@limiter.limit(game_rate_limit)
async def validate_path(request: Request, body: ValidateRequest):
    """
    Checks a submitted complete path.

    Returns:
        valid, the list of violated properties and the number of closed
        dot-to-dot segments
    """
    path = _parse_cells(body.path)

    dots = None
    if body.pattern_type is not None:
        pattern_type = _parse_pattern(body.pattern_type)
        if body.dot_count > body.grid_size * body.grid_size:
            raise HTTPException(status_code=422, detail="dot_count exceeds the number of cells")
        dots = place_dots(generate(body.grid_size, pattern_type), body.dot_count)

    errors = check_solution(path, body.grid_size, dots)
    segments = len(split_segments(path, dots)) if dots else 0
    return ValidateResponse(valid=not errors, errors=errors, segments=segments)


# ============================================
# SESSIONS
# ============================================

@router.post("/sessions", response_model=SessionResponse, dependencies=[Depends(validate_json_size)])
@limiter.limit(game_rate_limit)
async def create_session(
    request: Request,
    body: Optional[SessionCreateRequest] = None,
    store: SessionStore = Depends(get_session_store),
):
    body = body or SessionCreateRequest()

    if body.is_custom:
        pattern_type = _parse_pattern(body.pattern_type)
        try:
            config = StageConfig(
                grid_size=body.grid_size,
                pattern_type=pattern_type,
                order=1,
                dot_count=body.dot_count,
                description=f"Custom: {body.dot_count} dots, {body.grid_size}×{body.grid_size} grid",
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    else:
        try:
            config = get_stage(body.stage or 1)
        except KeyError:
            raise HTTPException(status_code=404, detail="Stage not found")

    session = store.create(config)
    return _serialize_session(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
@limiter.limit(game_rate_limit)
async def get_session_info(request: Request, session: GameSession = Depends(get_session)):
    return _serialize_session(session)


@router.delete("/sessions/{session_id}")
@limiter.limit(game_rate_limit)
async def delete_session(request: Request, session_id: str, store: SessionStore = Depends(get_session_store)):
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True}


# ============================================
# DRAWING
# ============================================

@router.post("/sessions/{session_id}/draw/begin")
@limiter.limit(game_rate_limit)
async def begin_draw(request: Request, session: GameSession = Depends(get_session)):
    session.coalescer.begin_draw()
    return {"success": True, "drawing": True}


@router.post("/sessions/{session_id}/draw/end")
@limiter.limit(game_rate_limit)
async def end_draw(request: Request, session: GameSession = Depends(get_session)):
    session.coalescer.end_draw()
    return {"success": True, "drawing": False}


@router.post(
    "/sessions/{session_id}/moves",
    response_model=MovesResponse,
    dependencies=[Depends(validate_json_size)],
)
@limiter.limit(game_rate_limit)
async def submit_moves(request: Request, body: MovesRequest, session: GameSession = Depends(get_session)):
    """
    Feeds pointer samples through the coalescer.

    Samples outside a begin/end gesture are dropped, so a client that does
    not manage gestures gets one implicitly for this batch. Rejected moves
    are part of a normal 200 response.
    """
    machine = session.machine
    cells = _parse_cells(body.cells, machine.state.grid_size)
    if machine.state.status == GameStatus.WON:
        raise HTTPException(status_code=409, detail="Stage is already won")

    coalescer = session.coalescer
    implicit_gesture = not coalescer.drawing
    if implicit_gesture:
        coalescer.begin_draw()

    undo_before = coalescer.undo_count
    try:
        results = coalescer.feed_many(cells)
    finally:
        if implicit_gesture:
            coalescer.end_draw()

    return MovesResponse(
        results=[_serialize_move(result) for result in results],
        backtracks=coalescer.undo_count - undo_before,
        state=_serialize_state(machine.state, session),
        completed=_serialize_completion(session),
    )


# ============================================
# TRANSITIONS
# ============================================

@router.post("/sessions/{session_id}/undo", response_model=GameStateResponse)
@limiter.limit(game_rate_limit)
async def undo_move(request: Request, session: GameSession = Depends(get_session)):
    state = session.machine.undo_last_move()
    return _serialize_state(state, session)


@router.post("/sessions/{session_id}/redo", response_model=RedoResponse)
@limiter.limit(game_rate_limit)
async def redo_move(request: Request, session: GameSession = Depends(get_session)):
    result = session.machine.redo_move()
    return RedoResponse(
        result=_serialize_move(result) if result else None,
        state=_serialize_state(session.machine.state, session),
        completed=_serialize_completion(session),
    )


@router.post("/sessions/{session_id}/reset", response_model=GameStateResponse)
@limiter.limit(game_rate_limit)
async def reset_stage(request: Request, session: GameSession = Depends(get_session)):
    state = session.machine.reset_stage()
    return _serialize_state(state, session)


@router.post("/sessions/{session_id}/advance", response_model=SessionResponse)
@limiter.limit(game_rate_limit)
async def advance_stage(request: Request, session: GameSession = Depends(get_session)):
    session.machine.advance_stage()
    return _serialize_session(session)


@router.post("/sessions/{session_id}/tick", response_model=GameStateResponse)
@limiter.limit(game_rate_limit)
async def tick(request: Request, body: TickRequest, session: GameSession = Depends(get_session)):
    state = session.machine.tick(body.elapsed_seconds)
    return _serialize_state(state, session)


@router.get("/sessions/{session_id}/hint", response_model=HintResponse)
@limiter.limit(game_rate_limit)
async def get_hint(
    request: Request,
    extra_cells: Optional[int] = None,
    session: GameSession = Depends(get_session),
):
    machine = session.machine
    if extra_cells is not None and extra_cells < 0:
        raise HTTPException(status_code=422, detail="extra_cells must not be negative")

    cells = machine.hint(extra_cells)
    state = machine.state
    next_dot = state.next_expected_dot if state.next_expected_dot <= state.dot_count else None
    return HintResponse(cells=[cell.key for cell in cells], next_dot=next_dot)
