"""
Dot Trace - Pydantic Schemas

All request/response schemas in one file. Cells travel as "row,col" keys.
"""

from typing import Optional, List
from pydantic import BaseModel, Field, model_validator

from .services.patterns import MAX_GRID_SIZE, MIN_GRID_SIZE

CellKey = str


# ============================================
# STAGES & PATTERNS
# ============================================

class StageResponse(BaseModel):
    """One catalog stage."""
    order: int
    grid_size: int
    pattern_type: str
    dot_count: int
    description: str
    time_limit: int


class StagesResponse(BaseModel):
    stages: List[StageResponse]
    count: int


class PatternResponse(BaseModel):
    """A generated solution with its shape metrics."""
    pattern_type: str
    grid_size: int
    solution: List[CellKey]
    turn_count: int
    longest_run: int
    complexity: int


class DotModel(BaseModel):
    index: int
    cell: CellKey


# ============================================
# VALIDATION
# ============================================

class ValidateRequest(BaseModel):
    """Server-side check of a complete path."""
    grid_size: int = Field(ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)
    path: List[str] = Field(max_length=200)
    # With both set, dots are derived from the pattern's solution and checked too
    pattern_type: Optional[str] = None
    dot_count: Optional[int] = Field(default=None, ge=2)

    @model_validator(mode="after")
    def check_dot_fields(self) -> "ValidateRequest":
        if (self.pattern_type is None) != (self.dot_count is None):
            raise ValueError("pattern_type and dot_count must be given together")
        return self


class ValidateResponse(BaseModel):
    valid: bool
    errors: List[str] = []
    segments: int = 0


# ============================================
# SESSIONS
# ============================================

class SessionCreateRequest(BaseModel):
    """
    Start at a catalog stage (default 1), or with a custom configuration
    when grid_size, pattern_type and dot_count are all given.
    """
    stage: Optional[int] = Field(default=None, ge=1)
    grid_size: Optional[int] = Field(default=None, ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)
    pattern_type: Optional[str] = None
    dot_count: Optional[int] = Field(default=None, ge=2)

    @model_validator(mode="after")
    def check_custom_fields(self) -> "SessionCreateRequest":
        custom = [self.grid_size, self.pattern_type, self.dot_count]
        given = sum(value is not None for value in custom)
        if given not in (0, 3):
            raise ValueError("grid_size, pattern_type and dot_count must be given together")
        if given == 3 and self.stage is not None:
            raise ValueError("Use either stage or a custom configuration")
        return self

    @property
    def is_custom(self) -> bool:
        return self.grid_size is not None


class GameStateResponse(BaseModel):
    stage_order: int
    grid_size: int
    dot_count: int
    current_path: List[CellKey]
    visited_dots: List[int]
    next_expected_dot: int
    stage_timer: float
    global_timer: float
    move_count: int
    status: str
    can_redo: bool = False


class CompletionResponse(BaseModel):
    """Payload of a won stage."""
    stage_order: int
    move_count: int
    stage_timer: float
    global_timer: float
    grade: str
    score: int
    time_limit: int
    time_bonus: int
    efficiency_bonus: int
    message: str
    has_next_stage: bool


class SessionResponse(BaseModel):
    session_id: str
    stage: StageResponse
    dots: List[DotModel]
    state: GameStateResponse
    completed: Optional[CompletionResponse] = None


# ============================================
# MOVES
# ============================================

class MovesRequest(BaseModel):
    """Pointer samples of the active gesture, in order."""
    cells: List[str] = Field(min_length=1, max_length=200)


class MoveResultModel(BaseModel):
    cell: CellKey
    accepted: bool
    rejection: Optional[str] = None
    offending_dot: Optional[int] = None
    expected_dot: Optional[int] = None


class MovesResponse(BaseModel):
    results: List[MoveResultModel]
    backtracks: int = 0
    state: GameStateResponse
    completed: Optional[CompletionResponse] = None


class RedoResponse(BaseModel):
    result: Optional[MoveResultModel] = None
    state: GameStateResponse
    completed: Optional[CompletionResponse] = None


class TickRequest(BaseModel):
    elapsed_seconds: float = Field(ge=0, le=3600)


class HintResponse(BaseModel):
    cells: List[CellKey]
    next_dot: Optional[int] = None
