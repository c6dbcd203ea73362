"""
Dot Trace - Domain Errors

Generation errors are fatal to stage start, move rejections are not errors
at all (see game_state.MoveResult).
"""


class DotTraceError(Exception):
    """Base class for all domain errors."""


class PatternGenerationError(DotTraceError):
    """A pattern generator could not produce a valid solution."""

    def __init__(self, pattern_type, grid_size: int, reason: str):
        self.pattern_type = getattr(pattern_type, "value", pattern_type)
        self.grid_size = grid_size
        self.reason = reason
        super().__init__(
            f"Pattern '{self.pattern_type}' failed for {grid_size}x{grid_size} grid: {reason}"
        )


class InvalidTransitionError(DotTraceError):
    """The operation is not allowed in the current game status."""


class NoNextStageError(DotTraceError):
    """Advance requested after the final catalog stage."""


class PathInvariantError(AssertionError):
    """A path built outside normal gameplay breaks a path invariant."""
