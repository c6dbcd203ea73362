"""
Dot Trace - Pattern Generator

Twelve closed-form Hamiltonian paths over an N×N grid. Every pattern is a
small pure function of row/column arithmetic (sweeps, rings, gnomons,
bands, quadrants, 2x2 blocks). No search and no randomness: the same
(grid_size, pattern) always yields the same solution.

Guarantees (checked on every generation):
- length is N²
- every cell is visited exactly once
- consecutive cells are orthogonal neighbours
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Dict, List, Sequence, Tuple

from .errors import PatternGenerationError
from .grid import Cell
from .validator import check_solution

logger = logging.getLogger(__name__)

MIN_GRID_SIZE = 3
MAX_GRID_SIZE = 10


class PatternType(str, Enum):
    SNAKE = "snake"
    SPIRAL = "spiral"
    ZIGZAG = "zigzag"
    LSHAPE = "lshape"
    DIAMOND = "diamond"
    CROSS = "cross"
    WAVE = "wave"
    UTURN = "uturn"
    MAZE = "maze"
    FRACTAL = "fractal"
    LABYRINTH = "labyrinth"
    COMPLEX = "complex"


LEGACY_PATTERN_MAP = {
    "simple": "snake",
    "l-shape": "lshape",
    "u-turn": "uturn",
}


def normalize_pattern_type(value: Any) -> PatternType:
    """Accepts enum members, names and legacy identifiers ("simple")."""
    if isinstance(value, PatternType):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unknown pattern type: {value!r}")
    normalized = value.strip().lower()
    normalized = LEGACY_PATTERN_MAP.get(normalized, normalized)
    try:
        return PatternType(normalized)
    except ValueError as exc:
        raise ValueError(f"Unknown pattern type: {value!r}") from exc


# ============================================
# SWEEP HELPERS
# ============================================

def _row_sweep(rows: Sequence[int], cols: Sequence[int]) -> List[Cell]:
    """
    Boustrophedon by rows: rows[0] along cols, rows[1] back, and so on.

    Ends on rows[-1] at cols[-1] when len(rows) is odd, at cols[0] otherwise.
    """
    path = []
    for i, row in enumerate(rows):
        ordered = cols if i % 2 == 0 else cols[::-1]
        path.extend(Cell(row, col) for col in ordered)
    return path


def _column_sweep(cols: Sequence[int], rows: Sequence[int]) -> List[Cell]:
    """
    Boustrophedon by columns: cols[0] along rows, cols[1] back, and so on.

    Ends on cols[-1] at rows[-1] when len(cols) is odd, at rows[0] otherwise.
    """
    path = []
    for j, col in enumerate(cols):
        ordered = rows if j % 2 == 0 else rows[::-1]
        path.extend(Cell(row, col) for row in ordered)
    return path


def _ring(grid_size: int, depth: int, clockwise: bool) -> List[Cell]:
    """
    Ring `depth` (0 = border) starting at its top-left corner.

    Clockwise ends at (depth+1, depth), counter-clockwise at
    (depth, depth+1); both are adjacent to the next ring's corner.
    """
    k = depth
    last = grid_size - 1 - k
    if last == k:
        return [Cell(k, k)]

    if clockwise:
        cells = [Cell(k, c) for c in range(k, last + 1)]
        cells += [Cell(r, last) for r in range(k + 1, last + 1)]
        cells += [Cell(last, c) for c in range(last - 1, k - 1, -1)]
        cells += [Cell(r, k) for r in range(last - 1, k, -1)]
    else:
        cells = [Cell(r, k) for r in range(k, last + 1)]
        cells += [Cell(last, c) for c in range(k + 1, last + 1)]
        cells += [Cell(r, last) for r in range(last - 1, k - 1, -1)]
        cells += [Cell(k, c) for c in range(last - 1, k, -1)]
    return cells


def _ring_count(grid_size: int) -> int:
    return (grid_size + 1) // 2


# ============================================
# PATTERNS
# ============================================

def snake_path(grid_size: int) -> List[Cell]:
    """Rows left-right, then right-left. The reference pattern."""
    axis = list(range(grid_size))
    return _row_sweep(axis, axis)


def zigzag_path(grid_size: int) -> List[Cell]:
    """Columns top-bottom, then bottom-top."""
    axis = list(range(grid_size))
    return _column_sweep(axis, axis)


def spiral_path(grid_size: int) -> List[Cell]:
    """Clockwise, outside in."""
    path = []
    for depth in range(_ring_count(grid_size)):
        path += _ring(grid_size, depth, clockwise=True)
    return path


def lshape_path(grid_size: int) -> List[Cell]:
    """
    Nested L-shapes (gnomons) anchored on the main diagonal.

    Gnomon k holds the cells with min(row, col) == k. Even gnomons run up
    their column then right along their row, odd ones run left along their
    row then down their column.
    """
    n = grid_size
    path = []
    for k in range(n):
        if k % 2 == 0:
            path += [Cell(r, k) for r in range(n - 1, k - 1, -1)]
            path += [Cell(k, c) for c in range(k + 1, n)]
        else:
            path += [Cell(k, c) for c in range(n - 1, k - 1, -1)]
            path += [Cell(r, k) for r in range(k + 1, n)]
    return path


def diamond_path(grid_size: int) -> List[Cell]:
    """Starts at the center and unwinds counter-clockwise rings outward."""
    inward = []
    for depth in range(_ring_count(grid_size)):
        inward += _ring(grid_size, depth, clockwise=False)
    return inward[::-1]


def cross_path(grid_size: int) -> List[Cell]:
    """
    Quadrant tour: top-left (columns), bottom-left (rows), bottom-right
    (rows, going up), top-right (columns).

    The lower band always has an even number of rows so both lower
    quadrants leave on the side facing the next quadrant.
    """
    n = grid_size
    left = n // 2
    lower = left if left % 2 == 0 else left + 1
    split = n - lower

    upper_rows = list(range(split))
    lower_rows = list(range(split, n))
    left_cols = list(range(left))
    right_cols = list(range(left, n))

    # last column of the top-left quadrant must run downward
    first_rows = upper_rows if (left - 1) % 2 == 0 else upper_rows[::-1]
    path = _column_sweep(left_cols, first_rows)
    path += _row_sweep(lower_rows, left_cols[::-1])
    path += _row_sweep(lower_rows[::-1], right_cols)
    path += _column_sweep(right_cols, upper_rows[::-1])
    return path


def wave_path(grid_size: int) -> List[Cell]:
    """
    Two-row bands swept left-right then right-left, oscillating
    vertically inside each band.

    Odd sizes finish with a single straight row. Even sizes need a hook
    over the two columns at the turning end, otherwise a band would leave
    on the wrong row.
    """
    n = grid_size
    path = []
    for band, top in enumerate(range(0, n - 1, 2)):
        rows = [top, top + 1]
        if n % 2 == 1:
            cols = list(range(n)) if band % 2 == 0 else list(range(n - 1, -1, -1))
            path += _column_sweep(cols, rows)
            continue

        hook = [Cell(top, n - 2), Cell(top, n - 1), Cell(top + 1, n - 1), Cell(top + 1, n - 2)]
        if band % 2 == 0:
            path += _column_sweep(list(range(n - 2)), rows)
            path += hook
        else:
            path += hook
            path += _column_sweep(list(range(n - 3, -1, -1)), rows[::-1])

    if n % 2 == 1:
        last_band = (n - 1) // 2
        cols = range(n) if last_band % 2 == 0 else range(n - 1, -1, -1)
        path += [Cell(n - 1, col) for col in cols]
    return path


def uturn_path(grid_size: int) -> List[Cell]:
    """Down the left half row by row, back up the right half."""
    n = grid_size
    half = n // 2
    # the left half must finish next to the right half's bottom-left cell
    left_cols = list(range(half)) if n % 2 == 1 else list(range(half - 1, -1, -1))
    path = _row_sweep(list(range(n)), left_cols)
    path += _row_sweep(list(range(n - 1, -1, -1)), list(range(half, n)))
    return path


def maze_path(grid_size: int) -> List[Cell]:
    """Two-column corridors: the wave mirrored over the main diagonal."""
    return [cell.transposed() for cell in wave_path(grid_size)]


def labyrinth_path(grid_size: int) -> List[Cell]:
    """Concentric rings, alternating counter-clockwise and clockwise."""
    path = []
    for depth in range(_ring_count(grid_size)):
        path += _ring(grid_size, depth, clockwise=depth % 2 == 1)
    return path


def complex_path(grid_size: int) -> List[Cell]:
    """Top half swept by rows from the top-right corner, bottom half by columns."""
    n = grid_size
    half = n // 2
    path = _row_sweep(list(range(half)), list(range(n - 1, -1, -1)))
    end_col = path[-1].col
    cols = list(range(n)) if end_col == 0 else list(range(n - 1, -1, -1))
    path += _column_sweep(cols, list(range(half, n)))
    return path


# 2x2 block, clockwise from the top-left corner
_BLOCK_CYCLE = (Cell(0, 0), Cell(0, 1), Cell(1, 1), Cell(1, 0))


def _lift_blocks(blocks: Sequence[Cell], entry: Cell) -> List[Cell]:
    """
    Expands a path over 2x2 blocks into a path over cells.

    Inside a block the walk goes the long way round from its entry cell;
    of the two directions exactly one ends on the side facing the next
    block, and stepping over that side gives the next entry cell.
    """
    path = []
    for i, block in enumerate(blocks):
        base_row, base_col = 2 * block.row, 2 * block.col
        start = _BLOCK_CYCLE.index(Cell(entry.row - base_row, entry.col - base_col))
        local = [_BLOCK_CYCLE[(start + step) % 4] for step in range(4)]

        if i + 1 < len(blocks):
            dr = blocks[i + 1].row - block.row
            dc = blocks[i + 1].col - block.col
            exit_cell = local[-1]
            if 0 <= exit_cell.row + dr <= 1 and 0 <= exit_cell.col + dc <= 1:
                local = [_BLOCK_CYCLE[(start - step) % 4] for step in range(4)]

        cells = [Cell(base_row + c.row, base_col + c.col) for c in local]
        path += cells

        if i + 1 < len(blocks):
            entry = Cell(cells[-1].row + dr, cells[-1].col + dc)
    return path


def fractal_path(grid_size: int) -> List[Cell]:
    """
    The L-shape pattern one scale up: each cell of lshape(N/2) becomes a
    2x2 U-motif.

    Odd sizes first walk the right column and bottom row, then enter the
    even square from its bottom-left corner.
    """
    n = grid_size
    if n % 2 == 0:
        return _lift_blocks(lshape_path(n // 2), entry=Cell(n - 1, 0))

    strip = [Cell(r, n - 1) for r in range(n)]
    strip += [Cell(n - 1, c) for c in range(n - 2, -1, -1)]
    square = n - 1
    return strip + _lift_blocks(lshape_path(square // 2), entry=Cell(square - 1, 0))


PATTERN_GENERATORS: Dict[PatternType, Callable[[int], List[Cell]]] = {
    PatternType.SNAKE: snake_path,
    PatternType.SPIRAL: spiral_path,
    PatternType.ZIGZAG: zigzag_path,
    PatternType.LSHAPE: lshape_path,
    PatternType.DIAMOND: diamond_path,
    PatternType.CROSS: cross_path,
    PatternType.WAVE: wave_path,
    PatternType.UTURN: uturn_path,
    PatternType.MAZE: maze_path,
    PatternType.FRACTAL: fractal_path,
    PatternType.LABYRINTH: labyrinth_path,
    PatternType.COMPLEX: complex_path,
}


# ============================================
# MAIN GENERATOR FUNCTION
# ============================================

@lru_cache(maxsize=256)
def _generate_checked(grid_size: int, pattern: PatternType) -> Tuple[Cell, ...]:
    if not MIN_GRID_SIZE <= grid_size <= MAX_GRID_SIZE:
        raise PatternGenerationError(
            pattern, grid_size,
            f"grid size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}",
        )

    path = PATTERN_GENERATORS[pattern](grid_size)

    errors = check_solution(path, grid_size)
    if errors:
        logger.error("[Patterns] %s %dx%d failed self-check: %s", pattern.value, grid_size, grid_size, errors)
        raise PatternGenerationError(pattern, grid_size, "; ".join(errors))

    logger.debug("[Patterns] %s %dx%d OK (%d cells)", pattern.value, grid_size, grid_size, len(path))
    return tuple(path)


def generate(grid_size: int, pattern_type: Any) -> List[Cell]:
    """
    Generates the solution path for a stage.

    Raises:
        ValueError: unknown pattern identifier
        PatternGenerationError: unsupported size or failed self-check
    """
    pattern = normalize_pattern_type(pattern_type)
    return list(_generate_checked(grid_size, pattern))


# ============================================
# METRICS
# ============================================

@dataclass(frozen=True)
class PatternMetrics:
    turn_count: int
    longest_run: int
    complexity: int  # 1..10


def pattern_metrics(path: Sequence[Cell]) -> PatternMetrics:
    """Direction changes and straight runs of a path."""
    turn_count = 0
    longest_run = 1 if path else 0
    run = 1
    last_direction = None

    for i in range(1, len(path)):
        direction = (path[i].row - path[i - 1].row, path[i].col - path[i - 1].col)
        if last_direction is not None and direction != last_direction:
            turn_count += 1
            run = 1
        run += 1
        longest_run = max(longest_run, run)
        last_direction = direction

    max_turns = max(1, len(path) - 1)
    complexity = min(10, int(turn_count / max_turns * 10) + 1)
    return PatternMetrics(turn_count=turn_count, longest_run=longest_run, complexity=complexity)
