"""
Dot Trace - Path Validator

Stateless checks over any candidate cell sequence. Used once per stage as
a self-check of the generated solution, on every proposed move, and by the
server-side submission check.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from .errors import PathInvariantError
from .grid import Cell, Dot, Segment, in_bounds, manhattan_distance


# ============================================
# BASIC PREDICATES
# ============================================

def is_adjacent(a: Cell, b: Cell) -> bool:
    """Orthogonal neighbours: Manhattan distance exactly 1."""
    return manhattan_distance(a, b) == 1


def validate_adjacency_chain(path: Sequence[Cell]) -> bool:
    """Every consecutive pair is adjacent. Empty and single-cell paths are valid."""
    for i in range(len(path) - 1):
        if not is_adjacent(path[i], path[i + 1]):
            return False
    return True


def is_in_bounds(cell: Cell, grid_size: int) -> bool:
    return in_bounds(cell, grid_size)


def has_unique_cells(path: Sequence[Cell]) -> bool:
    return len(set(path)) == len(path)


def has_full_coverage(path: Sequence[Cell], grid_size: int) -> bool:
    """The distinct cells of the path are exactly the grid's cells."""
    distinct = set(path)
    if len(distinct) != grid_size * grid_size:
        return False
    return all(is_in_bounds(cell, grid_size) for cell in distinct)


def validate_dot_order(path: Sequence[Cell], dots: Iterable[Dot]) -> bool:
    """
    Dots met while scanning the path must come as 1, 2, 3, ...

    Reaching dot k+1 before dot k, or meeting a dot twice, fails.
    Dots that the path has not reached yet are fine.
    """
    index_by_cell = dot_index_by_cell(dots)
    expected = 1
    for cell in path:
        index = index_by_cell.get(cell)
        if index is None:
            continue
        if index != expected:
            return False
        expected += 1
    return True


def dot_index_by_cell(dots: Iterable[Dot]) -> Dict[Cell, int]:
    return {dot.cell: dot.index for dot in dots}


# ============================================
# SEGMENTS
# ============================================

def split_segments(path: Sequence[Cell], dots: Iterable[Dot]) -> List[Segment]:
    """
    Splits a path into closed dot-to-dot segments.

    The trailing part after the last reached dot is not a segment yet and
    is left out.
    """
    index_by_cell = dot_index_by_cell(dots)
    segments: List[Segment] = []
    start_pos: Optional[int] = None
    start_dot: Optional[int] = None

    for pos, cell in enumerate(path):
        index = index_by_cell.get(cell)
        if index is None:
            continue
        if start_pos is not None:
            segments.append(Segment(start_dot, index, tuple(path[start_pos:pos + 1])))
        start_pos = pos
        start_dot = index

    return segments


# ============================================
# COMPOSITE CHECKS
# ============================================

def check_solution(
    path: Sequence[Cell],
    grid_size: int,
    dots: Optional[Sequence[Dot]] = None,
) -> List[str]:
    """
    Full check of a complete path.

    Returns the list of violated properties; an empty list means valid.
    """
    errors = []
    total_cells = grid_size * grid_size

    if len(path) != total_cells:
        errors.append(f"Path length {len(path)} != {total_cells}")

    outside = [cell for cell in path if not is_in_bounds(cell, grid_size)]
    if outside:
        errors.append(f"Cells outside the grid: {', '.join(c.key for c in outside[:5])}")

    if not has_unique_cells(path):
        seen = set()
        repeated = []
        for cell in path:
            if cell in seen:
                repeated.append(cell.key)
            seen.add(cell)
        errors.append(f"Repeated cells: {', '.join(repeated[:5])}")

    for i in range(len(path) - 1):
        if not is_adjacent(path[i], path[i + 1]):
            errors.append(f"Not adjacent at step {i + 1}: {path[i].key} -> {path[i + 1].key}")
            break

    if not has_full_coverage(path, grid_size):
        coverage = len({c for c in path if is_in_bounds(c, grid_size)}) / total_cells * 100
        errors.append(f"Grid not fully covered: {coverage:.1f}%")

    if dots:
        if not validate_dot_order(path, dots):
            errors.append("Dots are not reached in ascending order")
        last_dot = max(dots, key=lambda dot: dot.index)
        if path and path[-1] != last_dot.cell:
            errors.append(
                f"Path ends at {path[-1].key}, last dot {last_dot.index} is at {last_dot.cell.key}"
            )

    return errors


def assert_valid_path(path: Sequence[Cell], grid_size: int) -> None:
    """
    Raises PathInvariantError when a partial path breaks uniqueness,
    adjacency or bounds. For paths built outside gameplay.
    """
    for cell in path:
        if not is_in_bounds(cell, grid_size):
            raise PathInvariantError(f"Cell {cell.key} is outside the {grid_size}x{grid_size} grid")
    if not has_unique_cells(path):
        raise PathInvariantError("Path visits a cell twice")
    if not validate_adjacency_chain(path):
        raise PathInvariantError("Path contains a non-adjacent step")
