"""
Dot placement and path validator tests.
"""
import pytest

from dottrace.services.dots import dot_positions, place_dots
from dottrace.services.errors import PathInvariantError
from dottrace.services.grid import Cell, Dot
from dottrace.services.patterns import MAX_GRID_SIZE, MIN_GRID_SIZE, PatternType, generate
from dottrace.services.stages import STAGE_CATALOG
from dottrace.services.validator import (
    assert_valid_path,
    check_solution,
    has_full_coverage,
    has_unique_cells,
    is_adjacent,
    is_in_bounds,
    split_segments,
    validate_adjacency_chain,
    validate_dot_order,
)

from conftest import SNAKE_3


# ============================================
# DOTS
# ============================================

@pytest.mark.parametrize("length, count, expected", [
    (9, 2, [0, 8]),
    (9, 3, [0, 4, 8]),
    (25, 4, [0, 8, 16, 24]),
    (10, 4, [0, 3, 6, 9]),
    (4, 3, [0, 2, 3]),  # 1.5 rounds up
    (5, 5, [0, 1, 2, 3, 4]),
])
def test_dot_positions(length, count, expected):
    assert dot_positions(length, count) == expected


@pytest.mark.parametrize("count", [0, 1, 10])
def test_invalid_dot_count(count):
    with pytest.raises(ValueError):
        place_dots(SNAKE_3, count)


@pytest.mark.parametrize("stage", STAGE_CATALOG, ids=lambda s: s.pattern_type.value)
def test_catalog_dots_follow_solution(stage):
    solution = generate(stage.grid_size, stage.pattern_type)
    dots = place_dots(solution, stage.dot_count)

    assert [dot.index for dot in dots] == list(range(1, stage.dot_count + 1))
    assert dots[0].cell == solution[0]
    assert dots[-1].cell == solution[-1]
    positions = [solution.index(dot.cell) for dot in dots]
    assert positions == sorted(set(positions))


@pytest.mark.parametrize("count", range(2, 10))
def test_every_dot_count_on_small_grid(count):
    dots = place_dots(SNAKE_3, count)
    assert len(dots) == count
    assert dots[-1].cell == Cell(2, 2)


@pytest.mark.parametrize("size", range(MIN_GRID_SIZE, MAX_GRID_SIZE + 1))
@pytest.mark.parametrize("pattern", list(PatternType), ids=lambda p: p.value)
def test_dots_on_every_generated_solution(pattern, size):
    solution = generate(size, pattern)

    for count in sorted({2, 3, size, size * size}):
        dots = place_dots(solution, count)
        positions = [solution.index(dot.cell) for dot in dots]

        assert len(dots) == count
        assert dots[0].cell == solution[0]
        assert dots[-1].cell == solution[-1]
        assert all(a < b for a, b in zip(positions, positions[1:]))


# ============================================
# VALIDATOR
# ============================================

def test_is_adjacent():
    assert is_adjacent(Cell(1, 1), Cell(1, 2))
    assert is_adjacent(Cell(1, 1), Cell(0, 1))
    assert not is_adjacent(Cell(1, 1), Cell(2, 2))
    assert not is_adjacent(Cell(1, 1), Cell(1, 1))


def test_is_in_bounds():
    assert is_in_bounds(Cell(0, 0), 3)
    assert is_in_bounds(Cell(2, 2), 3)
    assert not is_in_bounds(Cell(3, 0), 3)
    assert not is_in_bounds(Cell(0, -1), 3)


def test_adjacency_chain_trivial_cases():
    assert validate_adjacency_chain([])
    assert validate_adjacency_chain([Cell(4, 4)])
    assert not validate_adjacency_chain([Cell(0, 0), Cell(0, 2)])


def test_coverage_and_uniqueness():
    assert has_full_coverage(SNAKE_3, 3)
    assert not has_full_coverage(SNAKE_3[:-1], 3)
    assert has_unique_cells(SNAKE_3)
    assert not has_unique_cells(SNAKE_3 + [Cell(0, 0)])


def test_check_solution_accepts_snake():
    dots = place_dots(SNAKE_3, 3)
    assert check_solution(SNAKE_3, 3) == []
    assert check_solution(SNAKE_3, 3, dots) == []


def test_check_solution_reports_problems():
    path = [Cell(0, 0), Cell(0, 2), Cell(0, 2)]
    errors = check_solution(path, 3)

    assert any(e.startswith("Path length 3 != 9") for e in errors)
    assert any(e.startswith("Repeated cells") for e in errors)
    assert any(e.startswith("Not adjacent at step 1") for e in errors)
    assert any(e.startswith("Grid not fully covered") for e in errors)


def test_check_solution_reports_out_of_bounds():
    errors = check_solution([Cell(0, 0), Cell(0, 1), Cell(0, 2), Cell(0, 3)], 3)
    assert any("outside the grid: 0,3" in e for e in errors)


def test_validate_dot_order():
    dots = [Dot(1, Cell(0, 0)), Dot(2, Cell(0, 2)), Dot(3, Cell(2, 2))]

    assert validate_dot_order([Cell(0, 0), Cell(0, 1), Cell(0, 2)], dots)
    assert validate_dot_order([], dots)
    assert not validate_dot_order([Cell(0, 2), Cell(0, 1), Cell(0, 0)], dots)
    assert not validate_dot_order([Cell(0, 0), Cell(1, 0), Cell(2, 0), Cell(2, 1), Cell(2, 2)], dots)


def test_check_solution_with_wrong_end():
    dots = place_dots(SNAKE_3, 2)
    reversed_path = list(reversed(SNAKE_3))
    errors = check_solution(reversed_path, 3, dots)
    assert "Dots are not reached in ascending order" in errors


def test_split_segments():
    dots = place_dots(SNAKE_3, 3)
    segments = split_segments(SNAKE_3, dots)

    assert [(s.from_dot, s.to_dot) for s in segments] == [(1, 2), (2, 3)]
    assert segments[0].cells == tuple(SNAKE_3[:5])
    assert segments[1].cells == tuple(SNAKE_3[4:])


def test_split_segments_ignores_open_tail():
    dots = place_dots(SNAKE_3, 3)
    assert len(split_segments(SNAKE_3[:7], dots)) == 1
    assert split_segments(SNAKE_3[:3], dots) == []


def test_assert_valid_path():
    assert_valid_path(SNAKE_3[:4], 3)

    with pytest.raises(PathInvariantError):
        assert_valid_path([Cell(0, 0), Cell(0, 0)], 3)
    with pytest.raises(AssertionError):
        assert_valid_path([Cell(0, 0), Cell(1, 1)], 3)
    with pytest.raises(PathInvariantError):
        assert_valid_path([Cell(3, 0)], 3)
