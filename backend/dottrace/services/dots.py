"""
Dot Trace - Dot Placement

Picks evenly spaced solution positions as numbered checkpoints.
"""

from typing import List, Sequence

from .grid import Cell, Dot


def dot_positions(path_length: int, dot_count: int) -> List[int]:
    """
    Path indices of the dots: round(i * (L-1) / (K-1)), halves rounded up.

    Strictly increasing for 2 <= K <= L, first is 0, last is L-1.
    """
    if dot_count < 2:
        raise ValueError(f"dot_count must be at least 2, got {dot_count}")
    if dot_count > path_length:
        raise ValueError(f"dot_count {dot_count} exceeds path length {path_length}")

    span = path_length - 1
    steps = dot_count - 1
    return [(i * span + steps // 2) // steps for i in range(dot_count)]


def place_dots(solution: Sequence[Cell], dot_count: int) -> List[Dot]:
    """Dot 1 on the first solution cell, dot K on the last one."""
    return [
        Dot(index=i + 1, cell=solution[pos])
        for i, pos in enumerate(dot_positions(len(solution), dot_count))
    ]
