"""
Dot Trace - Grid Primitives

Cell, Dot and Segment value types shared by the generator, the validator
and the game state machine.
"""

from typing import NamedTuple, Tuple


# ============================================
# CELL
# ============================================

class Cell(NamedTuple):
    """One grid position. Hashable, compares by value."""
    row: int
    col: int

    @property
    def key(self) -> str:
        """Canonical text key, e.g. "2,3"."""
        return f"{self.row},{self.col}"

    @classmethod
    def parse(cls, key: str) -> "Cell":
        """Parses a "row,col" key."""
        parts = key.split(",")
        if len(parts) != 2:
            raise ValueError(f"Invalid cell key: {key!r}")
        try:
            return cls(int(parts[0]), int(parts[1]))
        except ValueError as exc:
            raise ValueError(f"Invalid cell key: {key!r}") from exc

    def transposed(self) -> "Cell":
        return Cell(self.col, self.row)

    def __str__(self) -> str:
        return self.key


class Dot(NamedTuple):
    """Numbered checkpoint: order index 1..K on a cell."""
    index: int
    cell: Cell


class Segment(NamedTuple):
    """Path cells between two consecutive dots (both ends included)."""
    from_dot: int
    to_dot: int
    cells: Tuple[Cell, ...]


# ============================================
# HELPERS
# ============================================

def manhattan_distance(a: Cell, b: Cell) -> int:
    return abs(a.row - b.row) + abs(a.col - b.col)


def in_bounds(cell: Cell, grid_size: int) -> bool:
    """Checks that the cell lies inside the grid."""
    return 0 <= cell.row < grid_size and 0 <= cell.col < grid_size
