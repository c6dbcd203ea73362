"""
Dot Trace - Stage Catalog

Twelve stages, easy to hard, one pattern each.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .patterns import MAX_GRID_SIZE, MIN_GRID_SIZE, PatternType, normalize_pattern_type


@dataclass(frozen=True)
class StageConfig:
    grid_size: int
    pattern_type: PatternType
    order: int
    dot_count: int
    description: str = ""

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "pattern_type", normalize_pattern_type(self.pattern_type))
        if not MIN_GRID_SIZE <= self.grid_size <= MAX_GRID_SIZE:
            raise ValueError(
                f"grid_size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}, got {self.grid_size}"
            )
        if not 2 <= self.dot_count <= self.grid_size * self.grid_size:
            raise ValueError(f"dot_count {self.dot_count} is invalid for a {self.grid_size}x{self.grid_size} grid")
        if self.order < 1:
            raise ValueError(f"order must be positive, got {self.order}")

    @property
    def total_cells(self) -> int:
        return self.grid_size * self.grid_size


STAGE_CATALOG: Tuple[StageConfig, ...] = (
    StageConfig(5, PatternType.SNAKE, 1, 4, "Snake: 4 dots, 5×5 grid"),
    StageConfig(5, PatternType.SPIRAL, 2, 5, "Spiral: 5 dots, 5×5 grid"),
    StageConfig(6, PatternType.ZIGZAG, 3, 5, "Zigzag: 5 dots, 6×6 grid"),
    StageConfig(6, PatternType.LSHAPE, 4, 6, "L-Shape: 6 dots, 6×6 grid"),
    StageConfig(6, PatternType.DIAMOND, 5, 7, "Diamond: 7 dots, 6×6 grid"),
    StageConfig(7, PatternType.CROSS, 6, 6, "Cross: 6 dots, 7×7 grid"),
    StageConfig(7, PatternType.WAVE, 7, 7, "Wave: 7 dots, 7×7 grid"),
    StageConfig(7, PatternType.UTURN, 8, 8, "U-Turn: 8 dots, 7×7 grid"),
    StageConfig(8, PatternType.COMPLEX, 9, 7, "Complex: 7 dots, 8×8 grid"),
    StageConfig(8, PatternType.FRACTAL, 10, 8, "Fractal: 8 dots, 8×8 grid"),
    StageConfig(8, PatternType.LABYRINTH, 11, 9, "Labyrinth: 9 dots, 8×8 grid"),
    StageConfig(9, PatternType.MAZE, 12, 9, "Master: 9 dots, 9×9 grid"),
)


def get_stage(order: int) -> StageConfig:
    """Stage by its 1-based order."""
    if not 1 <= order <= len(STAGE_CATALOG):
        raise KeyError(f"Stage {order} not found")
    return STAGE_CATALOG[order - 1]


def next_stage(config: StageConfig, catalog: Sequence[StageConfig] = STAGE_CATALOG) -> Optional[StageConfig]:
    """
    The stage that follows `config` in `catalog`, None after the final one.

    A custom stage continues with the first catalog stage ordered after it.
    """
    if config in catalog:
        position = list(catalog).index(config)
        return catalog[position + 1] if position + 1 < len(catalog) else None
    for candidate in catalog:
        if candidate.order > config.order:
            return candidate
    return None


def list_stages() -> List[StageConfig]:
    return list(STAGE_CATALOG)
