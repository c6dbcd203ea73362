"""
Dot Trace - Stage Grading

Time limit per stage and the performance grade of a finished stage.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

from ..config import settings


GRADE_BANDS = (
    (95, "Perfect", "Flawless execution! You are a true master!"),
    (85, "Excellent", "Outstanding performance! Almost perfect!"),
    (70, "Good", "Well done! You solved it efficiently!"),
    (50, "Fair", "Nice work! Room for improvement!"),
    (0, "Poor", "Keep practicing! You can do better!"),
)


@dataclass(frozen=True)
class StageGrade:
    grade: str
    score: int
    time_limit: int
    time_bonus: int
    efficiency_bonus: int
    efficiency: float
    accuracy: float
    message: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "grade": self.grade,
            "score": self.score,
            "time_limit": self.time_limit,
            "time_bonus": self.time_bonus,
            "efficiency_bonus": self.efficiency_bonus,
            "efficiency": round(self.efficiency, 2),
            "accuracy": round(self.accuracy, 2),
            "message": self.message,
        }


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_time_limit(
    order: int,
    base: Optional[int] = None,
    scaling: Optional[float] = None,
    minimum: Optional[int] = None,
) -> int:
    """Seconds allowed for a stage; shrinks with every stage down to a floor."""
    base = settings.BASE_TIME_LIMIT if base is None else base
    scaling = settings.TIME_PRESSURE_SCALING if scaling is None else scaling
    minimum = settings.MIN_TIME_LIMIT if minimum is None else minimum
    return max(minimum, math.floor(base * scaling ** (order - 1)))


def grade_stage(
    order: int,
    move_count: int,
    optimal_moves: int,
    elapsed_seconds: float,
    accuracy: float = 100.0,
) -> StageGrade:
    """
    Composite score out of 100.

    Time 40 pts, move efficiency 30 pts, accuracy 30 pts, then a bonus for
    finishing in under half the limit and for near-optimal move counts.
    """
    time_limit = calculate_time_limit(order)
    time_ratio = 1 - elapsed_seconds / time_limit
    if move_count > 0:
        efficiency = min(100.0, optimal_moves / move_count * 100)
    else:
        efficiency = 100.0
    accuracy = max(0.0, min(100.0, accuracy))

    time_score = max(0.0, time_ratio * 40)
    efficiency_score = efficiency / 100 * 30
    accuracy_score = accuracy / 100 * 30
    total = _round_half_up(time_score + efficiency_score + accuracy_score)

    time_bonus = _round_half_up((time_ratio - 0.5) * 20) if time_ratio > 0.5 else 0
    if efficiency >= 95:
        efficiency_bonus = 10
    elif efficiency >= 90:
        efficiency_bonus = 5
    else:
        efficiency_bonus = 0

    score = min(100, total + time_bonus + efficiency_bonus)

    for threshold, grade, message in GRADE_BANDS:
        if score >= threshold:
            break

    return StageGrade(
        grade=grade,
        score=score,
        time_limit=time_limit,
        time_bonus=time_bonus,
        efficiency_bonus=efficiency_bonus,
        efficiency=efficiency,
        accuracy=accuracy,
        message=message,
    )
