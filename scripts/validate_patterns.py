#!/usr/bin/env python3
from __future__ import annotations

import argparse
from typing import Sequence

from dottrace.services.dots import place_dots
from dottrace.services.errors import PatternGenerationError
from dottrace.services.grid import Cell
from dottrace.services.patterns import (
    MAX_GRID_SIZE,
    MIN_GRID_SIZE,
    PatternType,
    generate,
    normalize_pattern_type,
    pattern_metrics,
)
from dottrace.services.stages import STAGE_CATALOG
from dottrace.services.validator import check_solution


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check every pattern generator for validity and uniqueness."
    )
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=list(range(MIN_GRID_SIZE, MAX_GRID_SIZE + 1)),
        help="Grid sizes to check (default: all supported sizes).",
    )
    parser.add_argument(
        "--patterns",
        nargs="+",
        default=[pattern.value for pattern in PatternType],
        help="Pattern identifiers to check (default: all).",
    )
    parser.add_argument(
        "--stages",
        action="store_true",
        help="Also check the stage catalog with its dots.",
    )
    parser.add_argument(
        "--show",
        metavar="PATTERN:SIZE",
        help="Print the visiting order of one pattern as a grid and exit.",
    )
    return parser.parse_args(argv)


def render_order(path: list[Cell], grid_size: int) -> str:
    order = {cell: i + 1 for i, cell in enumerate(path)}
    width = len(str(grid_size * grid_size))
    lines = []
    for row in range(grid_size):
        lines.append(" ".join(str(order[Cell(row, col)]).rjust(width) for col in range(grid_size)))
    return "\n".join(lines)


def show_pattern(target: str) -> int:
    try:
        raw_pattern, raw_size = target.split(":")
        pattern = normalize_pattern_type(raw_pattern)
        size = int(raw_size)
    except ValueError as exc:
        raise SystemExit(f"Invalid --show value {target!r}: {exc}")

    try:
        path = generate(size, pattern)
    except PatternGenerationError as exc:
        print(f"FAIL {exc}")
        return 1

    metrics = pattern_metrics(path)
    print(f"{pattern.value} {size}x{size}: {metrics.turn_count} turns, complexity {metrics.complexity}")
    print(render_order(path, size))
    return 0


def check_patterns(sizes: Sequence[int], patterns: Sequence[PatternType]) -> int:
    issues = 0

    for size in sizes:
        generated: dict[PatternType, tuple[Cell, ...]] = {}
        for pattern in patterns:
            try:
                generated[pattern] = tuple(generate(size, pattern))
            except PatternGenerationError as exc:
                issues += 1
                print(f"FAIL {exc}")

        snake = tuple(generate(size, PatternType.SNAKE)) if MIN_GRID_SIZE <= size <= MAX_GRID_SIZE else None
        seen: dict[tuple[Cell, ...], PatternType] = {}
        for pattern, path in generated.items():
            if pattern != PatternType.SNAKE and path == snake:
                issues += 1
                print(f"FAIL {pattern.value} {size}x{size}: identical to snake")
            duplicate_of = seen.get(path)
            if duplicate_of is not None:
                print(f"note {pattern.value} {size}x{size}: same path as {duplicate_of.value}")
            seen.setdefault(path, pattern)

        print(f"{size}x{size}: {len(generated)}/{len(patterns)} valid, {len(seen)} distinct")

    return issues


def check_stages() -> int:
    issues = 0
    for stage in STAGE_CATALOG:
        solution = generate(stage.grid_size, stage.pattern_type)
        dots = place_dots(solution, stage.dot_count)
        errors = check_solution(solution, stage.grid_size, dots)
        status = "ok" if not errors else "FAIL " + "; ".join(errors)
        issues += bool(errors)
        print(f"stage {stage.order:2d} {stage.pattern_type.value:<10} {stage.grid_size}x{stage.grid_size} {stage.dot_count} dots: {status}")
    return issues


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)

    if args.show:
        return show_pattern(args.show)

    try:
        patterns = [normalize_pattern_type(value) for value in args.patterns]
    except ValueError as exc:
        raise SystemExit(str(exc))

    issues = check_patterns(args.sizes, patterns)
    if args.stages:
        issues += check_stages()

    print(f"Checked {len(patterns)} pattern(s) over {len(args.sizes)} size(s), {issues} issue(s).")
    return 1 if issues else 0


if __name__ == "__main__":
    raise SystemExit(main())
