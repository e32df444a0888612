from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

MIN_SIZE = 2


@dataclass(frozen=True)
class Point:
    # 1-based, same as terminal cursor addressing
    x: int
    y: int


Snake = List[Point]  # head first


class Direction(Enum):
    UP = "Up"
    DOWN = "Down"
    LEFT = "Left"
    RIGHT = "Right"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.name


class GameState(Enum):
    READY = "Ready"
    PLAYING = "Playing"
    LOST = "Lost"


class Cell:
    EMPTY = 0
    BORDER = 1


class Field:
    """Static layer of the playing area: a border ring around empty cells.

    Food and snakes are never stored here; they are drawn on top of it.
    """

    def __init__(self, grid: List[List[int]]) -> None:
        self.grid = grid

    @property
    def height(self) -> int:
        return len(self.grid)

    @property
    def width(self) -> int:
        return len(self.grid[0]) if self.grid else 0

    def cell(self, x: int, y: int) -> int:
        # grid is 0-based, points are 1-based
        return self.grid[y - 1][x - 1]


def build_field(width: int, height: int) -> Field:
    if width < MIN_SIZE or height < MIN_SIZE:
        raise ValueError(f"field must be at least {MIN_SIZE}x{MIN_SIZE}, got {width}x{height}")
    border_row = [Cell.BORDER] * width
    inner_row = [Cell.BORDER] + [Cell.EMPTY] * (width - 2) + [Cell.BORDER]
    grid = [list(border_row)]
    grid.extend(list(inner_row) for _ in range(height - 2))
    grid.append(list(border_row))
    return Field(grid)


@dataclass
class GameSession:
    id: int = 0
    direction: Direction = Direction.RIGHT
    food: Point = Point(0, 0)
    snakes: List[Snake] = field(default_factory=list)
    killed: bool = False

    def apply(self, id: int, food: Point, snakes: List[Snake]) -> None:
        self.id = id
        self.food = food
        self.snakes = [list(snake) for snake in snakes]
