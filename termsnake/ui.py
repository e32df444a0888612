from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, TextIO, Tuple

from .snake.game import Cell, Field, Point, Snake

RESET = "\033[39m"
CLEAR = "\033[2J"
RED = "red"
YELLOW = "yellow"
BLUE = "blue"

_ANSI_FG = {
    RED: "\033[31m",
    YELLOW: "\033[33m",
    BLUE: "\033[34m",
}

BORDER_GLYPH = "#"
EMPTY_GLYPH = " "
FOOD_GLYPH = "Ծ"
SNAKE_GLYPH = "o"
BLANK_GLYPH = " "

FIELD_COLOR = BLUE
FOOD_COLOR = RED
SELF_COLOR = RED
OPPONENT_COLOR = YELLOW

_CELL_GLYPH = {
    Cell.BORDER: BORDER_GLYPH,
    Cell.EMPTY: EMPTY_GLYPH,
}


class Display(Protocol):
    def clear(self) -> None: ...

    def goto(self, x: int, y: int) -> None: ...

    def set_color(self, color: str) -> None: ...

    def reset_color(self) -> None: ...

    def write(self, text: str) -> None: ...

    def flush(self) -> None: ...


class TerminalDisplay:
    """ANSI escape sequences written to a text stream (usually stdout in raw mode)."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def clear(self) -> None:
        self.stream.write(CLEAR)

    def goto(self, x: int, y: int) -> None:
        self.stream.write(f"\033[{y};{x}H")

    def set_color(self, color: str) -> None:
        self.stream.write(_ANSI_FG[color])

    def reset_color(self) -> None:
        self.stream.write(RESET)

    def write(self, text: str) -> None:
        self.stream.write(text)

    def flush(self) -> None:
        self.stream.flush()


class ScreenBuffer:
    """In-memory character display.

    Keeps one ``(glyph, color)`` pair per cell, addressed 1-based like a
    terminal. Writes outside the buffer are dropped. ``flushed`` tells
    whether anything was written since the last ``flush``.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.cells: List[List[Tuple[str, Optional[str]]]] = []
        self.cursor = (1, 1)
        self.color: Optional[str] = None
        self.flushed = True
        self.clear()

    def clear(self) -> None:
        self.cells = [[(" ", None)] * self.width for _ in range(self.height)]
        self.flushed = False

    def goto(self, x: int, y: int) -> None:
        # a terminal treats 0 as 1
        self.cursor = (max(x, 1), max(y, 1))

    def set_color(self, color: str) -> None:
        self.color = color

    def reset_color(self) -> None:
        self.color = None

    def write(self, text: str) -> None:
        x, y = self.cursor
        for ch in text:
            if ch == "\r":
                x = 1
                continue
            if ch == "\n":
                y += 1
                continue
            if 1 <= x <= self.width and 1 <= y <= self.height:
                self.cells[y - 1][x - 1] = (ch, self.color)
            x += 1
        self.cursor = (x, y)
        self.flushed = False

    def flush(self) -> None:
        self.flushed = True

    def glyph_at(self, x: int, y: int) -> str:
        return self.cells[y - 1][x - 1][0]

    def color_at(self, x: int, y: int) -> Optional[str]:
        return self.cells[y - 1][x - 1][1]

    def row(self, y: int) -> str:
        return "".join(glyph for glyph, _ in self.cells[y - 1])


class Renderer:
    """Draws the field, food and snakes onto a display with cursor-addressed writes.

    Every call leaves the display flushed and the cursor parked one row below
    the field, so plain text written afterwards never lands on the game area.
    """

    def __init__(self, display: Display) -> None:
        self.display = display
        self.park = Point(0, 1)

    def _park(self) -> None:
        self.display.goto(self.park.x, self.park.y)

    def draw_field(self, field: Field) -> None:
        d = self.display
        d.clear()
        d.goto(1, 1)
        d.set_color(FIELD_COLOR)
        for index, row in enumerate(field.grid):
            d.write("".join(_CELL_GLYPH[cell] for cell in row))
            d.goto(1, index + 2)
        d.reset_color()
        self.park = Point(0, field.height + 1)
        self._park()
        d.flush()

    def draw_food(self, point: Point, glyph: str = FOOD_GLYPH) -> None:
        d = self.display
        d.goto(point.x, point.y)
        d.set_color(FOOD_COLOR)
        d.write(glyph)
        d.reset_color()
        self._park()
        d.flush()

    def draw_snake(self, body: Iterable[Point], is_self: bool, glyph: str = SNAKE_GLYPH) -> None:
        # drawing with BLANK_GLYPH erases the snake
        d = self.display
        d.set_color(SELF_COLOR if is_self else OPPONENT_COLOR)
        for point in body:
            d.goto(point.x, point.y)
            d.write(glyph)
        self._park()
        d.reset_color()
        d.flush()

    def draw_all_snakes(self, snakes: List[Snake], self_id: int, glyph: str = SNAKE_GLYPH) -> None:
        for snake_id, snake in enumerate(snakes):
            self.draw_snake(snake, snake_id == self_id, glyph)

    def clear_all_snakes(self, snakes: List[Snake]) -> None:
        for snake in snakes:
            self.draw_snake(snake, False, BLANK_GLYPH)

    def announce(self, text: str) -> None:
        # raw mode: no implicit carriage return on newline
        self.display.write(text + "\r\n")
        self.display.flush()
