"""Keyboard input: key parsing, non-blocking polling and its two readings.

The poller hands back only the most recent key typed since the last poll.
Keys pressed earlier in the same frame are dropped on purpose so that input
never piles up behind the server's turn rate.
"""

from __future__ import annotations

import contextlib
import os
import select
import termios
import tty
from typing import Iterator, Optional, Protocol, Tuple

from .snake.game import Direction

ESC = 0x1B

KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_ENTER = "enter"
KEY_ESC = "esc"
KEY_UNKNOWN = "unknown"

QUIT_KEYS = ("q", "ctrl+c")

DIRECTION_KEYS = {
    KEY_UP: Direction.UP,
    KEY_DOWN: Direction.DOWN,
    KEY_LEFT: Direction.LEFT,
    KEY_RIGHT: Direction.RIGHT,
}

_CSI_FINAL = {
    "A": KEY_UP,
    "B": KEY_DOWN,
    "C": KEY_RIGHT,
    "D": KEY_LEFT,
    "H": "home",
    "F": "end",
    "Z": "backtab",
}
_CSI_TILDE = {
    "1": "home",
    "2": "insert",
    "3": "delete",
    "4": "end",
    "5": "pageup",
    "6": "pagedown",
    "7": "home",
    "8": "end",
}
_SS3_FINAL = {"P": "f1", "Q": "f2", "R": "f3", "S": "f4"}


class MalformedSequence(ValueError):
    def __init__(self, message: str, end: int) -> None:
        super().__init__(message)
        self.end = end  # resume parsing here


def _utf8_length(lead: int) -> int:
    if lead < 0x80:
        return 1
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    raise ValueError(f"bad UTF-8 lead byte {lead:#x}")


def _parse_char(data: bytes, pos: int) -> Tuple[str, int]:
    try:
        size = _utf8_length(data[pos])
    except ValueError as exc:
        raise MalformedSequence(str(exc), pos + 1) from exc
    end = pos + size
    if end > len(data):
        raise MalformedSequence("truncated UTF-8 character", len(data))
    try:
        return data[pos:end].decode("utf-8"), end
    except UnicodeDecodeError as exc:
        raise MalformedSequence(str(exc), pos + 1) from exc


def _parse_csi(data: bytes, pos: int) -> Tuple[str, int]:
    # pos is just past 'ESC ['
    start = pos
    while pos < len(data) and 0x30 <= data[pos] <= 0x3F:
        pos += 1
    params = data[start:pos].decode("ascii")
    while pos < len(data) and 0x20 <= data[pos] <= 0x2F:
        pos += 1
    if pos >= len(data) or not 0x40 <= data[pos] <= 0x7E:
        raise MalformedSequence("unterminated CSI sequence", pos)
    final = chr(data[pos])
    pos += 1
    if final == "~":
        return _CSI_TILDE.get(params, KEY_UNKNOWN), pos
    if final in _CSI_FINAL and params in ("", "1"):
        return _CSI_FINAL[final], pos
    return KEY_UNKNOWN, pos


def _parse_escape(data: bytes, pos: int) -> Tuple[str, int]:
    # pos is just past ESC
    if pos >= len(data):
        return KEY_ESC, pos
    nxt = data[pos]
    if nxt == ord("["):
        return _parse_csi(data, pos + 1)
    if nxt == ord("O"):
        if pos + 1 >= len(data):
            raise MalformedSequence("truncated SS3 sequence", len(data))
        return _SS3_FINAL.get(chr(data[pos + 1]), KEY_UNKNOWN), pos + 2
    if nxt == ESC:
        return KEY_ESC, pos
    char, end = _parse_char(data, pos)
    return "alt+" + char, end


def _parse_one(data: bytes, pos: int) -> Tuple[str, int]:
    byte = data[pos]
    if byte == ESC:
        return _parse_escape(data, pos + 1)
    if byte in (0x0A, 0x0D):
        return KEY_ENTER, pos + 1
    if byte == 0x09:
        return "tab", pos + 1
    if byte == 0x7F:
        return "backspace", pos + 1
    if byte == 0x00:
        return "ctrl+space", pos + 1
    if 0x01 <= byte <= 0x1A:
        return "ctrl+" + chr(byte + 0x60), pos + 1
    if 0x1C <= byte <= 0x1F:
        return "ctrl+" + chr(byte - 0x1C + ord("4")), pos + 1
    return _parse_char(data, pos)


def parse_keys(data: bytes) -> Iterator[str]:
    """Yield every key found in ``data``, skipping bytes that do not parse."""
    pos = 0
    while pos < len(data):
        try:
            key, pos = _parse_one(data, pos)
        except MalformedSequence as exc:
            pos = max(exc.end, pos + 1)
            continue
        yield key


class InputSource(Protocol):
    def read_available(self) -> bytes:
        ...


class InputPoller:
    def __init__(self, source: InputSource) -> None:
        self.source = source

    def poll_latest(self) -> Optional[str]:
        """Drain pending input without blocking and return the last key, if any."""
        latest = None
        for key in parse_keys(self.source.read_available()):
            latest = key
        return latest


def wants_force_start(key: Optional[str]) -> bool:
    return key == KEY_ENTER


def interpret_play_key(key: Optional[str]) -> Tuple[Optional[Direction], bool]:
    # (new direction or None, quit requested)
    if key in QUIT_KEYS:
        return None, True
    return DIRECTION_KEYS.get(key), False


class TerminalInput:
    """Non-blocking reader over a terminal file descriptor."""

    def __init__(self, fd: int, chunk_size: int = 1024) -> None:
        self.fd = fd
        self.chunk_size = chunk_size

    def read_available(self) -> bytes:
        chunks = []
        while select.select([self.fd], [], [], 0)[0]:
            chunk = os.read(self.fd, self.chunk_size)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


@contextlib.contextmanager
def raw_terminal(fd: int) -> Iterator[None]:
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
