from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from ..snake.game import MIN_SIZE, Direction, GameState, Point, Snake

# Messages are JSON objects, one per line.
# Server -> client:
# - event: { event: 'WaitInLobby'|'Start'|'NewTurn' }
# - config: { id: int, width: int, height: int, snakes: [[{x, y}, ...], ...], food: {x, y} }
# - turn: { id: int, food: {x, y}, snakes: [[{x, y}, ...], ...] }
# - state: { state: 'Ready'|'Playing'|'Lost' }
# Client -> server:
# - force start vote (lobby, once per 'WaitInLobby'): { force_start: bool }
# - direction (once per 'NewTurn'): { direction: 'Up'|'Down'|'Left'|'Right'|'Unknown' }


class ProtocolError(RuntimeError):
    """The server sent a message the protocol does not allow at this point."""


class TransportError(ConnectionError):
    """The connection broke or a payload could not be decoded."""


class LobbyEvent(Enum):
    WAIT = "WaitInLobby"
    START = "Start"


class TurnEvent(Enum):
    NEW_TURN = "NewTurn"


@dataclass
class Configuration:
    id: int
    width: int
    height: int
    snakes: List[Snake]
    food: Point


@dataclass
class TurnUpdate:
    id: int
    food: Point
    snakes: List[Snake]


def _field(msg: Dict[str, Any], name: str, kind: type) -> Any:
    if name not in msg:
        raise TransportError(f"missing '{name}' in {msg!r}")
    value = msg[name]
    # bool is an int subclass, never accept it as a number
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise TransportError(f"bad '{name}' in {msg!r}")
    return value


def _point(raw: Any) -> Point:
    if not isinstance(raw, dict):
        raise TransportError(f"bad point {raw!r}")
    return Point(_field(raw, "x", int), _field(raw, "y", int))


def _snakes(raw: Any) -> List[Snake]:
    if not isinstance(raw, list) or not all(isinstance(s, list) for s in raw):
        raise TransportError(f"bad snakes {raw!r}")
    return [[_point(p) for p in snake] for snake in raw]


def _tag(msg: Dict[str, Any], name: str) -> str:
    if name not in msg:
        raise TransportError(f"missing '{name}' in {msg!r}")
    tag = msg[name]
    if not isinstance(tag, str):
        raise ProtocolError(f"unknown {name} {tag!r}")
    return tag


def decode_lobby_event(msg: Dict[str, Any]) -> LobbyEvent:
    tag = _tag(msg, "event")
    try:
        return LobbyEvent(tag)
    except ValueError:
        raise ProtocolError(f"unexpected event in lobby: {tag!r}") from None


def decode_turn_event(msg: Dict[str, Any]) -> TurnEvent:
    tag = _tag(msg, "event")
    try:
        return TurnEvent(tag)
    except ValueError:
        raise ProtocolError(f"expected NewTurn, got {tag!r}") from None


def decode_state(msg: Dict[str, Any]) -> GameState:
    tag = _tag(msg, "state")
    try:
        return GameState(tag)
    except ValueError:
        raise ProtocolError(f"unknown game state {tag!r}") from None


def decode_configuration(msg: Dict[str, Any]) -> Configuration:
    config = Configuration(
        id=_field(msg, "id", int),
        width=_field(msg, "width", int),
        height=_field(msg, "height", int),
        snakes=_snakes(msg.get("snakes")),
        food=_point(msg.get("food")),
    )
    if config.width < MIN_SIZE or config.height < MIN_SIZE:
        raise TransportError(f"field too small: {config.width}x{config.height}")
    if not 0 <= config.id < len(config.snakes):
        raise TransportError(f"id {config.id} has no snake")
    return config


def decode_turn(msg: Dict[str, Any]) -> TurnUpdate:
    return TurnUpdate(
        id=_field(msg, "id", int),
        food=_point(msg.get("food")),
        snakes=_snakes(msg.get("snakes")),
    )


def force_start_message(vote: bool) -> Dict[str, Any]:
    return {"force_start": bool(vote)}


def direction_message(direction: Direction) -> Dict[str, Any]:
    return {"direction": direction.value}
