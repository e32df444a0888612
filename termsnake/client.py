from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from .input import InputPoller, interpret_play_key, wants_force_start
from .net.protocol import (
    LobbyEvent,
    ProtocolError,
    decode_configuration,
    decode_lobby_event,
    decode_state,
    decode_turn,
    decode_turn_event,
    direction_message,
    force_start_message,
)
from .snake.game import Field, GameSession, GameState, build_field
from .ui import BLANK_GLYPH, Renderer

logger = logging.getLogger(__name__)

LOBBY_HINT = "Press ENTER to start game with less than 4 players"


class Phase(Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    TERMINATED = "terminated"


class EndReason(Enum):
    QUIT = "quit"
    LOST = "lost"
    PROTOCOL_ERROR = "protocol error"


class Transport(Protocol):
    def send(self, payload: Dict[str, Any]) -> None: ...

    def recv(self) -> Dict[str, Any]: ...


class TurnSynchronizer:
    """Drives one game session from the lobby to its end, in lock-step with the server.

    Every server read is a synchronization point: nothing is simulated
    locally between them, so the screen only ever shows the state the server
    reported. Within a turn the old snakes are erased before anything new is
    drawn, which is what keeps overlapping cells from being blanked.
    """

    def __init__(
        self,
        connection: Transport,
        renderer: Renderer,
        poller: InputPoller,
        session: Optional[GameSession] = None,
    ) -> None:
        self.connection = connection
        self.renderer = renderer
        self.poller = poller
        self.session = session if session is not None else GameSession()
        self.field: Optional[Field] = None
        self.phase = Phase.LOBBY
        self.end_reason: Optional[EndReason] = None

    def run(self) -> EndReason:
        logger.info("Entering Lobby")
        self.renderer.announce(LOBBY_HINT)
        while self.phase is not Phase.TERMINATED:
            self.step()
        assert self.end_reason is not None
        return self.end_reason

    def step(self) -> None:
        try:
            if self.phase is Phase.LOBBY:
                self._lobby_step()
            elif self.phase is Phase.PLAYING:
                self._turn()
        except ProtocolError as exc:
            logger.error("Protocol error: %s", exc)
            self._terminate(EndReason.PROTOCOL_ERROR)

    def _terminate(self, reason: EndReason) -> None:
        self.phase = Phase.TERMINATED
        self.end_reason = reason

    def _lobby_step(self) -> None:
        event = decode_lobby_event(self.connection.recv())
        if event is LobbyEvent.START:
            self._start()
            return
        # a vote goes out for every wait, even a 'no'
        vote = wants_force_start(self.poller.poll_latest())
        if vote:
            logger.info("Requesting force start")
        self.connection.send(force_start_message(vote))

    def _start(self) -> None:
        logger.info("Starting game")
        config = decode_configuration(self.connection.recv())
        logger.info(
            "Received game configuration: id=%s size=%sx%s snakes=%s",
            config.id, config.width, config.height, len(config.snakes),
        )
        self.field = build_field(config.width, config.height)
        self.session.apply(config.id, config.food, config.snakes)
        logger.info("Initializing game")
        self.renderer.draw_field(self.field)
        self.renderer.draw_food(self.session.food)
        self.renderer.draw_all_snakes(self.session.snakes, self.session.id)
        self.phase = Phase.PLAYING

    def _turn(self) -> None:
        session = self.session
        decode_turn_event(self.connection.recv())

        direction, quit_requested = interpret_play_key(self.poller.poll_latest())
        if direction is not None:
            session.direction = direction
        if quit_requested:
            session.killed = True
        if session.killed:
            logger.info("Player quit")
            self._terminate(EndReason.QUIT)
            return

        logger.info("Current direction: %s", session.direction)
        self.connection.send(direction_message(session.direction))
        logger.info("Sent user direction to the server")

        turn = decode_turn(self.connection.recv())
        logger.info("Received next turn data: id=%s food=%s", turn.id, turn.food)

        self.renderer.clear_all_snakes(session.snakes)
        if turn.food != session.food:
            self.renderer.draw_food(session.food, BLANK_GLYPH)
        session.apply(turn.id, turn.food, turn.snakes)
        self.renderer.draw_food(session.food)
        self.renderer.draw_all_snakes(session.snakes, session.id)

        state = decode_state(self.connection.recv())
        logger.info("Received game state: %s", state.value)
        if state is GameState.LOST:
            self.renderer.announce("You lose")
            logger.info("You lose")
            self._terminate(EndReason.LOST)
