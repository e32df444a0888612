import pytest

from termsnake.client import EndReason, Phase, TurnSynchronizer
from termsnake.input import InputPoller
from termsnake.net.protocol import TransportError
from termsnake.snake.game import Direction, Point
from termsnake.ui import (
    BORDER_GLYPH,
    FOOD_COLOR,
    FOOD_GLYPH,
    OPPONENT_COLOR,
    SELF_COLOR,
    SNAKE_GLYPH,
    Renderer,
    ScreenBuffer,
)

WAIT = {"event": "WaitInLobby"}
START = {"event": "Start"}
NEW_TURN = {"event": "NewTurn"}
PLAYING = {"state": "Playing"}
LOST = {"state": "Lost"}


def pt(x, y):
    return {"x": x, "y": y}


CONFIG = {
    "id": 0,
    "width": 5,
    "height": 5,
    "snakes": [[pt(2, 2)]],
    "food": pt(3, 3),
}


class FakeConnection:
    def __init__(self, *inbound):
        self.inbound = list(inbound)
        self.sent = []

    def recv(self):
        if not self.inbound:
            raise TransportError("socket closed")
        return self.inbound.pop(0)

    def send(self, payload):
        self.sent.append(payload)


class FakeSource:
    def __init__(self, *chunks):
        self.chunks = list(chunks)

    def read_available(self):
        return self.chunks.pop(0) if self.chunks else b""


def make_sync(inbound, keys=()):
    connection = FakeConnection(*inbound)
    screen = ScreenBuffer(60, 10)
    sync = TurnSynchronizer(connection, Renderer(screen), InputPoller(FakeSource(*keys)))
    return sync, connection, screen


def test_waits_then_start_enters_playing_once():
    sync, connection, _ = make_sync([WAIT, WAIT, WAIT, START, CONFIG])
    while sync.phase is Phase.LOBBY:
        sync.step()
    assert sync.phase is Phase.PLAYING
    assert connection.sent == [{"force_start": False}] * 3
    assert connection.inbound == []


def test_enter_in_lobby_votes_for_force_start():
    sync, connection, _ = make_sync([WAIT, WAIT, WAIT, START, CONFIG], keys=[b"", b"\r", b"x"])
    while sync.phase is Phase.LOBBY:
        sync.step()
    assert [msg["force_start"] for msg in connection.sent] == [False, True, False]


@pytest.mark.parametrize("event", [NEW_TURN, {"event": "Bogus"}])
def test_unexpected_lobby_event_terminates(event):
    sync, connection, _ = make_sync([WAIT, event])
    assert sync.run() is EndReason.PROTOCOL_ERROR
    assert sync.phase is Phase.TERMINATED
    assert connection.sent == [{"force_start": False}]


def test_initial_draw():
    sync, _, screen = make_sync([START, CONFIG])
    sync.step()
    assert screen.glyph_at(3, 3) == FOOD_GLYPH
    assert screen.color_at(3, 3) == FOOD_COLOR
    assert screen.glyph_at(2, 2) == SNAKE_GLYPH
    assert screen.color_at(2, 2) == SELF_COLOR
    for n in range(1, 6):
        for x, y in ((n, 1), (n, 5), (1, n), (5, n)):
            assert screen.glyph_at(x, y) == BORDER_GLYPH
    assert sync.session.snakes == [[Point(2, 2)]]
    assert sync.field.width == 5


def test_quit_before_transmission():
    sync, connection, _ = make_sync([START, CONFIG, NEW_TURN], keys=[b"\x1b[Aq"])
    assert sync.run() is EndReason.QUIT
    assert sync.session.killed
    assert connection.sent == []


def test_lost_after_turn_update():
    turn = {"id": 0, "food": pt(3, 3), "snakes": [[pt(3, 2), pt(2, 2)]]}
    sync, connection, screen = make_sync([START, CONFIG, NEW_TURN, turn, LOST])
    assert sync.run() is EndReason.LOST
    assert connection.sent == [{"direction": "Right"}]
    assert screen.row(6).startswith("You lose")


def test_turn_erases_old_state_before_drawing_new():
    config = dict(CONFIG, snakes=[[pt(2, 2)], [pt(4, 4)]])
    turn = {"id": 0, "food": pt(2, 4), "snakes": [[pt(3, 2), pt(2, 2)], [pt(4, 3)]]}
    sync, connection, screen = make_sync(
        [START, config, NEW_TURN, turn, PLAYING], keys=[b"\x1b[A\x1b[D"]
    )
    sync.step()
    sync.step()

    assert sync.phase is Phase.PLAYING
    assert connection.sent == [{"direction": "Left"}]
    assert sync.session.direction is Direction.LEFT
    assert screen.glyph_at(4, 4) == " "
    assert screen.glyph_at(3, 3) == " "
    assert screen.glyph_at(2, 4) == FOOD_GLYPH
    assert screen.glyph_at(2, 2) == SNAKE_GLYPH
    assert screen.color_at(3, 2) == SELF_COLOR
    assert screen.glyph_at(4, 3) == SNAKE_GLYPH
    assert screen.color_at(4, 3) == OPPONENT_COLOR


def test_direction_sent_every_turn_even_if_unchanged():
    turn = {"id": 0, "food": pt(3, 3), "snakes": [[pt(2, 2)]]}
    sync, connection, _ = make_sync(
        [START, CONFIG, NEW_TURN, turn, PLAYING, NEW_TURN, turn, PLAYING, NEW_TURN, turn, LOST],
        keys=[b"\x1b[B"],
    )
    assert sync.run() is EndReason.LOST
    assert connection.sent == [{"direction": "Down"}] * 3


def test_non_turn_event_while_playing_terminates():
    sync, connection, _ = make_sync([START, CONFIG, START])
    assert sync.run() is EndReason.PROTOCOL_ERROR
    assert connection.sent == []


def test_terminated_is_absorbing():
    sync, connection, _ = make_sync([START, CONFIG, NEW_TURN], keys=[b"q"])
    sync.run()
    connection.inbound.append(NEW_TURN)
    sync.step()
    assert sync.phase is Phase.TERMINATED
    assert connection.inbound == [NEW_TURN]
    assert connection.sent == []


def test_transport_error_propagates():
    sync, _, _ = make_sync([START])
    with pytest.raises(TransportError):
        sync.run()
