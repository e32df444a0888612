import argparse
import logging
import sys

from .client import EndReason, TurnSynchronizer
from .input import InputPoller, TerminalInput, raw_terminal
from .net.net import open_client
from .net.protocol import TransportError
from .ui import Renderer, TerminalDisplay

DEFAULT_ADDRESS = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_LOG_FILE = "log"

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="termsnake - multiplayer snake in the terminal")
    parser.add_argument("--address", type=str, default=DEFAULT_ADDRESS, help="Server IP or address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="TCP port to connect")
    parser.add_argument("--log-file", type=str, default=DEFAULT_LOG_FILE, help="Log file, truncated on start")
    parser.add_argument("--verbose", action="store_true", help="Also log raw protocol messages")
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool = False) -> None:
    logging.basicConfig(
        filename=log_file,
        filemode="w",
        format="[%(asctime)s] %(message)s",
        datefmt="%H:%M:%S",
        level=logging.DEBUG if verbose else logging.INFO,
    )
    # a broken log file must never stop the game
    logging.raiseExceptions = False


def play(address: str, port: int) -> EndReason:
    connection = open_client(address, port)
    logger.info("Connection initialized successfully")
    try:
        fd = sys.stdin.fileno()
        with raw_terminal(fd):
            renderer = Renderer(TerminalDisplay(sys.stdout))
            poller = InputPoller(TerminalInput(fd))
            return TurnSynchronizer(connection, renderer, poller).run()
    finally:
        connection.close()


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    try:
        reason = play(args.address, args.port)
    except TransportError as exc:
        logger.exception("Connection lost")
        print(f"Connection error: {exc}", file=sys.stderr)
        raise SystemExit(1)
    logger.info("Game over: %s", reason.value)
    if reason is EndReason.PROTOCOL_ERROR:
        print("Wrong server message received", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
