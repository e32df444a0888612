from __future__ import annotations

import json
import logging
import socket
from typing import Any, Dict

from .protocol import TransportError

logger = logging.getLogger(__name__)


# Newline-delimited JSON messages over TCP


class Connection:
    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self._reader = sock.makefile("rb")

    def send(self, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, separators=(",", ":")).encode("utf-8") + b"\n"
        try:
            self.sock.sendall(data)
        except OSError as exc:
            raise TransportError(f"send failed: {exc}") from exc
        logger.debug("sent %s", data.rstrip())

    def recv(self) -> Dict[str, Any]:
        try:
            line = self._reader.readline()
        except OSError as exc:
            raise TransportError(f"receive failed: {exc}") from exc
        if not line.endswith(b"\n"):
            raise TransportError("socket closed")
        logger.debug("received %s", line.rstrip())
        try:
            payload = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportError(f"malformed payload {line!r}") from exc
        if not isinstance(payload, dict):
            raise TransportError(f"payload is not an object: {line!r}")
        return payload

    def close(self) -> None:
        try:
            self._reader.close()
        finally:
            self.sock.close()


def open_client(host: str, port: int) -> Connection:
    try:
        sock = socket.create_connection((host, port))
    except OSError as exc:
        raise TransportError(f"Failed to connect to server: {exc}") from exc
    return Connection(sock)
