#!/usr/bin/env python3
"""
Crabby Bird persistence server.
Answers JSON request datagrams over UDP, backed by server_db.
"""

import json
import logging
import socket
import threading
import time
from typing import Optional, Tuple

from .config import load_config
from .constants import BUFFER_SIZE, LEADERBOARD_LIMIT, SOCKET_POLL_INTERVAL
from .data_models import validate_username
from .errors import CrabbyError
from .logger import setup_logging
from .server_db import Database

log = logging.getLogger(__name__)


# -------- Server Class --------

class CrabbyServer:
    def __init__(self, db: Database, host: str = "", port: int = 0):
        self.db = db

        # Network
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((host, port))
        self.sock.settimeout(SOCKET_POLL_INTERVAL)

        # Threading
        self.running = threading.Event()
        self.network_thread = threading.Thread(target=self._network_loop, daemon=True)

        self.handlers = {
            "lookup_player": self._handle_lookup_player,
            "create_player": self._handle_create_player,
            "submit_score": self._handle_submit_score,
            "get_leaderboard": self._handle_get_leaderboard,
            "get_player_scores": self._handle_get_player_scores,
        }

    @property
    def address(self) -> Tuple[str, int]:
        return self.sock.getsockname()

    def start(self):
        """Start the network loop."""
        self.running.set()
        self.network_thread.start()

    def stop(self):
        """Stop the network loop and release the socket."""
        log.info("Stopping server...")
        self.running.clear()
        if self.network_thread.is_alive():
            self.network_thread.join()
        self.sock.close()
        log.info("Server stopped.")

    def _network_loop(self):
        """Receives request datagrams and answers each one."""
        log.info("Network thread started. Listening on %s:%d.", *self.address)
        while self.running.is_set():
            try:
                data, addr = self.sock.recvfrom(BUFFER_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self.running.is_set():
                    log.error("Socket error: %s", e)
                continue

            try:
                message = json.loads(data.decode('utf-8'))
            except (UnicodeDecodeError, json.JSONDecodeError):
                self._send(addr, self._error(None, "bad_request", "Malformed JSON."))
                continue

            self._send(addr, self.handle_request(message))

    def _send(self, addr: Tuple[str, int], response: dict):
        try:
            self.sock.sendto(json.dumps(response).encode('utf-8'), addr)
        except OSError as e:
            log.error("Error replying to %s: %s", addr, e)

    # -------- Request Dispatch --------

    def handle_request(self, message) -> dict:
        """Dispatches one decoded request and builds its response."""
        if not isinstance(message, dict):
            return self._error(None, "bad_request", "Request must be a JSON object.")

        request_id = message.get("id")
        handler = self.handlers.get(message.get("type"))
        if handler is None:
            return self._error(request_id, "bad_request", f"Unknown request type: {message.get('type')!r}")

        try:
            result = handler(message)
        except CrabbyError as e:
            log.warning("Request %s failed: %s", message.get("type"), e)
            return self._error(request_id, e.code, str(e))
        except (KeyError, TypeError, ValueError) as e:
            log.warning("Bad %s request: %s", message.get("type"), e)
            return self._error(request_id, "bad_request", f"Invalid arguments: {e}")
        except Exception:
            log.exception("Unexpected error handling %s", message.get("type"))
            return self._error(request_id, "bad_request", "Internal server error.")

        return {"type": "result", "id": request_id, "result": result}

    @staticmethod
    def _error(request_id, error: str, text: str) -> dict:
        return {"type": "error", "id": request_id, "error": error, "message": text}

    def _handle_lookup_player(self, message: dict) -> Optional[dict]:
        player = self.db.lookup_player(message["username"])
        return player.to_dict() if player else None

    def _handle_create_player(self, message: dict) -> int:
        username = validate_username(message["username"])
        return self.db.create_player(username)

    def _handle_submit_score(self, message: dict) -> int:
        score = int(message["score"])
        obstacles = int(message.get("obstacles_passed", score))
        if score < 0 or obstacles < 0:
            raise ValueError("score must be non-negative")
        return self.db.submit_score(message["username"], score, obstacles)

    def _handle_get_leaderboard(self, message: dict) -> list:
        limit = int(message.get("limit", LEADERBOARD_LIMIT))
        return [entry.to_dict() for entry in self.db.get_leaderboard(limit)]

    def _handle_get_player_scores(self, message: dict) -> list:
        limit = int(message.get("limit", LEADERBOARD_LIMIT))
        return [s.to_dict() for s in self.db.get_player_scores(message["username"], limit)]


def main():
    config = load_config()
    setup_logging(config.log_level)

    server = CrabbyServer(Database(config.db_file), host=config.host, port=config.port)
    print(f"Server initialized on UDP {config.host}:{config.port} (db: {config.db_file}).")
    try:
        server.start()
        while server.running.is_set():
            time.sleep(0.1)
    except KeyboardInterrupt:
        server.stop()
        server.db.close()


if __name__ == "__main__":
    main()
