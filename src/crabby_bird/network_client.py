"""
network_client.py: Client for the persistence server and the background score queue.
"""

import itertools
import json
import logging
import queue
import socket
import threading
import time
from typing import Callable, List, Optional, Tuple

from .constants import BUFFER_SIZE, LEADERBOARD_LIMIT, REQUEST_TIMEOUT, SOCKET_POLL_INTERVAL
from .data_models import GameScoreRecord, LeaderboardEntry, PlayerRecord
from .errors import InvalidUsername, NotFound, PersistenceError

log = logging.getLogger(__name__)


# ----------------- Network Client (request / response) -----------------

class NetworkClient:
    """One request in flight at a time; no retries."""

    def __init__(self, server_addr: Tuple[str, int], timeout: float = REQUEST_TIMEOUT):
        self.server_addr = server_addr
        self.timeout = timeout

        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.settimeout(SOCKET_POLL_INTERVAL)

        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def close(self):
        self.sock.close()

    def request(self, op: str, **args):
        """Sends one request and waits for the matching response."""
        with self._lock:
            request_id = next(self._ids)
            msg = json.dumps({"type": op, "id": request_id, **args}).encode('utf-8')
            try:
                self.sock.sendto(msg, self.server_addr)
            except OSError as e:
                raise PersistenceError(f"Error sending {op} request: {e}") from e

            deadline = time.time() + self.timeout
            while time.time() < deadline:
                try:
                    data, _ = self.sock.recvfrom(BUFFER_SIZE)
                except socket.timeout:
                    continue
                except OSError as e:
                    raise PersistenceError(f"Error receiving {op} response: {e}") from e

                try:
                    message = json.loads(data.decode('utf-8'))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    log.warning("Dropping malformed response to %s", op)
                    continue
                if not isinstance(message, dict):
                    log.warning("Dropping non-object response to %s", op)
                    continue
                if message.get("id") != request_id:
                    # Late answer to an earlier, timed-out request.
                    continue
                return self._unwrap(op, args, message)

        raise PersistenceError(f"{op} timed out after {self.timeout:.1f}s")

    @staticmethod
    def _unwrap(op: str, args: dict, message: dict):
        if message.get("type") == "result":
            return message.get("result")

        error = message.get("error")
        text = message.get("message", "Unknown reason")
        if error == "not_found":
            raise NotFound(args.get("username", ""))
        if error == "invalid_username":
            raise InvalidUsername(text)
        raise PersistenceError(f"{op} failed: {text}")

    # ---------- Operations ----------

    def lookup_player(self, username: str) -> Optional[PlayerRecord]:
        data = self.request("lookup_player", username=username)
        return PlayerRecord.from_dict(data) if data else None

    def create_player(self, username: str) -> int:
        return self.request("create_player", username=username)

    def submit_score(self, username: str, score: int, obstacles_passed: int) -> int:
        return self.request("submit_score", username=username, score=score,
                            obstacles_passed=obstacles_passed)

    def get_leaderboard(self, limit: int = LEADERBOARD_LIMIT) -> List[LeaderboardEntry]:
        data = self.request("get_leaderboard", limit=limit)
        return [LeaderboardEntry.from_dict(entry) for entry in data]

    def get_player_scores(self, username: str, limit: int = LEADERBOARD_LIMIT) -> List[GameScoreRecord]:
        data = self.request("get_player_scores", username=username, limit=limit)
        return [GameScoreRecord.from_dict(s) for s in data]


# ----------------- Score Submitter (fire-and-forget) -----------------

class ScoreSubmitter:
    """
    Queues finished games and delivers each one at most once from a
    background thread, so the frame loop never blocks on the network.

    The same worker also fetches player stats and the leaderboard on request
    and hands them to on_stats.
    """

    def __init__(self, client,
                 on_submitted: Optional[Callable[[str, int], None]] = None,
                 on_stats: Optional[Callable[[Optional[PlayerRecord], List[LeaderboardEntry]], None]] = None):
        self.client = client
        self.on_submitted = on_submitted
        self.on_stats = on_stats
        self.pending: "queue.Queue[tuple]" = queue.Queue()

        self.running = threading.Event()
        self.worker = threading.Thread(target=self._drain_loop, daemon=True)

    def start(self):
        self.running.set()
        self.worker.start()

    def stop(self):
        """Cancels the worker. Anything still queued is dropped."""
        self.running.clear()
        if self.worker.is_alive():
            self.worker.join()

    def submit(self, username: str, score: int, obstacles_passed: int):
        """Non-blocking: enqueue and return."""
        self.pending.put(("score", username, score, obstacles_passed))

    def refresh_stats(self, username: Optional[str]):
        """Non-blocking: fetch the player's record and the leaderboard."""
        self.pending.put(("stats", username))

    def _drain_loop(self):
        while self.running.is_set():
            try:
                job = self.pending.get(timeout=SOCKET_POLL_INTERVAL)
            except queue.Empty:
                continue
            try:
                if job[0] == "score":
                    self._deliver(*job[1:])
                else:
                    self._fetch_stats(*job[1:])
            except Exception:
                # Keep draining after unexpected failures.
                log.exception("Background %s job failed", job[0])
            finally:
                self.pending.task_done()

    def _deliver(self, username: str, score: int, obstacles: int):
        try:
            high_score = self.client.submit_score(username, score, obstacles)
        except NotFound:
            log.error("Score %d dropped: player %s is not registered", score, username)
            return
        except PersistenceError as e:
            log.error("Score %d for %s not saved: %s", score, username, e)
            return

        log.info("Score %d saved for %s (high score %d)", score, username, high_score)
        if self.on_submitted is not None:
            self.on_submitted(username, high_score)

    def _fetch_stats(self, username: Optional[str]):
        try:
            player = self.client.lookup_player(username) if username else None
            leaderboard = self.client.get_leaderboard()
        except PersistenceError as e:
            log.warning("Could not refresh stats: %s", e)
            return

        if self.on_stats is not None:
            self.on_stats(player, leaderboard)
