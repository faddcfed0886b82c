# tests/test_server.py
import socket
import threading

import pytest

from crabby_bird.errors import InvalidUsername, NotFound, PersistenceError
from crabby_bird.game_loop import GameSession
from crabby_bird.data_models import Crab, GameState, Pipe, SimState
from crabby_bird.network_client import NetworkClient, ScoreSubmitter
from crabby_bird.server import CrabbyServer
from crabby_bird.server_db import Database


@pytest.fixture
def server():
    srv = CrabbyServer(Database(":memory:"), host="127.0.0.1", port=0)
    srv.start()
    yield srv
    srv.stop()
    srv.db.close()


@pytest.fixture
def client(server):
    c = NetworkClient(server.address, timeout=2.0)
    yield c
    c.close()


# ---------- Dispatcher (no sockets) ----------

def test_handle_request_result_envelope(server):
    response = server.handle_request({"type": "create_player", "id": 9, "username": "  alice "})
    assert response["type"] == "result"
    assert response["id"] == 9
    assert server.db.lookup_player("alice").id == response["result"]


def test_handle_request_not_found(server):
    response = server.handle_request(
        {"type": "submit_score", "id": 1, "username": "ghost123", "score": 4, "obstacles_passed": 4})
    assert response == {
        "type": "error", "id": 1, "error": "not_found", "message": "Player not found: ghost123"}


@pytest.mark.parametrize("message, error", [
    ({"type": "create_player", "id": 1, "username": "a"}, "invalid_username"),
    ({"type": "create_player", "id": 1, "username": "x" * 21}, "invalid_username"),
    ({"type": "create_player", "id": 1}, "bad_request"),
    ({"type": "drop_tables", "id": 1}, "bad_request"),
    ({"type": "submit_score", "id": 1, "username": "alice", "score": -1}, "bad_request"),
    (["not", "an", "object"], "bad_request"),
])
def test_handle_request_errors(server, message, error):
    response = server.handle_request(message)
    assert response["type"] == "error"
    assert response["error"] == error


# ---------- Over UDP ----------

def test_client_round_trip(client):
    assert client.lookup_player("alice") is None
    player_id = client.create_player("alice")
    assert client.create_player("alice") == player_id

    assert client.submit_score("alice", 37, 37) == 37
    player = client.lookup_player("alice")
    assert player.high_score == 37
    assert player.games_played == 1

    board = client.get_leaderboard()
    assert [(e.rank, e.username, e.high_score) for e in board] == [(1, "alice", 37)]
    assert [s.score for s in client.get_player_scores("alice")] == [37]


def test_client_maps_errors(client):
    with pytest.raises(NotFound):
        client.submit_score("ghost123", 3, 3)
    with pytest.raises(InvalidUsername):
        client.create_player("x")


def test_client_times_out_without_server():
    c = NetworkClient(("127.0.0.1", 9), timeout=0.3)
    try:
        with pytest.raises(PersistenceError):
            c.get_leaderboard()
    finally:
        c.close()


# ---------- Score submitter ----------

def test_submitter_delivers_and_reports(client):
    client.create_player("alice")
    done = threading.Event()
    saved = []

    def on_submitted(username, high_score):
        saved.append((username, high_score))
        done.set()

    submitter = ScoreSubmitter(client, on_submitted=on_submitted)
    submitter.start()
    try:
        submitter.submit("alice", 5, 5)
        assert done.wait(5.0)
    finally:
        submitter.stop()

    assert saved == [("alice", 5)]
    assert client.lookup_player("alice").games_played == 1


def test_submitter_drops_unknown_player_without_retry(server, client):
    submitter = ScoreSubmitter(client)
    submitter.start()
    try:
        submitter.submit("ghost123", 8, 8)
        submitter.pending.join()
    finally:
        submitter.stop()

    assert submitter.pending.empty()
    assert server.db.get_leaderboard() == []


def test_two_games_end_to_end(server, client):
    client.create_player("alice")
    submitter = ScoreSubmitter(client)
    submitter.start()
    session = GameSession(submitter=submitter, username="alice")

    try:
        for score in (5, 3):
            session.state = SimState(
                GameState.PLAYING, Crab(459.0, 5.0), [Pipe(350.0, 150.0)], score)
            session.tick()
            assert session.game_state == GameState.GAMEOVER
            submitter.pending.join()
            player = client.lookup_player("alice")
            if score == 5:
                assert (player.high_score, player.games_played) == (5, 1)
    finally:
        submitter.stop()

    player = client.lookup_player("alice")
    assert (player.high_score, player.games_played) == (5, 2)


class FlakyClient:
    """Raises on the first submission, then records the rest."""

    def __init__(self):
        self.calls = []

    def submit_score(self, username, score, obstacles_passed):
        self.calls.append(score)
        if len(self.calls) == 1:
            raise RuntimeError("connection reset")
        return score


def test_submitter_survives_unexpected_client_error():
    client = FlakyClient()
    submitter = ScoreSubmitter(client)
    submitter.start()
    try:
        submitter.submit("alice", 1, 1)
        submitter.submit("alice", 2, 2)
        submitter.pending.join()
        assert submitter.worker.is_alive()
    finally:
        submitter.stop()

    assert client.calls == [1, 2]


def test_submitter_survives_failing_callback():
    client = FlakyClient()
    client.calls.append(0)   # skip the scripted failure
    saved = []

    def on_submitted(username, high_score):
        saved.append(high_score)
        if high_score == 1:
            raise ValueError("ui gone")

    submitter = ScoreSubmitter(client, on_submitted=on_submitted)
    submitter.start()
    try:
        submitter.submit("alice", 1, 1)
        submitter.submit("alice", 2, 2)
        submitter.pending.join()
        assert submitter.worker.is_alive()
    finally:
        submitter.stop()

    assert saved == [1, 2]


def test_submitter_refreshes_stats_in_background(client):
    client.create_player("alice")
    client.submit_score("alice", 9, 9)
    done = threading.Event()
    stats = []

    def on_stats(player, leaderboard):
        stats.append((player, leaderboard))
        done.set()

    submitter = ScoreSubmitter(client, on_stats=on_stats)
    submitter.start()
    try:
        submitter.refresh_stats("alice")
        assert done.wait(5.0)
    finally:
        submitter.stop()

    player, leaderboard = stats[0]
    assert (player.username, player.high_score, player.games_played) == ("alice", 9, 1)
    assert [e.username for e in leaderboard] == ["alice"]


@pytest.fixture
def list_replying_server():
    """A UDP endpoint that answers every datagram with a JSON array."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(0.1)
    stop = threading.Event()

    def serve():
        while not stop.is_set():
            try:
                _, addr = sock.recvfrom(65536)
            except socket.timeout:
                continue
            sock.sendto(b"[1, 2]", addr)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield sock.getsockname()
    stop.set()
    thread.join()
    sock.close()


def test_non_object_reply_is_persistence_error(list_replying_server):
    c = NetworkClient(list_replying_server, timeout=0.5)
    try:
        with pytest.raises(PersistenceError):
            c.submit_score("alice", 3, 3)
    finally:
        c.close()
