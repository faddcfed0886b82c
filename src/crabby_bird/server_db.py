"""
server_db.py: Database layer for players, score history and the leaderboard.
"""

import logging
import sqlite3
import threading
import time
from typing import List, Optional

from .constants import DB_FILE, LEADERBOARD_LIMIT
from .data_models import GameScoreRecord, LeaderboardEntry, PlayerRecord
from .errors import NotFound

log = logging.getLogger(__name__)

PLAYER_COLUMNS = "id, username, high_score, games_played, created_at"


def now_ms() -> int:
    return int(time.time() * 1000)


class Database:
    """Handles all interaction with the SQLite database."""
    def __init__(self, db_file: str = DB_FILE):
        # check_same_thread=False is essential for multi-threading access
        self.conn = sqlite3.connect(db_file, check_same_thread=False)
        self.cur = self.conn.cursor()
        self.lock = threading.Lock()
        self.setup()

    def setup(self):
        """Creates tables and indexes if they don't exist."""
        with self.lock:
            self.cur.execute("""
                CREATE TABLE IF NOT EXISTS players (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT UNIQUE NOT NULL,
                    high_score INTEGER NOT NULL DEFAULT 0,
                    games_played INTEGER NOT NULL DEFAULT 0,
                    created_at INTEGER NOT NULL
                )
            """)
            self.cur.execute("""
                CREATE TABLE IF NOT EXISTS game_scores (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    player_id INTEGER NOT NULL,
                    score INTEGER NOT NULL,
                    obstacles_passed INTEGER NOT NULL,
                    played_at INTEGER NOT NULL,
                    FOREIGN KEY(player_id) REFERENCES players(id)
                )
            """)
            self.cur.execute(
                "CREATE INDEX IF NOT EXISTS by_high_score ON players (high_score)")
            self.cur.execute(
                "CREATE INDEX IF NOT EXISTS by_player ON game_scores (player_id)")
            self.cur.execute(
                "CREATE INDEX IF NOT EXISTS by_score ON game_scores (score)")
            self.conn.commit()

    def close(self):
        self.conn.close()

    def _fetch_player(self, username: str) -> Optional[PlayerRecord]:
        self.cur.execute(
            f"SELECT {PLAYER_COLUMNS} FROM players WHERE username=?", (username,))
        row = self.cur.fetchone()
        return PlayerRecord(*row) if row else None

    def lookup_player(self, username: str) -> Optional[PlayerRecord]:
        """Fetches a player by exact username, or None."""
        with self.lock:
            return self._fetch_player(username)

    def create_player(self, username: str) -> int:
        """
        Registers a player and returns its id. An existing player is
        returned unchanged; the UNIQUE constraint makes this safe under races.
        """
        with self.lock:
            self.cur.execute(
                "INSERT OR IGNORE INTO players (username, high_score, games_played, created_at) "
                "VALUES (?, 0, 0, ?)", (username, now_ms()))
            created = self.cur.rowcount == 1
            self.conn.commit()
            player = self._fetch_player(username)

        if created:
            log.info("New player registered: %s", username)
        return player.id

    def submit_score(self, username: str, score: int, obstacles_passed: int) -> int:
        """
        Records a finished game and updates the player's aggregates.
        Returns the new high score. Raises NotFound without writing anything.
        """
        with self.lock:
            player = self._fetch_player(username)
            if player is None:
                raise NotFound(username)

            with self.conn:
                self.cur.execute(
                    "INSERT INTO game_scores (player_id, score, obstacles_passed, played_at) "
                    "VALUES (?, ?, ?, ?)", (player.id, score, obstacles_passed, now_ms()))
                self.cur.execute(
                    "UPDATE players SET high_score = MAX(high_score, ?), "
                    "games_played = games_played + 1 WHERE id=?", (score, player.id))

            self.cur.execute("SELECT high_score FROM players WHERE id=?", (player.id,))
            high_score = self.cur.fetchone()[0]

        log.info("Score %d recorded for %s (high score %d)", score, username, high_score)
        return high_score

    def get_leaderboard(self, limit: int = LEADERBOARD_LIMIT) -> List[LeaderboardEntry]:
        """Fetches the top players by high score; ties go to the earlier registration."""
        limit = max(0, min(limit, LEADERBOARD_LIMIT))
        with self.lock:
            self.cur.execute("""
                SELECT id, username, high_score
                FROM players
                ORDER BY high_score DESC, id ASC
                LIMIT ?
            """, (limit,))
            rows = self.cur.fetchall()
        return [
            LeaderboardEntry(rank=i + 1, username=name, high_score=best, player_id=pid)
            for i, (pid, name, best) in enumerate(rows)
        ]

    def get_player_scores(self, username: str, limit: int = LEADERBOARD_LIMIT) -> List[GameScoreRecord]:
        """Fetches a player's most recent games, newest first."""
        with self.lock:
            player = self._fetch_player(username)
            if player is None:
                raise NotFound(username)
            self.cur.execute("""
                SELECT id, player_id, score, obstacles_passed, played_at
                FROM game_scores
                WHERE player_id=?
                ORDER BY id DESC
                LIMIT ?
            """, (player.id, limit))
            rows = self.cur.fetchall()
        return [GameScoreRecord(*row) for row in rows]
