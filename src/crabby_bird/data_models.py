"""
data_models.py: Data structures for the game simulation and the score records.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from .constants import CRAB_START_Y, USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH
from .errors import InvalidUsername


def validate_username(raw) -> str:
    """Trims a username and checks its length. Raises InvalidUsername."""
    if not isinstance(raw, str):
        raise InvalidUsername("Username must be a string.")
    username = raw.strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise InvalidUsername(
            f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters.")
    return username


class GameState(str, Enum):
    MENU = "menu"
    PLAYING = "playing"
    GAMEOVER = "gameover"


# ---------- Simulation (client-only, per session) ----------

@dataclass
class Crab:
    """The player avatar. Only the vertical axis moves."""
    y: float = CRAB_START_Y
    velocity: float = 0.0


@dataclass
class Pipe:
    """A coral pillar pair with a passable gap starting at gap_top."""
    x: float
    gap_top: float
    passed: bool = False           # Already credited to the score?


@dataclass
class SimState:
    """The owned simulation state, updated only by PhysicsCore.step."""
    game_state: GameState = GameState.MENU
    crab: Crab = field(default_factory=Crab)
    pipes: List[Pipe] = field(default_factory=list)
    score: int = 0

    def copy(self) -> "SimState":
        """Deep enough copy for the step function to mutate freely."""
        return replace(
            self,
            crab=replace(self.crab),
            pipes=[replace(p) for p in self.pipes],
        )


@dataclass(frozen=True)
class ScoreIncrement:
    score: int


@dataclass(frozen=True)
class GameOver:
    score: int
    reason: str                    # "bounds" or "pipe"


# ---------- Persistence records ----------

@dataclass
class PlayerRecord:
    id: int
    username: str
    high_score: int = 0
    games_played: int = 0
    created_at: int = 0            # Milliseconds since the epoch

    def to_dict(self):
        """Prepares a dictionary for network serialization."""
        return {
            "id": self.id,
            "username": self.username,
            "high_score": self.high_score,
            "games_played": self.games_played,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerRecord":
        return cls(
            id=data["id"],
            username=data["username"],
            high_score=data["high_score"],
            games_played=data["games_played"],
            created_at=data["created_at"],
        )


@dataclass
class GameScoreRecord:
    """One completed game. Append-only."""
    id: int
    player_id: int
    score: int
    obstacles_passed: int
    played_at: int

    def to_dict(self):
        return {
            "id": self.id,
            "player_id": self.player_id,
            "score": self.score,
            "obstacles_passed": self.obstacles_passed,
            "played_at": self.played_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GameScoreRecord":
        return cls(**{k: data[k] for k in ("id", "player_id", "score", "obstacles_passed", "played_at")})


@dataclass
class LeaderboardEntry:
    rank: int
    username: str
    high_score: int
    player_id: Optional[int] = None

    def to_dict(self):
        return {
            "rank": self.rank,
            "username": self.username,
            "high_score": self.high_score,
            "player_id": self.player_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LeaderboardEntry":
        return cls(
            rank=data["rank"],
            username=data["username"],
            high_score=data["high_score"],
            player_id=data.get("player_id"),
        )
