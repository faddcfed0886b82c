"""
game_loop.py: The frame driver and game state machine for one local player.
"""

import logging
from typing import Callable, List, Optional

from .data_models import GameOver, GameState, SimState
from .physics_core import Event, PhysicsCore

log = logging.getLogger(__name__)


class GameSession:
    """
    Owns the simulation state and applies one PhysicsCore step per frame.

    Events from each frame are dispatched to subscribers in order. When a game
    ends with a positive score and a bound player, the score is handed to the
    submitter without waiting for the result.
    """

    def __init__(self, core: Optional[PhysicsCore] = None, submitter=None,
                 username: Optional[str] = None):
        self.core = core or PhysicsCore()
        self.submitter = submitter            # Anything with submit(username, score, obstacles_passed)
        self.username = username
        self.state = SimState()
        self.best_score = 0                   # Best finished game since the player was bound
        self._observers: List[Callable[[Event], None]] = []

    @property
    def game_state(self) -> GameState:
        return self.state.game_state

    def subscribe(self, callback: Callable[[Event], None]):
        self._observers.append(callback)

    def bind_player(self, username: Optional[str]):
        self.username = username
        self.best_score = 0

    def snapshot(self) -> SimState:
        """A copy of the simulation for the rendering layer."""
        return self.state.copy()

    # ---------- Transitions ----------

    def start(self):
        """MENU/GAMEOVER -> PLAYING."""
        if self.state.game_state == GameState.PLAYING:
            return
        self.state = self.core.new_game()
        log.debug("Game started for %s", self.username)

    def interact(self):
        """Pointer press / touch start: jump while playing, replay after a game over."""
        if self.state.game_state == GameState.PLAYING:
            self.state = self.core.flap(self.state)
        elif self.state.game_state == GameState.GAMEOVER:
            self.start()

    def switch_player(self):
        """Any state -> MENU, unbinding the current player."""
        self.state = SimState(game_state=GameState.MENU)
        self.username = None
        self.best_score = 0

    def back_to_menu(self):
        """GAMEOVER -> MENU, keeping the player bound. A running game is not abandoned."""
        if self.state.game_state == GameState.GAMEOVER:
            self.state = SimState(game_state=GameState.MENU)

    # ---------- Frame ----------

    def tick(self, dt: float = 1.0) -> List[Event]:
        """Runs exactly one frame. Does nothing outside PLAYING."""
        if self.state.game_state != GameState.PLAYING:
            return []

        self.state, events = self.core.step(self.state, dt)
        for event in events:
            if isinstance(event, GameOver):
                self._on_game_over(event)
            for callback in self._observers:
                callback(event)
        return events

    def _on_game_over(self, event: GameOver):
        log.info("Game over (%s), score %d", event.reason, event.score)
        self.best_score = max(self.best_score, event.score)
        if event.score > 0 and self.username and self.submitter is not None:
            self.submitter.submit(self.username, event.score, event.score)
