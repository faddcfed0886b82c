"""
physics_core.py: The deterministic kinematic step and collision logic.
"""

import random
from typing import List, Optional, Tuple, Union

from .constants import (
    GRAVITY, JUMP_FORCE, CRAB_X, CRAB_SIZE, CRAB_MAX_Y,
    PIPE_WIDTH, PIPE_GAP, PIPE_SPEED, PIPE_SPAWN_X, PIPE_SPAWN_THRESHOLD,
    PIPE_GAP_TOP_MIN, PIPE_GAP_TOP_RANGE
)
from .data_models import Crab, GameOver, GameState, Pipe, ScoreIncrement, SimState

Event = Union[ScoreIncrement, GameOver]


class PhysicsCore:
    """
    Pure frame-step physics. Every operation returns a new SimState and
    never mutates the one it was given.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def random_gap_top(self) -> float:
        return self.rng.random() * PIPE_GAP_TOP_RANGE + PIPE_GAP_TOP_MIN

    def spawn_pipe(self) -> Pipe:
        """Generates a new pipe at the right edge of the playfield."""
        return Pipe(x=float(PIPE_SPAWN_X), gap_top=self.random_gap_top())

    def new_game(self) -> SimState:
        """A fresh PLAYING state with one pipe already on its way."""
        return SimState(
            game_state=GameState.PLAYING,
            crab=Crab(),
            pipes=[self.spawn_pipe()],
            score=0,
        )

    def apply_gravity_and_movement(self, y: float, velocity: float, dt: float = 1.0) -> Tuple[float, float]:
        """
        Calculates new position and velocity after one frame.
        Velocity is integrated first, then position.
        """
        velocity += GRAVITY * dt
        y += velocity * dt
        return y, velocity

    def flap(self, state: SimState) -> SimState:
        """Returns the state after a jump impulse (PLAYING only)."""
        if state.game_state != GameState.PLAYING:
            return state
        new_state = state.copy()
        new_state.crab.velocity = JUMP_FORCE
        return new_state

    def out_of_bounds(self, y: float) -> bool:
        return y < 0 or y > CRAB_MAX_Y

    def overlaps_pipe(self, crab_y: float, pipe: Pipe) -> bool:
        """AABB test of the crab box against the pipe's two solid segments."""
        crab_left = CRAB_X
        crab_right = CRAB_X + CRAB_SIZE
        pipe_left = pipe.x
        pipe_right = pipe.x + PIPE_WIDTH

        if not (crab_right > pipe_left and crab_left < pipe_right):
            return False

        crab_top = crab_y
        crab_bottom = crab_y + CRAB_SIZE
        return crab_top < pipe.gap_top or crab_bottom > pipe.gap_top + PIPE_GAP

    def step_pipes(self, pipes: List[Pipe], dt: float = 1.0) -> List[Pipe]:
        """Scrolls pipes left, drops off-screen ones and spawns as needed."""
        for pipe in pipes:
            pipe.x -= PIPE_SPEED * dt
        pipes = [p for p in pipes if p.x + PIPE_WIDTH > 0]

        if not pipes or pipes[-1].x < PIPE_SPAWN_THRESHOLD:
            pipes.append(self.spawn_pipe())
        return pipes

    def step(self, state: SimState, dt: float = 1.0) -> Tuple[SimState, List[Event]]:
        """
        Advances the simulation one frame.
        Returns the new state and the events raised during the frame.
        """
        if state.game_state != GameState.PLAYING:
            return state, []

        new_state = state.copy()
        events: List[Event] = []
        crab = new_state.crab

        # 1. Gravity and movement
        y, velocity = self.apply_gravity_and_movement(crab.y, crab.velocity, dt)
        crab.velocity = velocity

        # 2. Floor/ceiling: report before committing the out-of-bounds y
        if self.out_of_bounds(y):
            new_state.game_state = GameState.GAMEOVER
            events.append(GameOver(score=new_state.score, reason="bounds"))
            return new_state, events
        crab.y = y

        # 3. Scroll and spawn pipes
        new_state.pipes = self.step_pipes(new_state.pipes, dt)

        # 4. Collision and scoring, in pipe order
        for pipe in new_state.pipes:
            if self.overlaps_pipe(crab.y, pipe):
                new_state.game_state = GameState.GAMEOVER
                events.append(GameOver(score=new_state.score, reason="pipe"))
                return new_state, events

            if not pipe.passed and pipe.x + PIPE_WIDTH < CRAB_X:
                pipe.passed = True
                new_state.score += 1
                events.append(ScoreIncrement(score=new_state.score))

        return new_state, events
