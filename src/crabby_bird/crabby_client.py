#!/usr/bin/env python3
"""
crabby_client.py

pygame front end: registration, menu, the playfield and the leaderboard.
Reads GameSession snapshots each frame; never mutates the simulation directly.
"""

import logging
import threading
from typing import List, Optional

import pygame

from .config import Config, load_config
from .constants import (
    SCREEN_WIDTH, SCREEN_HEIGHT, RENDER_FPS, CRAB_X, CRAB_SIZE,
    PIPE_WIDTH, PIPE_GAP, USERNAME_MAX_LENGTH
)
from .data_models import GameState, LeaderboardEntry, PlayerRecord, validate_username
from .errors import CrabbyError, InvalidUsername
from .game_loop import GameSession
from .logger import setup_logging
from .network_client import NetworkClient, ScoreSubmitter
from .session import LocalSession

log = logging.getLogger(__name__)

WHITE = (255, 255, 255)
GREY = (200, 200, 200)
SEA = (10, 90, 160)
CORAL = (240, 110, 90)
CRAB_RED = (220, 50, 40)
GOLD = (255, 200, 60)

REGISTER, MENU, GAME, LEADERBOARD = "register", "menu", "game", "leaderboard"


def is_pointer_press(event) -> bool:
    """Mouse press that is not SDL's mirror of a FINGERDOWN (flagged touch=True)."""
    return event.type == pygame.MOUSEBUTTONDOWN and not getattr(event, "touch", False)


class Button:
    def __init__(self, label: str, center_y: int):
        self.label = label
        self.rect = pygame.Rect(0, 0, 220, 44)
        self.rect.center = (SCREEN_WIDTH // 2, center_y)

    def hit(self, pos) -> bool:
        return self.rect.collidepoint(pos)

    def draw(self, screen, font):
        pygame.draw.rect(screen, CORAL, self.rect, border_radius=10)
        text = font.render(self.label, True, WHITE)
        screen.blit(text, text.get_rect(center=self.rect.center))


# ----------------- Game Client (rendering / input) -----------------

class CrabbyClient:
    def __init__(self, config: Config):
        pygame.init()
        self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
        pygame.display.set_caption("Crabby Bird")
        self.clock = pygame.time.Clock()
        self.large_font = pygame.font.Font(None, 48)
        self.font = pygame.font.Font(None, 28)

        self.session = LocalSession(config.session_file)
        self.net = NetworkClient(config.server_addr)
        self.submitter = ScoreSubmitter(self.net, on_submitted=self._on_score_saved,
                                        on_stats=self._on_stats)
        self.game = GameSession(submitter=self.submitter)

        # --- Presentation State ---
        self.screen_name = REGISTER
        self.input_text = ""
        self.status = ""
        self.stats_lock = threading.Lock()
        self.player: Optional[PlayerRecord] = None
        self.leaderboard: List[LeaderboardEntry] = []
        self.best_before_game = 0

        self.start_button = Button("Start Swimming", 300)
        self.leaderboard_button = Button("Leaderboard", 360)
        self.logout_button = Button("Switch Player", 420)
        self.back_button = Button("Back", 450)

        username = self.session.load_username()
        if username:
            self._sign_in(username)

    def run(self):
        """The main client execution loop."""
        self.submitter.start()
        pygame.key.start_text_input()

        running = True
        while running:
            self.clock.tick(RENDER_FPS)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                else:
                    self._handle_event(event)

            if self.screen_name == GAME:
                self.game.tick()

            self._draw()

        self.submitter.stop()
        self.net.close()
        pygame.quit()

    # ---------- Input ----------

    def _handle_event(self, event):
        if self.screen_name == REGISTER:
            self._handle_register_event(event)
        elif self.screen_name == MENU:
            if is_pointer_press(event):
                if self.start_button.hit(event.pos):
                    self._start_game()
                elif self.leaderboard_button.hit(event.pos):
                    self.submitter.refresh_stats(self.game.username)
                    self.screen_name = LEADERBOARD
                elif self.logout_button.hit(event.pos):
                    self._logout()
        elif self.screen_name == LEADERBOARD:
            if is_pointer_press(event) and self.back_button.hit(event.pos):
                self.screen_name = MENU
        elif self.screen_name == GAME:
            if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self.game.back_to_menu()
                if self.game.game_state == GameState.MENU:
                    self.screen_name = MENU
            elif is_pointer_press(event) or event.type == pygame.FINGERDOWN:
                self._interact()
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_SPACE:
                self._interact()

    def _handle_register_event(self, event):
        if event.type == pygame.TEXTINPUT:
            if len(self.input_text) < USERNAME_MAX_LENGTH:
                self.input_text += event.text
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_BACKSPACE:
                self.input_text = self.input_text[:-1]
            elif event.key == pygame.K_RETURN:
                self._register()

    def _interact(self):
        if self.game.game_state == GameState.GAMEOVER:
            self.best_before_game = self._known_best()
        self.game.interact()

    # ---------- Actions ----------

    def _register(self):
        try:
            username = validate_username(self.input_text)
            self.net.create_player(username)
        except InvalidUsername as e:
            self.status = str(e)
            return
        except CrabbyError as e:
            log.error("Registration failed: %s", e)
            self.status = "Server unavailable, try again."
            return

        self.session.save_username(username)
        self.input_text = ""
        self._sign_in(username)

    def _sign_in(self, username: str):
        self.game.bind_player(username)
        self.status = ""
        self.screen_name = MENU
        self.submitter.refresh_stats(username)

    def _logout(self):
        self.session.clear()
        self.game.switch_player()
        with self.stats_lock:
            self.player = None
        self.screen_name = REGISTER

    def _start_game(self):
        self.best_before_game = self._known_best()
        self.game.start()
        self.screen_name = GAME

    def _known_best(self) -> int:
        """Stored high score, or a newer local best whose save hasn't landed yet."""
        with self.stats_lock:
            stored = self.player.high_score if self.player else 0
        return max(stored, self.game.best_score)

    def _on_score_saved(self, username: str, high_score: int):
        # Submitter thread: queue the refresh behind the save.
        self.submitter.refresh_stats(username)

    def _on_stats(self, player: Optional[PlayerRecord], leaderboard: List[LeaderboardEntry]):
        # Submitter thread: drop records for a player who has since signed out.
        with self.stats_lock:
            if player is None or player.username == self.game.username:
                self.player = player
            self.leaderboard = leaderboard

    # ---------- Rendering ----------

    def _draw(self):
        self.screen.fill(SEA)
        if self.screen_name == REGISTER:
            self._draw_register()
        elif self.screen_name == MENU:
            self._draw_menu()
        elif self.screen_name == LEADERBOARD:
            self._draw_leaderboard()
        else:
            self._draw_game()
        pygame.display.flip()

    def _blit_centered(self, text: str, y: int, font=None, color=WHITE):
        surf = (font or self.font).render(text, True, color)
        self.screen.blit(surf, (SCREEN_WIDTH // 2 - surf.get_width() // 2, y))

    def _draw_register(self):
        self._blit_centered("Crabby Bird", 120, self.large_font)
        self._blit_centered("Swim through the coral reef!", 170, color=GREY)
        box = pygame.Rect(60, 230, SCREEN_WIDTH - 120, 44)
        pygame.draw.rect(self.screen, WHITE, box, width=2, border_radius=8)
        entry = self.font.render(self.input_text or "Choose a username", True,
                                 WHITE if self.input_text else GREY)
        self.screen.blit(entry, (box.x + 10, box.y + 12))
        self._blit_centered("Press Enter to dive in", 290, color=GREY)
        if self.status:
            self._blit_centered(self.status, 330, color=GOLD)

    def _draw_menu(self):
        self._blit_centered("Crabby Bird", 80, self.large_font)
        self._blit_centered(f"Welcome, {self.game.username}!", 140)
        if self.player:
            self._blit_centered(f"High Score: {self.player.high_score}", 180, color=GOLD)
            self._blit_centered(f"Games: {self.player.games_played}", 210, color=GREY)
        for button in (self.start_button, self.leaderboard_button, self.logout_button):
            button.draw(self.screen, self.font)

    def _draw_leaderboard(self):
        self._blit_centered("Top Swimmers", 40, self.large_font)
        for entry in self.leaderboard:
            color = GOLD if entry.username == self.game.username else WHITE
            txt = self.font.render(
                f"#{entry.rank}  {entry.username}  {entry.high_score}", True, color)
            self.screen.blit(txt, (60, 60 + entry.rank * 32))
        self.back_button.draw(self.screen, self.font)

    def _draw_game(self):
        state = self.game.snapshot()

        # Pipes (coral pillars)
        for pipe in state.pipes:
            pygame.draw.rect(self.screen, CORAL, (pipe.x, 0, PIPE_WIDTH, pipe.gap_top))
            bottom_y = pipe.gap_top + PIPE_GAP
            pygame.draw.rect(self.screen, CORAL,
                             (pipe.x, bottom_y, PIPE_WIDTH, SCREEN_HEIGHT - bottom_y))

        # Crab
        color = GREY if state.game_state == GameState.GAMEOVER else CRAB_RED
        pygame.draw.rect(self.screen, color, (CRAB_X, int(state.crab.y), CRAB_SIZE, CRAB_SIZE),
                         border_radius=12)

        # HUD
        self._blit_centered(str(state.score), 20, self.large_font)

        if state.game_state == GameState.GAMEOVER:
            self._blit_centered("Game Over!", SCREEN_HEIGHT // 2 - 60, self.large_font, CORAL)
            self._blit_centered(f"Score: {state.score}", SCREEN_HEIGHT // 2 - 10)
            if self.player and state.score > self.best_before_game:
                self._blit_centered("New Record!", SCREEN_HEIGHT // 2 + 20, color=GOLD)
            self._blit_centered("Tap to play again | Esc = Menu", SCREEN_HEIGHT // 2 + 50, color=GREY)


def main():
    config = load_config()
    setup_logging(config.log_level)
    client = CrabbyClient(config)
    client.run()


if __name__ == "__main__":
    main()
