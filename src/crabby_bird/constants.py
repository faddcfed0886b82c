"""
constants.py: Centralized configuration for game, network and storage settings.
"""

# -------- Network & Server Config --------
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 50017
BUFFER_SIZE = 65536
REQUEST_TIMEOUT = 2.0           # seconds
SOCKET_POLL_INTERVAL = 0.1      # seconds

# -------- Storage Config --------
DB_FILE = "crabby_server.db"
SESSION_FILE = "crabby_session.json"
SESSION_KEY = "crabby_username"
LEADERBOARD_LIMIT = 10
USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 20

# -------- Playfield Config --------
SCREEN_WIDTH = 400
SCREEN_HEIGHT = 500
RENDER_FPS = 60                 # One physics step per rendered frame

# -------- Crab Config --------
CRAB_X = 50                     # Fixed crab x position (left edge)
CRAB_SIZE = 40
CRAB_START_Y = 250
CRAB_MAX_Y = SCREEN_HEIGHT - CRAB_SIZE

# -------- Pipe Config --------
PIPE_WIDTH = 60
PIPE_GAP = 150
PIPE_SPEED = 3                  # Horizontal speed (pixels/frame)
PIPE_SPAWN_X = SCREEN_WIDTH
PIPE_SPAWN_THRESHOLD = 200      # Spawn once the newest pipe is left of this x
PIPE_GAP_TOP_MIN = 100
PIPE_GAP_TOP_RANGE = 200        # Gap top drawn from [MIN, MIN + RANGE)

# -------- Physics Config (Pixels / Frame / Frame) --------
GRAVITY = 0.4                   # Vertical acceleration (pixels/frame^2)
JUMP_FORCE = -8.0               # Instantaneous velocity after a jump (pixels/frame)
