"""
config.py: Deployment settings loaded from .env and environment variables.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .constants import DB_FILE, DEFAULT_HOST, DEFAULT_PORT, SESSION_FILE


@dataclass(frozen=True)
class Config:
    host: str
    port: int
    db_file: str
    session_file: str
    log_level: str

    @property
    def server_addr(self) -> tuple:
        return (self.host, self.port)


def load_config() -> Config:
    """Load configuration from .env and environment variables."""
    load_dotenv()

    return Config(
        host=os.environ.get("CRABBY_HOST", DEFAULT_HOST),
        port=int(os.environ.get("CRABBY_PORT", str(DEFAULT_PORT))),
        db_file=os.environ.get("CRABBY_DB_FILE", DB_FILE),
        session_file=os.environ.get("CRABBY_SESSION_FILE", SESSION_FILE),
        log_level=os.environ.get("CRABBY_LOG_LEVEL", "info"),
    )
