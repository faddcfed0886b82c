"""
errors.py: Exceptions raised by the persistence service and its client.
"""


class CrabbyError(Exception):
    """Base class for all Crabby Bird errors."""

    code = "error"


class NotFound(CrabbyError):
    """No player record matches the given username."""

    code = "not_found"

    def __init__(self, username: str):
        super().__init__(f"Player not found: {username}")
        self.username = username


class InvalidUsername(CrabbyError, ValueError):
    code = "invalid_username"


class PersistenceError(CrabbyError):
    """The persistence service could not be reached or answered badly."""

    code = "bad_request"
