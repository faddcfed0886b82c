"""
Crabby Bird: a Flappy Bird style arcade game with a score server.
"""

__version__ = "0.1.0"
