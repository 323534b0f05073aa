"""Network layer: per-connection sessions and the connection matchmaker.

Usage:
    from connectfive.server import Matchmaker

    with Matchmaker(config) as mm:
        mm.serve_forever()
"""

from .matchmaker import Matchmaker
from .session import PlayerSession, SessionState

__all__ = [
    "Matchmaker",
    "PlayerSession",
    "SessionState",
]
