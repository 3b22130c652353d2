"""Quiz domain services: shuffling, scoring, sessions and the leaderboard.

This package contains the quiz logic imported by HTTP routes and socket
handlers, keeping transport concerns separated from session mechanics.
"""

from .shuffle import secure_shuffle
from .scoring import ScoreResult, score_answers
from .leaderboard import (
    LatestSnapshotChannel,
    LeaderboardBroadcaster,
    SocketIOChannel,
    clamp_limit,
    list_entries,
    stream_frames,
)
from .sessions import SessionManager

__all__ = [
    'secure_shuffle',
    'ScoreResult',
    'score_answers',
    'LatestSnapshotChannel',
    'LeaderboardBroadcaster',
    'SocketIOChannel',
    'clamp_limit',
    'list_entries',
    'stream_frames',
    'SessionManager',
]
