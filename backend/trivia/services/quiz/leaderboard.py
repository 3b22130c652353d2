"""Leaderboard ranking and live fan-out.

Ranking is score desc, then time taken asc, then submission time asc, so
among equal scores the faster and then the earlier attempt wins.

Live delivery goes through an explicit registry: each subscriber registers
a channel under a handle, and every successful submit publishes one
snapshot that is handed to every registered channel.
"""

import json
import threading
import uuid
from typing import Any, Dict, List, Optional

from flask import current_app

from trivia import db, socketio
from trivia.models import Player, Submission
from trivia.errors import StorageError
from trivia.repositories import storage_guard

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def clamp_limit(raw, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return max(1, min(value, maximum))


def list_entries(limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
    with storage_guard('fetch leaderboard'):
        rows = (
            db.session.query(Submission, Player.name)
            .join(Player, Player.id == Submission.player_id)
            .order_by(
                Submission.score.desc(),
                Submission.time_taken_ms.asc(),
                Submission.submitted_at.asc(),
                Submission.id.asc(),
            )
            .limit(limit)
            .all()
        )
    return [
        {
            'rank': rank,
            'sessionId': sub.session_id,
            'playerName': name,
            'score': sub.score,
            'totalQuestions': sub.total_questions,
            'timeTakenMs': sub.time_taken_ms,
            'submittedAt': sub.submitted_at,
        }
        for rank, (sub, name) in enumerate(rows, start=1)
    ]


class LatestSnapshotChannel:
    """Latest-value slot for one stream subscriber.

    A slow reader skips intermediate snapshots and always gets the newest.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._latest = None
        self._version = 0
        self._seen = 0
        self._closed = False

    def deliver(self, entries):
        with self._cond:
            if self._closed:
                return
            self._latest = entries
            self._version += 1
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None):
        with self._cond:
            self._cond.wait_for(lambda: self._closed or self._version > self._seen, timeout=timeout)
            if self._closed or self._version == self._seen:
                return None
            self._seen = self._version
            return self._latest

    def close(self):
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self):
        return self._closed


class SocketIOChannel:
    def __init__(self, sid: str, namespace: str = '/ws'):
        self.sid = sid
        self.namespace = namespace

    def deliver(self, entries):
        socketio.emit('leaderboard_update', {'entries': entries}, to=self.sid, namespace=self.namespace)

    def close(self):
        pass


class LeaderboardBroadcaster:
    def __init__(self):
        self._lock = threading.Lock()
        self._channels: Dict[str, Any] = {}

    def subscribe(self, channel, handle: Optional[str] = None) -> str:
        handle = handle or uuid.uuid4().hex
        with self._lock:
            previous = self._channels.get(handle)
            self._channels[handle] = channel
        if previous is not None and previous is not channel:
            previous.close()
        return handle

    def unsubscribe(self, handle: str) -> bool:
        with self._lock:
            channel = self._channels.pop(handle, None)
        if channel is None:
            return False
        channel.close()
        return True

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def publish(self, entries) -> int:
        """Deliver one snapshot to every subscriber; returns deliveries made."""
        with self._lock:
            targets = list(self._channels.items())
        delivered = 0
        for handle, channel in targets:
            try:
                channel.deliver(entries)
                delivered += 1
            except Exception:
                current_app.logger.exception(f"[leaderboard-push] subscriber={handle} failed; dropping")
                self.unsubscribe(handle)
        return delivered


def _frame(entries) -> str:
    return f"data: {json.dumps({'entries': entries})}\n\n"


def stream_frames(broadcaster: LeaderboardBroadcaster, limit: int = DEFAULT_LIMIT, keepalive: float = 15.0):
    """Yield SSE frames: the current board first, then one per published snapshot.

    Subscribing happens before the first read so no update between the two
    can be missed. Closing the generator (client gone) deregisters.
    """
    channel = LatestSnapshotChannel()
    handle = broadcaster.subscribe(channel)
    current_app.logger.info(f"[stream-open] subscriber={handle}")
    try:
        try:
            entries = list_entries(limit)
        except StorageError as exc:
            # Headers are already sent, so report in-band
            current_app.logger.error(f"[stream-error] subscriber={handle} {exc.message}")
            yield f": error {exc.message}\n\n"
            return
        yield _frame(entries)
        while not channel.closed:
            entries = channel.get(timeout=keepalive)
            if entries is None:
                if channel.closed:
                    break
                yield ': keepalive\n\n'
                continue
            yield _frame(entries)
    finally:
        broadcaster.unsubscribe(handle)
        current_app.logger.info(f"[stream-close] subscriber={handle}")
