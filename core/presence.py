#!/usr/bin/env python3
"""
Connection Registry - which users are online and through which sessions.

One user may hold several live sessions (tabs, devices). The registry is
safe to share between threads; callers only ever see frozen snapshots.
"""

import logging
from collections import defaultdict
from threading import Lock
from typing import Any, Dict, FrozenSet, Hashable, Set

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Thread-safe multi-map of user id -> set of opaque session ids."""

    def __init__(self):
        self._sessions: Dict[Any, Set[Hashable]] = defaultdict(set)
        self._lock = Lock()

    def connect(self, user_id: Any, session_id: Hashable) -> None:
        with self._lock:
            self._sessions[user_id].add(session_id)
            count = len(self._sessions[user_id])
        logger.debug(f"User {user_id} connected ({count} sessions)")

    def disconnect(self, user_id: Any, session_id: Hashable) -> bool:
        """Remove one session. Returns False if it was not registered."""
        with self._lock:
            sessions = self._sessions.get(user_id)
            if not sessions or session_id not in sessions:
                return False
            sessions.discard(session_id)
            if not sessions:
                del self._sessions[user_id]
        logger.debug(f"User {user_id} disconnected session {session_id}")
        return True

    def is_online(self, user_id: Any) -> bool:
        with self._lock:
            return bool(self._sessions.get(user_id))

    def sessions_for(self, user_id: Any) -> FrozenSet[Hashable]:
        with self._lock:
            return frozenset(self._sessions.get(user_id, ()))

    def online_users(self) -> FrozenSet[Any]:
        with self._lock:
            return frozenset(self._sessions)
