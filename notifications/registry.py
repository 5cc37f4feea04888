"""
Session registry for the notification push channel.

Maps a user id to the set of websocket sessions (channel names) currently
open for that user. One user may hold several sessions (several tabs); a
session belongs to at most one user. Sessions join once after connecting and
leave on logout or disconnect.

The registry is in-process: it only knows sessions handled by this server
process.
"""

import logging
import threading
from collections import defaultdict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = 'task.notification'


def channel_layer_send(session, message):
    """Deliver ``message`` to one consumer through the channel layer."""
    layer = get_channel_layer()
    if layer is None:
        raise RuntimeError('No channel layer configured')
    async_to_sync(layer.send)(session, {'type': NOTIFICATION_EVENT, 'notification': message})


class RegistryClosed(RuntimeError):
    pass


class SessionRegistry:

    def __init__(self, send=None):
        self._send = send or channel_layer_send
        self._sessions = defaultdict(set)
        self._owners = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def join(self, user_id, session):
        with self._lock:
            if self._closed:
                raise RegistryClosed('Session registry is closed')
            previous = self._owners.get(session)
            if previous is not None and previous != user_id:
                self._discard(previous, session)
            self._owners[session] = user_id
            self._sessions[user_id].add(session)
        logger.info(f"Session {session} joined for user {user_id}")

    def leave(self, session):
        """Remove a session; returns the user it belonged to, or None."""
        with self._lock:
            user_id = self._owners.pop(session, None)
            if user_id is not None:
                self._discard(user_id, session)
        if user_id is not None:
            logger.info(f"Session {session} left for user {user_id}")
        return user_id

    def _discard(self, user_id, session):
        sessions = self._sessions.get(user_id)
        if sessions is None:
            return
        sessions.discard(session)
        if not sessions:
            del self._sessions[user_id]

    def sessions_for(self, user_id):
        with self._lock:
            return frozenset(self._sessions.get(user_id, ()))

    def is_connected(self, user_id):
        return bool(self.sessions_for(user_id))

    def emit(self, user_id, message):
        """
        Push ``message`` to every active session of ``user_id``.

        Best-effort: a user without sessions gets nothing, a failing session is
        logged and skipped. Returns the number of sessions reached.
        """
        if self._closed:
            logger.warning(f"Dropping notification for user {user_id}: registry closed")
            return 0

        delivered = 0
        for session in self.sessions_for(user_id):
            try:
                self._send(session, message)
            except Exception:
                logger.exception(f"Failed to push notification to session {session}")
            else:
                delivered += 1

        if not delivered:
            logger.debug(f"No active session reached for user {user_id}")
        return delivered

    def close(self):
        with self._lock:
            self._closed = True
            self._sessions.clear()
            self._owners.clear()
        logger.info("Session registry closed")
