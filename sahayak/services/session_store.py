"""
Sahayak — Session Store
In-memory store for conversation contexts, keyed by session_id.

The store is an explicit handle: whoever needs sessions is given one, there is
no module-level registry. It also hands out one asyncio.Lock per session so
turns of the same session are processed one at a time while different
sessions proceed in parallel.

Locks exist only for known sessions and go away with their context. Contexts
idle past the retention window are pruned when new sessions are allocated.

Resets on process restart.
"""

import asyncio
from typing import Callable

from sahayak.errors import SessionNotFoundError
from sahayak.models.conversation import ConversationContext
from sahayak.utils.logger import logger


class SessionStore:
    """Holds live ConversationContext instances and per-session locks."""

    def __init__(self):
        self._contexts: dict[str, ConversationContext] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, session_id: str) -> ConversationContext | None:
        return self._contexts.get(session_id)

    def put(self, context: ConversationContext) -> None:
        self._contexts[context.session_id] = context

    def discard(self, session_id: str) -> ConversationContext | None:
        """Drop a context instance (expiry, pruning or admin tools)."""
        removed = self._contexts.pop(session_id, None)
        lock = self._locks.get(session_id)
        # A held lock stays: the holder may be renewing this very session.
        if lock is not None and not lock.locked():
            del self._locks[session_id]
        if removed is not None:
            logger.debug(f"🗑️ Context discarded for session {session_id}")
        return removed

    def lock(self, session_id: str) -> asyncio.Lock:
        """Serialisation slot for one session's turns. Unknown ids raise SessionNotFoundError."""
        if session_id not in self._contexts and session_id not in self._locks:
            raise SessionNotFoundError(session_id)
        return self._locks.setdefault(session_id, asyncio.Lock())

    def prune(self, is_stale: Callable[[ConversationContext], bool]) -> int:
        """Discard every stale context that no turn is working on."""
        stale = [
            sid for sid, context in self._contexts.items()
            if is_stale(context) and not (sid in self._locks and self._locks[sid].locked())
        ]
        for sid in stale:
            self.discard(sid)
        if stale:
            logger.info(f"🧹 Pruned {len(stale)} idle sessions")
        return len(stale)

    def session_ids(self) -> list[str]:
        return list(self._contexts)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)
