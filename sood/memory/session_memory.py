import asyncio
import weakref
from dataclasses import dataclass, asdict


@dataclass
class ChatMessage:
    role: str    # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> dict:
        return asdict(self)


class SessionMemory:
    """In-memory conversation history keyed by session id (not persistent).

    Each session keeps at most ``max_turns`` messages; older ones are dropped
    first. Callers that read, call out, then write back must hold
    ``lock(session_id)`` for the whole sequence.
    """

    def __init__(self, max_turns: int = 10):
        self._sessions: dict[str, list[ChatMessage]] = {}
        # A lock lives as long as some coroutine holds or awaits it
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._max = max_turns

    @property
    def max_turns(self) -> int:
        return self._max

    def lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def get_history(self, session_id: str) -> list[ChatMessage]:
        return list(self._sessions.get(session_id, []))

    def reset(self, session_id: str) -> None:
        self._sessions[session_id] = []

    def replace(self, session_id: str, messages: list[ChatMessage]) -> None:
        self._sessions[session_id] = list(messages)[-self._max:]

    def add(self, session_id: str, *messages: ChatMessage) -> list[ChatMessage]:
        history = self._sessions.get(session_id, []) + list(messages)
        # Trim old messages if over limit (keep most recent)
        self._sessions[session_id] = history[-self._max:]
        return list(self._sessions[session_id])

    def clear(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
