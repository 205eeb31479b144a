"""
Simple Conversation Memory
=========================

Bounded per-session conversation history.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class ChatMessage:
    """Represents a chat message."""
    user_id: str
    text: str
    timestamp: float
    is_user: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConversationSession:
    """Represents a conversation session."""
    session_id: str
    user_id: str
    messages: List[ChatMessage]
    started_at: float
    last_activity: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class ConversationMemory:
    """Simple conversation memory manager."""

    def __init__(self, max_messages_per_session: int = 50,
                 clock: Callable[[], float] = time.time):
        """Initialize conversation memory."""
        self.max_messages_per_session = max_messages_per_session
        self._clock = clock

        # In-memory storage
        self.sessions: Dict[str, ConversationSession] = {}
        self.user_sessions: Dict[str, List[str]] = defaultdict(list)

    def create_session(self, session_id: str, user_id: str) -> ConversationSession:
        """Create a new conversation session."""
        now = self._clock()
        session = ConversationSession(
            session_id=session_id,
            user_id=user_id,
            messages=[],
            started_at=now,
            last_activity=now
        )

        self.sessions[session_id] = session
        self.user_sessions[user_id].append(session_id)

        return session

    def get_session(self, session_id: str) -> Optional[ConversationSession]:
        """Get conversation session."""
        return self.sessions.get(session_id)

    def add_message(self, session_id: str, text: str, is_user: bool = True,
                    user_id: Optional[str] = None, **metadata) -> ChatMessage:
        """Add message to session, creating the session when missing."""
        session = self.get_session(session_id)
        if not session:
            session = self.create_session(session_id, user_id or session_id)

        message = ChatMessage(
            user_id=user_id or session.user_id,
            text=text,
            timestamp=self._clock(),
            is_user=is_user,
            metadata=metadata
        )
        session.messages.append(message)
        session.last_activity = message.timestamp

        # Trim messages if exceeding limit
        if len(session.messages) > self.max_messages_per_session:
            session.messages = session.messages[-self.max_messages_per_session:]

        return message

    def get_conversation_history(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """Get conversation history for session."""
        session = self.get_session(session_id)
        if not session:
            return []

        messages = session.messages
        if limit:
            messages = messages[-limit:]

        return list(messages)

    def user_messages(self, session_id: str) -> List[str]:
        """Texts of the user's own messages in order."""
        return [m.text for m in self.get_conversation_history(session_id) if m.is_user]

    def clear_session(self, session_id: str) -> None:
        """Drop the messages of a session but keep the session."""
        session = self.get_session(session_id)
        if session:
            session.messages = []

    def remove_session(self, session_id: str) -> bool:
        """Forget a session entirely."""
        session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        owned = self.user_sessions.get(session.user_id, [])
        if session_id in owned:
            owned.remove(session_id)
        if not owned:
            self.user_sessions.pop(session.user_id, None)
        return True

    def __len__(self) -> int:
        return len(self.sessions)
