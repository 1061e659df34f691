"""In-memory conversation store. Turns are append-only."""

from __future__ import annotations

import threading
import uuid
from typing import Optional

from ..models.conversation import AssistantTurn, Conversation, UserTurn
from ..models.task import ToolCall
from ..utils.timestamps import now_iso
from .errors import NotFoundError


class ConversationStore:
    def __init__(self):
        self._conversations: dict[str, Conversation] = {}
        self._lock = threading.Lock()

    def resolve(self, conversation_id: Optional[str], agent_id: str) -> Conversation:
        """Return the named conversation, creating it (or a fresh id) if needed."""
        conversation_id = conversation_id or uuid.uuid4().hex
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                conversation = Conversation(
                    id=conversation_id,
                    agent_id=agent_id,
                    created=now_iso(),
                )
                self._conversations[conversation_id] = conversation
            return conversation

    def get(self, conversation_id: str) -> Conversation:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation not found: {conversation_id}")
        return conversation

    def append_exchange(
        self,
        conversation_id: str,
        task: str,
        response: str,
        tool_calls: Optional[list[ToolCall]] = None,
    ) -> None:
        """Append one user turn and one assistant turn as a unit."""
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise NotFoundError(f"Conversation not found: {conversation_id}")
            conversation.turns.append(UserTurn(content=task, timestamp=now_iso()))
            conversation.turns.append(
                AssistantTurn(
                    content=response,
                    tool_calls=list(tool_calls or []),
                    timestamp=now_iso(),
                )
            )

    def for_agent(self, agent_id: str) -> list[Conversation]:
        with self._lock:
            return [c for c in self._conversations.values() if c.agent_id == agent_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    def __contains__(self, conversation_id: str) -> bool:
        with self._lock:
            return conversation_id in self._conversations
