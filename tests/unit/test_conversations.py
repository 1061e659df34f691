"""Tests for core/conversations.py."""

from __future__ import annotations

import pytest

from cadre.core.conversations import ConversationStore
from cadre.core.errors import NotFoundError
from cadre.models.conversation import AssistantTurn, UserTurn
from cadre.models.task import ToolCall


class TestConversationStore:
    def test_resolve_generates_id(self, conversation_store: ConversationStore):
        conversation = conversation_store.resolve(None, "agent-1")
        assert conversation.id
        assert conversation.agent_id == "agent-1"
        assert conversation.id in conversation_store

    def test_resolve_reuses_existing(self, conversation_store: ConversationStore):
        first = conversation_store.resolve("conv", "agent-1")
        second = conversation_store.resolve("conv", "agent-2")
        assert first is second
        assert second.agent_id == "agent-1"

    def test_append_exchange_order(self, conversation_store: ConversationStore):
        conversation_store.resolve("conv", "agent-1")
        calls = [ToolCall(tool="echo", result={"success": True})]
        conversation_store.append_exchange("conv", "first task", "first answer", calls)
        conversation_store.append_exchange("conv", "second task", "second answer")

        turns = conversation_store.get("conv").turns
        assert [type(t) for t in turns] == [UserTurn, AssistantTurn, UserTurn, AssistantTurn]
        assert [t.content for t in turns] == ["first task", "first answer", "second task", "second answer"]
        assert turns[1].tool_calls[0].tool == "echo"
        assert turns[3].tool_calls == []

    def test_append_unknown_raises(self, conversation_store: ConversationStore):
        with pytest.raises(NotFoundError):
            conversation_store.append_exchange("missing", "t", "r")

    def test_get_unknown_raises(self, conversation_store: ConversationStore):
        with pytest.raises(NotFoundError):
            conversation_store.get("missing")

    def test_for_agent(self, conversation_store: ConversationStore):
        conversation_store.resolve("a", "agent-1")
        conversation_store.resolve("b", "agent-2")
        conversation_store.resolve("c", "agent-1")
        assert {c.id for c in conversation_store.for_agent("agent-1")} == {"a", "c"}
        assert len(conversation_store) == 3
