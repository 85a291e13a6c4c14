"""Unit tests for ConversationManager."""

import pytest
from fakes import ScriptedClient, text

from opencoder_server.capabilities import (
    CapabilityCatalog,
    CapabilityDispatcher,
    SessionRegistry,
)
from opencoder_server.errors import TurnInProgress
from opencoder_server.orchestration import TurnState
from opencoder_server.services import ConversationManager


@pytest.fixture
def clients():
    """Completion clients created by the manager, keyed by model."""
    return {}


@pytest.fixture
def manager(clients):
    """Create a ConversationManager with scripted completion clients."""
    catalog = CapabilityCatalog()
    registry = SessionRegistry()

    def client_factory(model):
        client = ScriptedClient([[text("one")], [text("two")]])
        clients[model] = client
        return client

    return ConversationManager(
        client_factory=client_factory,
        catalog=catalog,
        dispatcher=CapabilityDispatcher(registry, catalog),
        default_model="llama3.2:latest",
        default_system_prompt="Default prompt.",
        capability_timeout=3.0,
        max_rounds=4,
    )


def test_create_uses_defaults(manager, clients):
    conversation = manager.create()

    assert len(conversation.conversation_id) == 10
    assert conversation.model == "llama3.2:latest"
    assert conversation.state.messages[0].content == "Default prompt."
    assert conversation.orchestrator.state == TurnState.IDLE
    assert conversation.orchestrator.capability_timeout == 3.0
    assert conversation.orchestrator.max_rounds == 4
    assert "llama3.2:latest" in clients


def test_create_with_prompt_and_model(manager, clients):
    conversation = manager.create(system_prompt="Be terse.", model="qwen3:8b")

    assert conversation.model == "qwen3:8b"
    assert conversation.state.system_prompt == "Be terse."
    assert conversation.orchestrator.client is clients["qwen3:8b"]


def test_conversations_share_catalog_and_dispatcher(manager):
    first = manager.create()
    second = manager.create()

    assert first.conversation_id != second.conversation_id
    assert first.orchestrator.catalog is second.orchestrator.catalog
    assert first.orchestrator.dispatcher is second.orchestrator.dispatcher
    assert first.state is not second.state


def test_list_and_get(manager):
    first = manager.create()
    second = manager.create()

    listed = manager.list()

    assert len(manager) == 2
    assert {c.conversation_id for c in listed} == {
        first.conversation_id,
        second.conversation_id,
    }
    assert manager.get(first.conversation_id) is first


def test_get_unknown_raises_key_error(manager):
    with pytest.raises(KeyError):
        manager.get("missing")


def test_delete(manager):
    conversation = manager.create()

    manager.delete(conversation.conversation_id)

    assert len(manager) == 0
    with pytest.raises(KeyError):
        manager.delete(conversation.conversation_id)


@pytest.mark.asyncio
async def test_reset_clears_transcript(manager):
    conversation = manager.create()
    await conversation.orchestrator.run_turn("hello")
    assert len(conversation.state) == 3

    manager.reset(conversation.conversation_id)

    assert len(conversation.state) == 1
    assert conversation.orchestrator.state == TurnState.IDLE


@pytest.mark.asyncio
async def test_reset_during_turn_raises(manager):
    conversation = manager.create()
    events = conversation.orchestrator.submit_utterance("hello")
    await events.__anext__()

    with pytest.raises(TurnInProgress):
        manager.reset(conversation.conversation_id)

    await events.aclose()
    manager.reset(conversation.conversation_id)
    assert len(conversation.state) == 1
