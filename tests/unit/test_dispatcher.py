"""Unit tests for the capability dispatcher."""

import asyncio

import pytest
from fakes import FakeSession

from opencoder_server.capabilities import (
    EMPTY_RESULT,
    CapabilityCatalog,
    CapabilityDispatcher,
    SessionRegistry,
    result_to_text,
)
from opencoder_server.errors import CapabilityExecutionError, CapabilityNotFound


async def _dispatcher(sessions, user_id="tester"):
    registry = SessionRegistry(sessions)
    catalog = CapabilityCatalog()
    await catalog.refresh(registry.sessions)
    return CapabilityDispatcher(registry, catalog, user_id=user_id)


@pytest.mark.asyncio
async def test_dispatch_falls_back_to_next_session():
    """The first failing session is skipped and later sessions are never called."""
    a = FakeSession(
        "a",
        capabilities=[{"name": "run_cmd"}],
        handlers={"run_cmd": RuntimeError("boom")},
    )
    b = FakeSession("b", handlers={"run_cmd": "ok from b"})
    c = FakeSession("c", handlers={"run_cmd": "ok from c"})
    dispatcher = await _dispatcher([a, b, c])

    result = await dispatcher.dispatch("run_cmd", {"command": "ls"})

    assert result == "ok from b"
    assert len(a.calls) == 1
    assert len(b.calls) == 1
    assert c.calls == []


@pytest.mark.asyncio
async def test_dispatch_tries_advertising_sessions_first():
    plain = FakeSession("plain", handlers={"read_file": "from plain"})
    owner = FakeSession(
        "owner",
        capabilities=[{"name": "read_file"}],
        handlers={"read_file": "from owner"},
    )
    dispatcher = await _dispatcher([plain, owner])

    assert [s.name for s in dispatcher.candidates("read_file")] == ["owner", "plain"]
    assert await dispatcher.dispatch("read_file", {}) == "from owner"
    assert plain.calls == []


@pytest.mark.asyncio
async def test_dispatch_not_found_collects_session_errors():
    a = FakeSession("a", handlers={"run_cmd": RuntimeError("permission denied")})
    b = FakeSession("b")
    dispatcher = await _dispatcher([a, b])

    with pytest.raises(CapabilityNotFound) as exc_info:
        await dispatcher.dispatch("run_cmd", {})

    error = exc_info.value
    assert str(error) == "tool run_cmd not found in any connected server"
    assert error.errors["a"] == "permission denied"
    assert "b" in error.errors


@pytest.mark.asyncio
async def test_dispatch_reports_failure_of_advertising_session():
    """A real failure of the advertising session reaches the caller as is."""
    files = FakeSession(
        "files",
        capabilities=[{"name": "read_file"}],
        handlers={"read_file": FileNotFoundError("x.txt does not exist")},
    )
    other = FakeSession("other")
    dispatcher = await _dispatcher([files, other])

    with pytest.raises(CapabilityExecutionError) as exc_info:
        await dispatcher.dispatch("read_file", {"path": "x.txt"})

    assert str(exc_info.value) == "tool read_file failed: x.txt does not exist"
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
    assert len(other.calls) == 1


@pytest.mark.asyncio
async def test_dispatch_keeps_session_execution_error():
    failing = FakeSession(
        "remote",
        capabilities=[{"name": "run_cmd"}],
        handlers={"run_cmd": CapabilityExecutionError("run_cmd", "exit status 2")},
    )
    dispatcher = await _dispatcher([failing])

    with pytest.raises(CapabilityExecutionError) as exc_info:
        await dispatcher.dispatch("run_cmd", {})

    assert str(exc_info.value) == "tool run_cmd failed: exit status 2"


@pytest.mark.asyncio
async def test_dispatch_not_found_when_owner_does_not_know_the_name():
    stale = FakeSession("stale", capabilities=[{"name": "old_tool"}])
    dispatcher = await _dispatcher([stale])

    with pytest.raises(CapabilityNotFound):
        await dispatcher.dispatch("old_tool", {})


@pytest.mark.asyncio
async def test_dispatch_with_no_sessions_raises_not_found():
    dispatcher = await _dispatcher([])

    with pytest.raises(CapabilityNotFound):
        await dispatcher.dispatch("anything", {})


@pytest.mark.asyncio
async def test_dispatch_injects_user_id_without_mutating_arguments():
    session = FakeSession("s", handlers={"whoami": lambda args: args["uid"]})
    dispatcher = await _dispatcher([session], user_id="alice")
    arguments = {"verbose": True}

    result = await dispatcher.dispatch("whoami", arguments)

    assert result == "alice"
    assert arguments == {"verbose": True}
    assert session.calls == [("whoami", {"verbose": True, "uid": "alice"})]


@pytest.mark.asyncio
async def test_dispatch_overrides_model_supplied_user_id():
    session = FakeSession("s", handlers={"whoami": lambda args: args["uid"]})
    dispatcher = await _dispatcher([session], user_id="alice")

    assert await dispatcher.dispatch("whoami", {"uid": "mallory"}) == "alice"


@pytest.mark.asyncio
async def test_dispatch_without_user_id_leaves_arguments_alone():
    session = FakeSession("s", handlers={"echo": lambda args: args})
    dispatcher = await _dispatcher([session], user_id=None)

    await dispatcher.dispatch("echo", {"x": 1})

    assert session.calls == [("echo", {"x": 1})]


@pytest.mark.asyncio
async def test_dispatch_timeout_raises_execution_error():
    async def slow(args):
        await asyncio.sleep(5)
        return "late"

    session = FakeSession("s", handlers={"slow": slow})
    dispatcher = await _dispatcher([session])

    with pytest.raises(CapabilityExecutionError) as exc_info:
        await dispatcher.dispatch("slow", {}, timeout=0.05)

    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_dispatch_renders_structured_results():
    session = FakeSession(
        "s",
        handlers={
            "listing": {"content": [{"type": "text", "text": "a.txt"}]},
            "nothing": None,
        },
    )
    dispatcher = await _dispatcher([session])

    assert await dispatcher.dispatch("listing", {}) == "a.txt"
    assert await dispatcher.dispatch("nothing", {}) == EMPTY_RESULT


class TestResultToText:
    """Tests for result_to_text."""

    def test_string_passes_through(self):
        assert result_to_text("hello") == "hello"

    def test_none_is_success_note(self):
        assert result_to_text(None) == EMPTY_RESULT

    def test_content_parts_are_joined(self):
        parts = [
            {"type": "text", "text": "line one"},
            {"type": "text", "text": "line two"},
            {"type": "image", "mimeType": "image/png", "data": "..."},
        ]

        assert result_to_text(parts) == "line one\nline two\n[image: image/png]"

    def test_empty_content_document_is_success_note(self):
        assert result_to_text({"content": []}) == EMPTY_RESULT

    def test_other_values_are_json(self):
        assert result_to_text({"exit_code": 0}) == '{"exit_code": 0}'
        assert result_to_text([1, 2]) == "[1, 2]"
        assert result_to_text(42) == "42"
