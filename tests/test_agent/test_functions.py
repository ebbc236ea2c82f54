"""Tests for the function-call dispatcher."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from agent.functions import (
    find_matching_function_call,
    generate_auth_event,
    generate_request_confirmation_event,
    get_long_running_function_calls,
    handle_function_calls,
    merge_parallel_function_response_events,
    populate_client_function_call_id,
    remove_client_function_call_id,
)
from core.exceptions import ConfigurationError, PluginExecutionError
from core.models import Content, Event, EventActions, Part, ToolConfirmation
from tools.function_tool import FunctionTool
from tools.long_running_tool import LongRunningFunctionTool

from helpers import MockAgent, RecordingPlugin, make_context


def get_weather(city: str) -> dict:
    return {"city": city, "forecast": "sunny"}


def get_time(city: str) -> str:
    return "12:00"


def explode(city: str) -> dict:
    raise RuntimeError("boom")


class Forecast(BaseModel):
    city: str
    high: int


def get_forecast(city: str) -> Forecast:
    return Forecast(city=city, high=25)


def remember(city: str, tool_context) -> dict:
    tool_context.state["last_city"] = city
    return {"ok": True}


def start_job(name: str) -> None:
    return None


TOOLS = {
    tool.name: tool
    for tool in [
        FunctionTool(get_weather),
        FunctionTool(get_time),
        FunctionTool(explode),
        FunctionTool(get_forecast),
        FunctionTool(remember),
        LongRunningFunctionTool(start_job),
    ]
}


def _call_event(*calls: tuple[str, dict, str]) -> Event:
    return Event(
        invocation_id="e-test",
        author="root_agent",
        content=Content(
            role="model",
            parts=[Part.from_function_call(name, args, id=call_id) for name, args, call_id in calls],
        ),
    )


@pytest.fixture
def ctx():
    return make_context(MockAgent("root_agent"))


class TestClientFunctionCallIds:
    """Tests for client-side id management."""

    def test_populate_only_missing(self):
        content = Content(
            role="model",
            parts=[Part.from_function_call("a", {}), Part.from_function_call("b", {}, id="model-id")],
        )

        populate_client_function_call_id(content)

        assert content.parts[0].function_call.id.startswith("client-")
        assert content.parts[1].function_call.id == "model-id"

    def test_remove_only_client_ids(self):
        """Test that model-issued ids survive and client ids are stripped."""
        content = Content(
            role="model",
            parts=[
                Part.from_function_call("a", {}, id="client-123"),
                Part.from_function_call("b", {}, id="model-id"),
                Part.from_function_response("a", {}, id="client-123"),
            ],
        )

        remove_client_function_call_id(content)

        assert content.parts[0].function_call.id is None
        assert content.parts[1].function_call.id == "model-id"
        assert content.parts[2].function_response.id is None

    def test_none_content(self):
        populate_client_function_call_id(None)
        remove_client_function_call_id(None)


class TestLookups:
    """Tests for call lookups."""

    def test_long_running_ids(self):
        event = _call_event(("start_job", {}, "c1"), ("get_weather", {}, "c2"), ("unknown", {}, "c3"))

        assert get_long_running_function_calls(event.get_function_calls(), TOOLS) == {"c1"}

    def test_find_matching_function_call_most_recent(self):
        """Test that the search runs from the newest event backward."""
        old = _call_event(("get_weather", {"city": "a"}, "c1"))
        new = _call_event(("get_weather", {"city": "b"}, "c1"))

        event, call = find_matching_function_call([old, new], "c1")

        assert event is new
        assert call.args == {"city": "b"}

    def test_find_matching_function_call_missing(self):
        assert find_matching_function_call([_call_event(("a", {}, "c1"))], "c2") is None


class TestMergeParallelResponses:
    """Tests for merge_parallel_function_response_events."""

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="No function response events provided."):
            merge_parallel_function_response_events([])

    def test_single_returned_unchanged(self):
        event = Event(author="root_agent")
        assert merge_parallel_function_response_events([event]) is event

    def test_merges_parts_and_actions(self):
        """Test that parts keep their order and actions are merged."""
        first = Event(
            invocation_id="e-1",
            author="root_agent",
            branch="child",
            content=Content(role="user", parts=[Part.from_function_response("a", {"v": 1}, id="1")]),
            actions=EventActions(state_delta={"x": 1}),
        )
        second = Event(
            invocation_id="e-1",
            author="root_agent",
            content=Content(role="user", parts=[Part.from_function_response("b", {"v": 2}, id="2")]),
            actions=EventActions(state_delta={"y": 2}, skip_summarization=True),
        )

        merged = merge_parallel_function_response_events([first, second])

        assert [r.name for r in merged.get_function_responses()] == ["a", "b"]
        assert merged.actions.state_delta == {"x": 1, "y": 2}
        assert merged.actions.skip_summarization is True
        assert merged.invocation_id == "e-1"
        assert merged.branch == "child"
        assert merged.timestamp == first.timestamp
        assert merged.content.role == "user"
        assert merged.id != first.id


class TestHandleFunctionCalls:
    """Tests for handle_function_calls."""

    @pytest.mark.asyncio
    async def test_single_call(self, ctx):
        """Test one call producing one response event."""
        event = await handle_function_calls(ctx, _call_event(("get_weather", {"city": "Paris"}, "c1")), TOOLS)

        response = event.get_function_responses()[0]
        assert response.id == "c1"
        assert response.name == "get_weather"
        assert response.response == {"city": "Paris", "forecast": "sunny"}
        assert event.author == "root_agent"
        assert event.content.role == "user"
        assert event.invocation_id == "e-test"

    @pytest.mark.asyncio
    async def test_failing_call_does_not_abort_batch(self, ctx):
        """Test that the 2nd of 3 calls failing still yields 3 responses."""
        event = await handle_function_calls(
            ctx,
            _call_event(
                ("get_weather", {"city": "Paris"}, "c1"),
                ("explode", {"city": "Paris"}, "c2"),
                ("get_time", {"city": "Paris"}, "c3"),
            ),
            TOOLS,
        )

        responses = event.get_function_responses()
        assert [r.id for r in responses] == ["c1", "c2", "c3"]
        assert responses[0].response == {"city": "Paris", "forecast": "sunny"}
        assert responses[1].response == {"error": "Tool execution failed: boom"}
        assert responses[2].response == {"result": "12:00"}

    @pytest.mark.asyncio
    async def test_on_tool_error_recovers(self):
        """Test that a plugin can answer for a failed tool."""
        plugin = RecordingPlugin(returns={"on_tool_error": {"fallback": True}})
        ctx = make_context(MockAgent("root_agent"), plugins=[plugin])

        event = await handle_function_calls(ctx, _call_event(("explode", {"city": "x"}, "c1")), TOOLS)

        assert event.get_function_responses()[0].response == {"fallback": True}
        _, kwargs = plugin.calls[1]
        assert plugin.calls[1][0] == "on_tool_error"
        assert isinstance(kwargs["error"], RuntimeError)

    @pytest.mark.asyncio
    async def test_unknown_tool(self, ctx):
        with pytest.raises(ConfigurationError, match="Function missing is not found"):
            await handle_function_calls(ctx, _call_event(("missing", {}, "c1")), TOOLS)

    @pytest.mark.asyncio
    async def test_normalization(self, ctx):
        """Test that models are dumped and scalars wrapped."""
        event = await handle_function_calls(
            ctx,
            _call_event(("get_forecast", {"city": "Oslo"}, "c1"), ("get_time", {"city": "Oslo"}, "c2")),
            TOOLS,
        )

        responses = event.get_function_responses()
        assert responses[0].response == {"city": "Oslo", "high": 25}
        assert responses[1].response == {"result": "12:00"}

    @pytest.mark.asyncio
    async def test_before_tool_plugin_skips_tool(self):
        """Test that a plugin answer replaces the execution and agent callbacks."""
        plugin = RecordingPlugin(returns={"before_tool": {"mocked": True}})
        ctx = make_context(MockAgent("root_agent"), plugins=[plugin])
        callback = MagicMock(return_value=None)

        event = await handle_function_calls(
            ctx, _call_event(("explode", {"city": "x"}, "c1")), TOOLS, before_tool_callbacks=[callback]
        )

        assert event.get_function_responses()[0].response == {"mocked": True}
        assert "on_tool_error" not in plugin.hook_names
        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_agent_callbacks(self, ctx):
        """Test agent-level before and after tool callbacks."""
        seen = {}

        def before(*, tool, args, tool_context):
            seen["before"] = (tool.name, args, tool_context.function_call_id)
            return None

        def after(*, tool, args, tool_context, tool_response):
            return {**tool_response, "checked": True}

        event = await handle_function_calls(
            ctx,
            _call_event(("get_weather", {"city": "Rome"}, "c1")),
            TOOLS,
            before_tool_callbacks=[before],
            after_tool_callbacks=[after],
        )

        assert seen["before"] == ("get_weather", {"city": "Rome"}, "c1")
        assert event.get_function_responses()[0].response == {
            "city": "Rome",
            "forecast": "sunny",
            "checked": True,
        }

    @pytest.mark.asyncio
    async def test_after_tool_plugin_wins_over_callback(self):
        """Test that the plugin after_tool answer skips agent callbacks."""
        plugin = RecordingPlugin(returns={"after_tool": {"replaced": True}})
        ctx = make_context(MockAgent("root_agent"), plugins=[plugin])
        after = MagicMock(return_value={"ignored": True})

        event = await handle_function_calls(
            ctx, _call_event(("get_weather", {"city": "a"}, "c1")), TOOLS, after_tool_callbacks=[after]
        )

        assert event.get_function_responses()[0].response == {"replaced": True}
        after.assert_not_called()
        assert plugin.calls[1][1]["result"] == {"city": "a", "forecast": "sunny"}

    @pytest.mark.asyncio
    async def test_filters(self, ctx):
        """Test that only allow-listed calls run."""
        event = await handle_function_calls(
            ctx,
            _call_event(("get_weather", {"city": "a"}, "c1"), ("get_time", {"city": "a"}, "c2")),
            TOOLS,
            filters={"c2"},
        )

        assert [r.id for r in event.get_function_responses()] == ["c2"]

    @pytest.mark.asyncio
    async def test_filters_match_nothing(self, ctx):
        result = await handle_function_calls(
            ctx, _call_event(("get_weather", {"city": "a"}, "c1")), TOOLS, filters={"other"}
        )
        assert result is None

    @pytest.mark.asyncio
    async def test_long_running_none_produces_no_event(self, ctx):
        """Test that a long-running tool returning None has no response."""
        result = await handle_function_calls(ctx, _call_event(("start_job", {"name": "x"}, "c1")), TOOLS)

        assert result is None

    @pytest.mark.asyncio
    async def test_long_running_skipped_in_batch(self, ctx):
        """Test that the other calls of the batch still respond."""
        event = await handle_function_calls(
            ctx,
            _call_event(("start_job", {"name": "x"}, "c1"), ("get_time", {"city": "a"}, "c2")),
            TOOLS,
        )

        assert [r.id for r in event.get_function_responses()] == ["c2"]

    @pytest.mark.asyncio
    async def test_tool_state_lands_in_actions(self, ctx):
        """Test that ToolContext writes become the event's actions."""
        event = await handle_function_calls(ctx, _call_event(("remember", {"city": "Lima"}, "c1")), TOOLS)

        assert event.actions.state_delta == {"last_city": "Lima"}

    @pytest.mark.asyncio
    async def test_tool_confirmation_attached(self, ctx):
        """Test that confirmations reach the matching tool context only."""
        seen = {}

        def before(*, tool, args, tool_context):
            seen[tool_context.function_call_id] = tool_context.tool_confirmation
            return None

        confirmation = ToolConfirmation(confirmed=True)
        await handle_function_calls(
            ctx,
            _call_event(("get_weather", {"city": "a"}, "c1"), ("get_time", {"city": "a"}, "c2")),
            TOOLS,
            before_tool_callbacks=[before],
            tool_confirmations={"c1": confirmation},
        )

        assert seen == {"c1": confirmation, "c2": None}

    @pytest.mark.asyncio
    async def test_plugin_error_propagates(self):
        """Test that a raising plugin aborts the dispatch."""
        plugin = RecordingPlugin()
        plugin.before_tool = AsyncMock(side_effect=ValueError("plugin broke"))
        ctx = make_context(MockAgent("root_agent"), plugins=[plugin])

        with pytest.raises(PluginExecutionError):
            await handle_function_calls(ctx, _call_event(("get_weather", {"city": "a"}, "c1")), TOOLS)


class TestClientRequestEvents:
    """Tests for auth and confirmation request events."""

    def test_no_requests(self, ctx):
        response_event = Event(author="root_agent")

        assert generate_auth_event(ctx, response_event) is None
        assert generate_request_confirmation_event(ctx, _call_event(), response_event) is None

    def test_auth_event(self, ctx):
        """Test one request_credential call per requested config."""
        response_event = Event(
            author="root_agent",
            actions=EventActions(requested_auth_configs={"c1": {"scheme": "oauth2"}}),
        )

        event = generate_auth_event(ctx, response_event)

        call = event.get_function_calls()[0]
        assert call.name == "request_credential"
        assert call.args == {"functionCallId": "c1", "authConfig": {"scheme": "oauth2"}}
        assert call.id.startswith("client-")
        assert event.long_running_tool_ids == {call.id}
        assert event.content.role == "model"
        assert event.is_final_response()

    def test_confirmation_event(self, ctx):
        """Test that the request carries the original call and the hint."""
        call_event = _call_event(("get_weather", {"city": "a"}, "c1"))
        response_event = Event(
            author="root_agent",
            actions=EventActions(
                requested_tool_confirmations={"c1": ToolConfirmation(hint="Approve?")}
            ),
        )

        event = generate_request_confirmation_event(ctx, call_event, response_event)

        call = event.get_function_calls()[0]
        assert call.name == "request_confirmation"
        assert call.args["originalFunctionCall"] == {
            "id": "c1",
            "name": "get_weather",
            "args": {"city": "a"},
        }
        assert call.args["toolConfirmation"]["hint"] == "Approve?"
        assert call.args["toolConfirmation"]["confirmed"] is False
        assert event.long_running_tool_ids == {call.id}

    def test_confirmation_for_unknown_call_skipped(self, ctx):
        response_event = Event(
            author="root_agent",
            actions=EventActions(requested_tool_confirmations={"zz": ToolConfirmation()}),
        )

        assert generate_request_confirmation_event(ctx, _call_event(), response_event) is None
