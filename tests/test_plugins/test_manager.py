"""Tests for the plugin manager."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.exceptions import ConfigurationError, PluginExecutionError
from core.models import Content, Event
from plugins.base_plugin import HOOK_NAMES, BasePlugin
from plugins.manager import PluginManager

from helpers import RecordingPlugin


class TestRegistration:
    """Tests for plugin registration."""

    def test_register_in_order(self):
        """Test that plugins keep their registration order."""
        first, second = BasePlugin("first"), BasePlugin("second")

        manager = PluginManager([first, second])

        assert manager.plugins == [first, second]
        assert len(manager) == 2
        assert manager.get_plugin_count() == 2
        assert manager

    def test_duplicate_name_rejected(self):
        """Test that two plugins cannot share a name."""
        manager = PluginManager([BasePlugin("dup")])

        with pytest.raises(ConfigurationError, match="Plugin with name 'dup' already registered."):
            manager.register_plugin(BasePlugin("dup"))

    def test_duplicate_name_in_constructor(self):
        with pytest.raises(ConfigurationError):
            PluginManager([BasePlugin("dup"), BasePlugin("dup")])

    def test_get_plugin(self):
        """Test looking up plugins by name."""
        plugin = BasePlugin("lookup")
        manager = PluginManager([plugin])

        assert manager.get_plugin("lookup") is plugin
        assert manager.get_plugin("missing") is None

    def test_empty_manager_is_falsy(self):
        assert not PluginManager()


class TestHookDispatch:
    """Tests for running hooks across plugins."""

    @pytest.mark.asyncio
    async def test_base_plugin_hooks_return_none(self):
        """Test that the default hooks are no-ops."""
        manager = PluginManager([BasePlugin("noop")])
        ctx = MagicMock()

        assert await manager.run_before_run(invocation_context=ctx) is None
        assert await manager.run_on_user_message(
            invocation_context=ctx, user_message=Content.from_text("hi")
        ) is None
        assert await manager.run_after_run(invocation_context=ctx) is None

    @pytest.mark.asyncio
    async def test_all_plugins_called_when_none_returns(self):
        """Test that every plugin sees the hook when nobody short-circuits."""
        first, second = RecordingPlugin("first"), RecordingPlugin("second")
        manager = PluginManager([first, second])

        await manager.run_before_run(invocation_context=MagicMock())

        assert first.hook_names == ["before_run"]
        assert second.hook_names == ["before_run"]

    @pytest.mark.asyncio
    async def test_first_result_short_circuits(self):
        """Test that the first non-None result wins and stops the chain."""
        canned = Content.from_text("canned", role="model")
        first = RecordingPlugin("first", returns={"before_run": canned})
        second = RecordingPlugin("second")
        manager = PluginManager([first, second])

        result = await manager.run_before_run(invocation_context=MagicMock())

        assert result is canned
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_kwargs_forwarded(self):
        """Test that hooks receive exactly the documented keyword arguments."""
        plugin = RecordingPlugin()
        manager = PluginManager([plugin])
        tool, ctx = MagicMock(), MagicMock()

        await manager.run_after_tool(
            tool=tool, tool_args={"a": 1}, tool_context=ctx, result={"ok": True}
        )

        name, kwargs = plugin.calls[0]
        assert name == "after_tool"
        assert kwargs == {
            "tool": tool,
            "tool_args": {"a": 1},
            "tool_context": ctx,
            "result": {"ok": True},
        }

    @pytest.mark.asyncio
    async def test_every_runner_maps_to_its_hook(self):
        """Test that each run_* method dispatches the hook of the same name."""
        plugin = RecordingPlugin()
        manager = PluginManager([plugin])
        m = MagicMock()

        await manager.run_on_user_message(invocation_context=m, user_message=m)
        await manager.run_before_run(invocation_context=m)
        await manager.run_on_event(invocation_context=m, event=m)
        await manager.run_after_run(invocation_context=m)
        await manager.run_before_agent(agent=m, callback_context=m)
        await manager.run_after_agent(agent=m, callback_context=m)
        await manager.run_before_model(callback_context=m, llm_request=m)
        await manager.run_after_model(callback_context=m, llm_response=m)
        await manager.run_on_model_error(callback_context=m, llm_request=m, error=m)
        await manager.run_before_tool(tool=m, tool_args={}, tool_context=m)
        await manager.run_after_tool(tool=m, tool_args={}, tool_context=m, result={})
        await manager.run_on_tool_error(tool=m, tool_args={}, tool_context=m, error=m)

        assert plugin.hook_names == list(HOOK_NAMES)

    @pytest.mark.asyncio
    async def test_sync_hook_supported(self):
        """Test that a plain function hook is called without awaiting."""
        plugin = BasePlugin("sync")
        event = Event(author="agent")
        plugin.on_event = MagicMock(return_value=event)
        manager = PluginManager([plugin])

        result = await manager.run_on_event(invocation_context=MagicMock(), event=Event(author="x"))

        assert result is event

    @pytest.mark.asyncio
    async def test_subclass_override(self):
        """Test that overridden methods on a subclass are used."""

        class Replacer(BasePlugin):
            async def on_user_message(self, *, invocation_context, user_message):
                return Content.from_text(user_message.text.upper())

        manager = PluginManager([Replacer("replacer")])

        result = await manager.run_on_user_message(
            invocation_context=MagicMock(), user_message=Content.from_text("hi")
        )

        assert result.text == "HI"


class TestHookErrors:
    """Tests for plugin failures."""

    @pytest.mark.asyncio
    async def test_exception_wrapped(self, caplog):
        """Test that a raising hook becomes a PluginExecutionError."""
        plugin = BasePlugin("broken")
        plugin.before_model = AsyncMock(side_effect=ValueError("bad"))
        later = RecordingPlugin("later")
        manager = PluginManager([plugin, later])

        with caplog.at_level(logging.ERROR, logger="plugins.manager"):
            with pytest.raises(PluginExecutionError) as exc_info:
                await manager.run_before_model(callback_context=MagicMock(), llm_request=MagicMock())

        error = exc_info.value
        assert error.plugin_name == "broken"
        assert error.hook_name == "before_model"
        assert isinstance(error.cause, ValueError)
        assert isinstance(error.__cause__, ValueError)
        assert "Error in plugin 'broken' during 'before_model' callback: bad" in str(error)
        assert "broken" in caplog.text
        assert later.calls == []

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test that a hook exceeding the timeout fails the hook."""

        class Slow(BasePlugin):
            async def before_run(self, *, invocation_context):
                await asyncio.sleep(1)

        manager = PluginManager([Slow("slow")], timeout_s=0.01)

        with pytest.raises(PluginExecutionError) as exc_info:
            await manager.run_before_run(invocation_context=MagicMock())

        assert isinstance(exc_info.value.cause, TimeoutError)
