"""Fakes shared by the test suite."""

from typing import Any, AsyncGenerator

from agent.base_agent import BaseAgent
from agent.invocation_context import InvocationContext
from config.run_config import RunConfig
from core.models import Content, Event, Part, Session
from core.sessions import InMemorySessionService
from llm.base_llm import BaseLlm, LlmRequest, LlmResponse
from plugins.base_plugin import HOOK_NAMES, BasePlugin
from plugins.manager import PluginManager


def text_response(text: str) -> LlmResponse:
    return LlmResponse(content=Content(role="model", parts=[Part.from_text(text)]))


def function_call_response(*calls: tuple[str, dict[str, Any]]) -> LlmResponse:
    """Model response asking for one or more function calls, without ids."""
    return LlmResponse(
        content=Content(
            role="model",
            parts=[Part.from_function_call(name, args) for name, args in calls],
        )
    )


class MockLlm(BaseLlm):
    """Replays scripted responses, one per model call.

    An Exception in the script is raised instead of returned.
    """

    def __init__(self, responses: list[LlmResponse | Exception], model: str = "mock-model"):
        super().__init__(model)
        self.responses = list(responses)
        self.requests: list[LlmRequest] = []

    async def generate_content_async(
        self, llm_request: LlmRequest, stream: bool = False
    ) -> AsyncGenerator[LlmResponse, None]:
        self.requests.append(llm_request)
        if not self.responses:
            raise AssertionError("MockLlm has no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        yield response


class MockAgent(BaseAgent):
    """Agent that answers every turn with a fixed text."""

    def __init__(self, name: str, text: str = "Test response", **kwargs: Any):
        super().__init__(name=name, **kwargs)
        self.text = text
        self.runs = 0

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        self.runs += 1
        yield Event(
            invocation_id=ctx.invocation_id,
            author=self.name,
            branch=ctx.branch,
            content=Content(role="model", parts=[Part.from_text(self.text)]),
        )


class RecordingPlugin(BasePlugin):
    """Records every hook call; returns a canned value for selected hooks."""

    def __init__(self, name: str = "recorder", returns: dict[str, Any] | None = None):
        super().__init__(name)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.returns = returns or {}
        for hook_name in HOOK_NAMES:
            setattr(self, hook_name, self._make_hook(hook_name))

    def _make_hook(self, hook_name: str):
        async def hook(**kwargs: Any) -> Any:
            self.calls.append((hook_name, kwargs))
            return self.returns.get(hook_name)

        return hook

    @property
    def hook_names(self) -> list[str]:
        return [name for name, _ in self.calls]


def make_context(
    agent: BaseAgent,
    plugins: list[BasePlugin] | None = None,
    session: Session | None = None,
    run_config: RunConfig | None = None,
    invocation_id: str = "e-test",
) -> InvocationContext:
    """Build an invocation context outside of a runner."""
    return InvocationContext(
        invocation_id=invocation_id,
        session=session or Session(id="s1", app_name="test_app", user_id="u1"),
        agent=agent,
        plugin_manager=PluginManager(plugins),
        session_service=InMemorySessionService(),
        run_config=run_config or RunConfig(),
    )


def user_text(text: str) -> Content:
    return Content.from_text(text, role="user")


async def run_turn(
    runner, message: Content, session_id: str = "s1", user_id: str = "u1", **kwargs: Any
) -> list[Event]:
    """Drain one runner turn into a list."""
    return [
        event
        async for event in runner.run_async(
            user_id=user_id, session_id=session_id, new_message=message, **kwargs
        )
    ]
