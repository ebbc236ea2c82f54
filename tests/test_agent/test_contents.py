"""Tests for building request contents from session history."""

import pytest

from agent.contents import build_contents, is_event_in_branch
from core.models import Content, Event, Part


def _event(author: str, *parts: Part, role: str = "model", **kwargs) -> Event:
    return Event(author=author, content=Content(role=role, parts=list(parts)), **kwargs)


class TestIsEventInBranch:
    """Tests for branch visibility."""

    @pytest.mark.parametrize(
        "branch, event_branch, visible",
        [
            (None, None, True),
            (None, "child", True),
            ("child", None, True),
            ("child", "child", True),
            ("child.grandchild", "child", True),
            ("child", "child.grandchild", False),
            ("child", "other", False),
            ("children", "child", False),
        ],
    )
    def test_visibility(self, branch, event_branch, visible):
        event = Event(author="agent", branch=event_branch)
        assert is_event_in_branch(branch, event) is visible


class TestBuildContents:
    """Tests for build_contents."""

    def test_user_and_own_events_kept(self):
        """Test that the agent's own history is passed through as is."""
        events = [
            _event("user", Part.from_text("hi"), role="user"),
            _event("root_agent", Part.from_text("hello")),
        ]

        contents = build_contents(events, "root_agent", None)

        assert [(c.role, c.text) for c in contents] == [("user", "hi"), ("model", "hello")]

    def test_contents_are_copies(self):
        """Test that stripping ids never touches the stored events."""
        event = _event("root_agent", Part.from_function_call("f", {}, id="client-1"))

        contents = build_contents([event], "root_agent", None)

        assert contents[0].parts[0].function_call.id is None
        assert event.content.parts[0].function_call.id == "client-1"

    def test_other_agent_presented_as_context(self):
        """Test that another agent's messages become user-side text."""
        events = [
            _event(
                "billing",
                Part.from_text("Your invoice is ready."),
                Part.from_function_call("lookup", {"id": 7}),
                Part.from_function_response("lookup", {"total": 10}),
            )
        ]

        contents = build_contents(events, "root_agent", None)

        assert contents[0].role == "user"
        assert [p.text for p in contents[0].parts] == [
            "For context:",
            "[billing] said: Your invoice is ready.",
            '[billing] called tool `lookup` with parameters: {"id": 7}',
            '[billing] `lookup` tool returned result: {"total": 10}',
        ]

    def test_other_branches_filtered(self):
        """Test that sibling branches are invisible."""
        events = [
            _event("user", Part.from_text("hi"), role="user"),
            _event("a", Part.from_text("from a"), branch="a"),
            _event("b", Part.from_text("from b"), branch="b"),
        ]

        contents = build_contents(events, "a", "a")

        assert [c.text for c in contents] == ["hi", "from a"]

    def test_partial_and_empty_events_skipped(self):
        events = [
            _event("root_agent", Part.from_text("chunk"), partial=True),
            Event(author="root_agent"),
            _event("root_agent"),
        ]

        assert build_contents(events, "root_agent", None) == []

    def test_client_requests_dropped(self):
        """Test that confirmation and credential traffic never reaches the model."""
        events = [
            _event(
                "root_agent",
                Part.from_function_call("request_confirmation", {}, id="client-1"),
                Part.from_function_call("request_credential", {}, id="client-2"),
            ),
            _event(
                "user",
                Part.from_function_response("request_confirmation", {"confirmed": True}, id="client-1"),
                role="user",
            ),
        ]

        assert build_contents(events, "root_agent", None) == []

    def test_latest_response_per_call_kept(self):
        """Test that an answered-twice call keeps only its latest response."""
        events = [
            _event("root_agent", Part.from_function_call("delete", {}, id="c1")),
            _event(
                "root_agent",
                Part.from_function_response("delete", {"error": "needs confirmation"}, id="c1"),
                role="user",
            ),
            _event(
                "root_agent",
                Part.from_function_response("delete", {"deleted": True}, id="c1"),
                role="user",
            ),
        ]

        contents = build_contents(events, "root_agent", None)

        assert len(contents) == 2
        assert contents[1].parts[0].function_response.response == {"deleted": True}

    def test_model_ids_kept(self):
        """Test that ids issued by the model are preserved."""
        events = [_event("root_agent", Part.from_function_call("f", {}, id="call_abc"))]

        contents = build_contents(events, "root_agent", None)

        assert contents[0].parts[0].function_call.id == "call_abc"
