"""The tool agents use to hand control to another agent."""

from __future__ import annotations

from llm.base_llm import FunctionDeclaration

from .function_tool import FunctionTool


def transfer_to_agent(agent_name: str, tool_context) -> None:
    """Transfer the question to another agent.

    Use this tool to hand off control to another agent that is more suitable
    to answer the user's question according to the agent's description.

    Args:
        agent_name: the agent name to transfer to.
    """
    tool_context.actions.transfer_to_agent = agent_name


class TransferToAgentTool(FunctionTool):
    """transfer_to_agent, with the parameter restricted to the valid targets."""

    def __init__(self, agent_names: list[str]):
        super().__init__(transfer_to_agent)
        self.agent_names = list(agent_names)

    def get_declaration(self) -> FunctionDeclaration:
        declaration = super().get_declaration()
        properties = declaration.parameters.setdefault("properties", {})
        properties.setdefault("agent_name", {"type": "string"})["enum"] = self.agent_names
        return declaration
