"""Tools agents can offer to the model.

BaseTool is the contract; FunctionTool wraps plain functions and derives the
parameter schema from their signature.
"""

from .base_tool import BaseTool
from .function_tool import FunctionTool
from .long_running_tool import LongRunningFunctionTool
from .transfer_to_agent import TransferToAgentTool, transfer_to_agent

__all__ = [
    "BaseTool",
    "FunctionTool",
    "LongRunningFunctionTool",
    "TransferToAgentTool",
    "transfer_to_agent",
]
