"""Model transports for agents.

BaseLlm is the contract the agent loop calls; PydanticAILlm implements it
on top of any pydantic-ai model.
"""

from .base_llm import BaseLlm, FunctionDeclaration, LlmRequest, LlmResponse
from .pydantic_ai_llm import PydanticAILlm, from_model_response, to_model_messages

__all__ = [
    "BaseLlm",
    "FunctionDeclaration",
    "LlmRequest",
    "LlmResponse",
    "PydanticAILlm",
    "to_model_messages",
    "from_model_response",
]
