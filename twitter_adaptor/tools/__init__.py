"""Tool surface for driving the Twitter service from an LLM."""

from .llm_tool_adapter import AdapterEvent, LLMResponse, LLMToolAdapter

__all__ = [
    "AdapterEvent",
    "LLMResponse",
    "LLMToolAdapter",
]
