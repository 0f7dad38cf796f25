"""Reasoning collaborator used for goal decomposition."""

from agentplan.core.llm.base import BaseLLM
from agentplan.core.llm.factory import create_llm

__all__ = ["BaseLLM", "create_llm"]
