"""Ports - interfaces/protocols for external dependencies."""

from .task_store import TaskStore
from .llm_service import LLMService

__all__ = [
    "TaskStore",
    "LLMService",
]
