"""Adapters - I/O implementations of ports."""

from .firestore import FirestoreAdapter, AuthenticationError
from .file_store import FileTaskStore
from .azure_openai import AzureOpenAIService, LLMError

__all__ = [
    "FirestoreAdapter",
    "AuthenticationError",
    "FileTaskStore",
    "AzureOpenAIService",
    "LLMError",
]
