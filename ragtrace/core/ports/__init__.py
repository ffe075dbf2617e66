"""Ports: the collaborator interfaces the pipeline depends on."""

from .embedding_port import EmbeddingPort
from .llm_port import LLMPort
from .retrieval_port import RetrievalPort
from .run_store_port import RunStorePort
from .tool_port import ToolPort

__all__ = ["EmbeddingPort", "LLMPort", "RetrievalPort", "RunStorePort", "ToolPort"]
