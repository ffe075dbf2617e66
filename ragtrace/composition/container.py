"""Composition root wiring adapters to the pipeline."""

from __future__ import annotations

import logging
from functools import lru_cache

from ..adapters.outbound.embedding.gemini_embedding import GeminiEmbeddingAdapter
from ..adapters.outbound.llm.gemini_adapter import GeminiAdapter
from ..adapters.outbound.sqlite_adapter import SQLiteRunStore
from ..adapters.outbound.vector_store.qdrant_adapter import QdrantAdapter
from ..config import settings
from ..core.services.pipeline import AskPipeline, PipelineLimits
from ..core.services.run_recorder import RunRecorder
from ..core.services.tools import SearchDocsTool

logger = logging.getLogger(__name__)


@lru_cache
def get_embedder() -> GeminiEmbeddingAdapter:
    logger.info("Initializing GeminiEmbeddingAdapter (composition root)...")
    return GeminiEmbeddingAdapter(
        api_key=settings.google_api_key,
        model_name=settings.embedding_model,
    )


@lru_cache
def get_retriever() -> QdrantAdapter:
    logger.info("Initializing QdrantAdapter...")
    return QdrantAdapter(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        collection_name=settings.qdrant_collection,
    )


@lru_cache
def get_llm() -> GeminiAdapter:
    logger.info("Initializing GeminiAdapter...")
    return GeminiAdapter(api_key=settings.google_api_key, model=settings.llm_model)


@lru_cache
def get_run_store() -> SQLiteRunStore:
    logger.info("Initializing SQLiteRunStore at %s...", settings.runs_db_path)
    settings.ensure_directories()
    return SQLiteRunStore(settings.runs_db_path)


@lru_cache
def get_pipeline() -> AskPipeline:
    logger.info("Initializing AskPipeline...")
    limits = PipelineLimits(
        default_topk=settings.default_top_k,
        max_topk=settings.max_top_k,
        default_threshold=settings.default_threshold,
        collaborator_timeout=settings.collaborator_timeout_seconds,
        generation_timeout=settings.generation_timeout_seconds,
        max_answer_chars=settings.max_answer_chars,
        max_question_chars=settings.max_question_chars,
    )
    return AskPipeline(
        embedder=get_embedder(),
        retriever=get_retriever(),
        llm=get_llm(),
        recorder=RunRecorder(get_run_store()),
        tool=SearchDocsTool(delay_seconds=settings.tool_delay_ms / 1000),
        limits=limits,
    )
