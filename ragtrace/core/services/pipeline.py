"""Pipeline orchestrator: drives one question through the RAG stages.

States::

    received -> embedding -> retrieving -> no_matches*
                                        -> tool_invoking -> generating -> done*
    (any non-terminal state) -> error*

Every stage reports its progress as step events. Whatever terminal state
is reached, and also when the consumer goes away mid-stream, exactly one
run record is handed to the recorder.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ..domain import HistoryItem, RunRecord, SourceMatch, Step, StepStatus
from ..domain.exceptions import (
    CollaboratorError,
    CollaboratorTimeoutError,
    EmbeddingError,
    EmptyQuestionError,
    LLMGenerationError,
    NonCriticalStageError,
    PersistenceError,
    QuestionTooLongError,
    RagTraceError,
    RetrievalError,
    ToolStageError,
)
from ..domain.utils import normalize_text, strip_bom
from ..ports import EmbeddingPort, LLMPort, RetrievalPort, ToolPort
from .emitter import TraceEmitter
from .params import DEFAULT_THRESHOLD, DEFAULT_TOP_K, MAX_TOP_K, RetrievalParams
from .prompts import NO_MATCH_ANSWER, build_messages
from .run_recorder import RunRecorder
from .run_state import PipelineState, RunState
from .tools import SearchDocsTool

logger = logging.getLogger(__name__)

T = TypeVar("T")

STEP_TITLES: dict[PipelineState, str] = {
    PipelineState.RECEIVED: "Question received",
    PipelineState.EMBEDDING: "Embedding question",
    PipelineState.RETRIEVING: "Retrieving relevant fragments",
    PipelineState.TOOL_INVOKING: "Calling tool",
    PipelineState.GENERATING: "Generating answer",
}

# Wraps non-domain exceptions raised by a collaborator during a stage
_STAGE_ERRORS: dict[PipelineState, type[CollaboratorError]] = {
    PipelineState.EMBEDDING: EmbeddingError,
    PipelineState.RETRIEVING: RetrievalError,
    PipelineState.GENERATING: LLMGenerationError,
}


@dataclass
class AskRequest:
    """Inbound question with optional conversation history and tuning."""

    question: str | None
    history: list[HistoryItem] = field(default_factory=list)
    topk: Any = None
    threshold: Any = None


@dataclass(frozen=True)
class PipelineLimits:
    """Defaults and bounds applied to every run."""

    default_topk: int = DEFAULT_TOP_K
    max_topk: int = MAX_TOP_K
    default_threshold: float = DEFAULT_THRESHOLD
    collaborator_timeout: float | None = 30.0
    generation_timeout: float | None = 120.0
    max_answer_chars: int = 20000
    max_question_chars: int = 4000


def validate_question(question: str | None, max_chars: int = 4000) -> str:
    """Clean the question or reject the request.

    The returned text is the question as asked, minus BOM markers and
    surrounding whitespace. Its NFKC form is only used for the checks.

    Raises:
        EmptyQuestionError: If the question is missing or blank.
        QuestionTooLongError: If it exceeds ``max_chars``.
    """
    asked = strip_bom(question or "").strip()
    folded = normalize_text(asked)
    if not folded:
        raise EmptyQuestionError("Missing question")
    if len(folded) > max_chars:
        raise QuestionTooLongError(
            f"Question exceeds {max_chars} characters",
            context={"length": len(folded)},
        )
    return asked


class AskPipeline:
    """Runs the embed, retrieve, tool and generate stages for one question.

    One instance can serve many concurrent runs: all per-run data lives in
    the ``RunState`` created by ``start``.
    """

    def __init__(
        self,
        embedder: EmbeddingPort,
        retriever: RetrievalPort,
        llm: LLMPort,
        recorder: RunRecorder,
        tool: ToolPort | None = None,
        limits: PipelineLimits | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            embedder: Embedding collaborator.
            retriever: Similarity search collaborator.
            llm: Streaming generation collaborator.
            recorder: Builds and persists the run record.
            tool: Non-critical post-retrieval tool (defaults to searchDocs).
            limits: Parameter defaults, timeouts and size bounds.
        """
        self.embedder = embedder
        self.retriever = retriever
        self.llm = llm
        self.recorder = recorder
        self.tool = tool or SearchDocsTool()
        self.limits = limits or PipelineLimits()
        self._background: set[asyncio.Task] = set()
        self._handlers = {
            PipelineState.RECEIVED: self._receive,
            PipelineState.EMBEDDING: self._embed,
            PipelineState.RETRIEVING: self._retrieve,
            PipelineState.TOOL_INVOKING: self._invoke_tool,
            PipelineState.GENERATING: self._generate,
        }

    def start(self, request: AskRequest) -> RunState:
        """Validate the request and create the state of a new run.

        Raises:
            InputError: If the question is missing or invalid. No run starts
                and nothing is persisted.
        """
        question = validate_question(request.question, self.limits.max_question_chars)
        params = RetrievalParams.from_request(
            request.topk,
            request.threshold,
            default_topk=self.limits.default_topk,
            max_topk=self.limits.max_topk,
            default_threshold=self.limits.default_threshold,
        )
        logger.info("Run started (topk=%d, threshold=%s)", params.topk, params.threshold)
        return RunState(
            question=question,
            topk=params.topk,
            threshold=params.threshold,
            history=list(request.history),
        )

    async def stream(self, state: RunState) -> AsyncIterator[str]:
        """Drive ``state`` to a terminal state, yielding wire lines.

        Fatal stage failures end the stream with a step error and an error
        event. The run record is persisted once the stream terminates, is
        closed early, or is cancelled.
        """
        emitter = TraceEmitter(state.ledger)
        try:
            while not state.phase.is_terminal:
                handler = self._handlers[state.phase]
                try:
                    async with aclosing(handler(state, emitter)) as lines:
                        async for line in lines:
                            yield line
                except Exception as exc:
                    for line in self._fail(state, emitter, exc):
                        yield line
        finally:
            await self._persist_once(state)

    async def run(self, request: AskRequest) -> AsyncIterator[str]:
        """Validate ``request`` and stream its run."""
        state = self.start(request)
        async with aclosing(self.stream(state)) as lines:
            async for line in lines:
                yield line

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _receive(self, state: RunState, emitter: TraceEmitter) -> AsyncIterator[str]:
        key, title = PipelineState.RECEIVED.value, STEP_TITLES[PipelineState.RECEIVED]
        yield emitter.step(key, title, StepStatus.PENDING)
        yield emitter.step(key, title, StepStatus.RUNNING)
        yield emitter.step(key, title, StepStatus.DONE, state.question)
        state.phase = PipelineState.EMBEDDING

    async def _embed(self, state: RunState, emitter: TraceEmitter) -> AsyncIterator[str]:
        key, title = PipelineState.EMBEDDING.value, STEP_TITLES[PipelineState.EMBEDDING]
        yield emitter.step(key, title, StepStatus.PENDING)
        yield emitter.step(key, title, StepStatus.RUNNING)

        vector = await self._bounded(self.embedder.embed(state.question), "Embedding")
        if not vector:
            raise EmbeddingError("Embedding service returned an empty vector")
        state.query_vector = list(vector)

        yield emitter.step(key, title, StepStatus.DONE, f"{len(vector)} dimensions")
        state.phase = PipelineState.RETRIEVING

    async def _retrieve(self, state: RunState, emitter: TraceEmitter) -> AsyncIterator[str]:
        key, title = PipelineState.RETRIEVING.value, STEP_TITLES[PipelineState.RETRIEVING]
        params = f"topk={state.topk}, threshold={state.threshold}"
        yield emitter.step(key, title, StepStatus.PENDING, params)
        yield emitter.step(key, title, StepStatus.RUNNING, params)

        rows = await self._bounded(
            self.retriever.search(state.query_vector, state.threshold, state.topk),
            "Retrieval",
        )
        state.sources = [
            row if isinstance(row, SourceMatch) else SourceMatch.from_row(row, index)
            for index, row in enumerate(rows or [])
        ]

        if not state.sources:
            yield emitter.step(key, title, StepStatus.DONE, "No results")
            state.answer = NO_MATCH_ANSWER
            yield emitter.delta(NO_MATCH_ANSWER)
            state.phase = PipelineState.NO_MATCHES
            logger.info("No fragments matched; run ends without generation")
            return

        yield emitter.step(key, title, StepStatus.DONE, f"{len(state.sources)} fragments matched")
        yield emitter.sources(state.sources)
        state.phase = PipelineState.TOOL_INVOKING

    async def _invoke_tool(self, state: RunState, emitter: TraceEmitter) -> AsyncIterator[str]:
        key = PipelineState.TOOL_INVOKING.value
        title = f"{STEP_TITLES[PipelineState.TOOL_INVOKING]}: {self.tool.name}"
        yield emitter.step(key, title, StepStatus.PENDING)
        yield emitter.step(key, title, StepStatus.RUNNING, "Processing retrieval results")

        error: NonCriticalStageError | None = None
        detail = ""
        try:
            detail = await self._bounded(self.tool.run(list(state.sources)), f"Tool {self.tool.name}")
        except Exception as e:
            error = (
                e
                if isinstance(e, NonCriticalStageError)
                else ToolStageError(f"Tool {self.tool.name} failed: {e}", cause=e)
            )
            logger.warning(
                "Non-critical stage failed, continuing: %s",
                error.message,
                exc_info=e,
                extra={"stage": key, "error_code": error.error_code},
            )

        if error is not None:
            yield emitter.step(key, title, StepStatus.ERROR, error.message)
        else:
            yield emitter.step(key, title, StepStatus.DONE, detail)
        state.phase = PipelineState.GENERATING

    async def _generate(self, state: RunState, emitter: TraceEmitter) -> AsyncIterator[str]:
        key, title = PipelineState.GENERATING.value, STEP_TITLES[PipelineState.GENERATING]
        yield emitter.step(key, title, StepStatus.PENDING)
        yield emitter.step(key, title, StepStatus.RUNNING)

        messages = build_messages(state.question, state.history, state.sources)
        timeout = self.limits.generation_timeout
        deadline = asyncio.get_running_loop().time() + timeout if timeout else None
        limit = self.limits.max_answer_chars

        async with aclosing(self.llm.generate_stream(messages)) as fragments:
            while not state.truncated:
                try:
                    async with asyncio.timeout_at(deadline):
                        fragment = await anext(fragments)
                except StopAsyncIteration:
                    break
                except TimeoutError as e:
                    raise CollaboratorTimeoutError(
                        f"Generation timed out after {timeout}s",
                        cause=e,
                        context={"answer_chars": len(state.answer)},
                    ) from e

                if not fragment:
                    continue
                room = limit - len(state.answer)
                if len(fragment) > room:
                    fragment = fragment[:room]
                    state.truncated = True
                if fragment:
                    state.answer += fragment
                    yield emitter.delta(fragment)

        if state.truncated:
            logger.warning("Answer truncated at %d characters", limit)
            detail = f"Answer truncated at {limit} characters"
        else:
            detail = f"{len(state.answer)} characters generated"
        yield emitter.step(key, title, StepStatus.DONE, detail)
        state.phase = PipelineState.DONE

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _bounded(self, call: Awaitable[T], what: str) -> T:
        """Await a collaborator call under the configured timeout."""
        timeout = self.limits.collaborator_timeout
        try:
            async with asyncio.timeout(timeout):
                return await call
        except TimeoutError as e:
            raise CollaboratorTimeoutError(f"{what} timed out after {timeout}s", cause=e) from e

    def _fail(self, state: RunState, emitter: TraceEmitter, exc: Exception) -> list[str]:
        """Move the run to ``error`` and return the step and error lines."""
        stage = state.phase
        if isinstance(exc, RagTraceError):
            error = exc
        else:
            error_cls = _STAGE_ERRORS.get(stage, CollaboratorError)
            error = error_cls(f"{STEP_TITLES.get(stage, stage.value)} failed: {exc}", cause=exc)

        logger.error(
            "Run failed during %s [%s]: %s",
            stage.value,
            error.error_code,
            error.message,
            exc_info=exc,
            extra={"stage": stage.value, "error_code": error.error_code},
        )
        state.phase = PipelineState.ERROR
        return [
            emitter.step(stage.value, STEP_TITLES.get(stage), StepStatus.ERROR, error.message),
            emitter.error(error.message),
        ]

    async def _persist_once(self, state: RunState) -> None:
        """Hand the run record to the recorder, at most once per run.

        The write runs in its own task so a cancelled consumer cannot abort
        it halfway.
        """
        if state.persisted:
            return
        state.persisted = True

        if not state.phase.is_terminal:
            logger.info("Run interrupted during %s; persisting partial trace", state.phase.value)
            current = state.ledger.get(state.phase.value)
            # A step the consumer already saw settle keeps its status
            if current is not None and current.status not in (StepStatus.DONE, StepStatus.ERROR):
                state.ledger.upsert(
                    Step(
                        key=state.phase.value,
                        status=StepStatus.ERROR,
                        detail="Interrupted: client disconnected",
                    )
                )
            state.phase = PipelineState.ERROR

        record = self.recorder.build(state)
        task = asyncio.create_task(self._write(record))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            logger.warning("Run cancelled; its record is still being written in the background")
            raise

    async def _write(self, record: RunRecord) -> None:
        try:
            await self.recorder.persist(record)
        except PersistenceError as e:
            logger.error("Run record could not be persisted: %s", e.message, exc_info=e)
        except Exception:
            logger.exception("Unexpected error while persisting run record")
