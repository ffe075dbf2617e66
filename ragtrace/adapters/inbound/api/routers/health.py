"""Health check endpoints."""

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ..... import __version__
from .....core.ports.retrieval_port import RetrievalPort
from .....core.ports.run_store_port import RunStorePort
from ..deps import get_retriever, get_run_store
from ..models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        run_store="not_checked",
        vector_store="not_checked",
    )


@router.get("/ready", response_model=HealthResponse)
async def readiness_check(
    store: RunStorePort = Depends(get_run_store),
    retriever: RetrievalPort = Depends(get_retriever),
) -> HealthResponse:
    """Readiness probe.

    Checks that the run history database answers queries and that the
    vector store collection is reachable.
    """
    try:
        reachable = await run_in_threadpool(store.ping)
        store_status = "connected" if reachable else "unreachable"
    except Exception as e:
        store_status = f"error: {e}"

    try:
        reachable = await retriever.ping()
        vs_status = "connected" if reachable else "unreachable"
    except Exception as e:
        vs_status = f"error: {e}"

    ready = store_status == "connected" and vs_status == "connected"
    return HealthResponse(
        status="ready" if ready else "degraded",
        version=__version__,
        run_store=store_status,
        vector_store=vs_status,
    )
