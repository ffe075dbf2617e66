"""Run history endpoints."""

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from .....core.ports.run_store_port import RunStorePort
from ..deps import get_run_store
from ..models import ErrorResponse, RunDetail, RunPageResponse

router = APIRouter(prefix="/api/v1", tags=["runs"])


@router.get("/runs", response_model=RunPageResponse)
async def list_runs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    store: RunStorePort = Depends(get_run_store),
) -> RunPageResponse:
    """List recorded runs, newest first."""
    result = await run_in_threadpool(store.list_runs, page, page_size)
    return RunPageResponse.from_page(result)


@router.get(
    "/runs/{run_id}",
    response_model=RunDetail,
    responses={404: {"model": ErrorResponse, "description": "Unknown run"}},
)
async def get_run(
    run_id: int,
    store: RunStorePort = Depends(get_run_store),
) -> RunDetail:
    """Fetch one run with its full trace for replay."""
    record = await run_in_threadpool(store.get_run, run_id)
    return RunDetail.from_record(record)
