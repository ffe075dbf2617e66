"""Ask endpoint streaming the traced pipeline run."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from .....core.services.pipeline import AskPipeline
from ..deps import get_pipeline
from ..models import AskBody, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["ask"])

NDJSON_MEDIA_TYPE = "text/plain; charset=utf-8"


@router.post(
    "/ask",
    response_class=StreamingResponse,
    responses={
        200: {
            "content": {NDJSON_MEDIA_TYPE: {}},
            "description": "Newline-delimited JSON trace events",
        },
        400: {"model": ErrorResponse, "description": "Missing or invalid question"},
    },
)
async def ask_question(
    body: AskBody,
    pipeline: AskPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    """Answer a question, streaming step, sources, delta and error records.

    Validation happens before the response starts, so a bad question is a
    plain 400 and no run is recorded. Once streaming, failures arrive as
    ``error`` records inside the 200 response.
    """
    state = pipeline.start(body.to_request())
    return StreamingResponse(
        pipeline.stream(state),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
