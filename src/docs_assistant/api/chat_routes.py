"""
Chat Routes: Documentation Chat and Semantic Search

This module implements the single endpoint used by the documentation widget.
The JSON body selects the mode:

- `{"type": "chat", ...}` runs a retrieval-augmented chat turn and streams the
  model's answer as server-sent events;
- `{"type": "semantic-search", ...}` runs retrieval only and returns the
  passages as a JSON array.

Stream Format
-------------
    event: sources            (first turns only)
    data: [{"slug": ..., "name": ..., "text": ..., "type": ...}, ...]

    data: "partial answer text"      (repeated)

    event: done
    data: {}

A request whose client disconnects before the model call is answered with
204 No Content. A disconnect during streaming ends the stream quietly.

The model stream is opened before the response starts, so an upstream
failure at that point becomes a 502. A failure after the first delta ends
the stream with `event: error` instead of `event: done`.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from typing import Annotated, Any, AsyncIterator, Optional
import json
import logging

from .models import DocsChatRequest, SemanticSearchRequest
from .dependencies import get_orchestrator
from ..chat.orchestrator import ChatOrchestrator, ChatTurn
from ..core.errors import RequestAborted, UpstreamServiceError

logger = logging.getLogger("docs.chat")

router = APIRouter(prefix="/api", tags=["chat"])


# ---------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------

def _sse(data: Any, event: Optional[str] = None) -> str:
    """Encode one server-sent event."""
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {json.dumps(data)}\n\n"


async def _event_stream(turn: ChatTurn) -> AsyncIterator[str]:
    if turn.retrieved:
        yield _sse([s.model_dump() for s in turn.sources], event="sources")

    try:
        async for delta in turn.stream():
            yield _sse(delta)
    except RequestAborted:
        logger.info("Client disconnected; closing chat stream")
        return
    except UpstreamServiceError as exc:
        logger.error("Chat stream failed mid-answer: %s", exc)
        yield _sse({"error": "upstream_error"}, event="error")
        return

    yield _sse({}, event="done")


# ---------------------------------------------------------------------
# Chat Route
# ---------------------------------------------------------------------

@router.post(
    "/docs-chat",
    summary="Chat with the documentation, or run a semantic search",
    response_model=None,
    responses={
        status.HTTP_200_OK: {"description": "Event stream (chat) or JSON passages (semantic-search)"},
        status.HTTP_204_NO_CONTENT: {"description": "Request aborted by the client"},
        status.HTTP_502_BAD_GATEWAY: {"description": "Language model request failed"},
    },
)
async def docs_chat(
    body: DocsChatRequest,
    request: Request,
    orchestrator: Annotated[ChatOrchestrator, Depends(get_orchestrator)],
) -> Response:
    """
    Documentation chat endpoint.

    Parameters
    ----------
    body : ChatRequest | SemanticSearchRequest
        Discriminated by `type`.

    Returns
    -------
    Response
        StreamingResponse for chat, JSONResponse for semantic search, or an
        empty 204 response when the client went away.
    """
    if isinstance(body, SemanticSearchRequest):
        passages = await orchestrator.semantic_search(body.query, body.namespace)
        return JSONResponse(content=[p.model_dump() for p in passages])

    try:
        turn = await orchestrator.prepare(body, is_aborted=request.is_disconnected)
        await turn.start()
    except RequestAborted:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return StreamingResponse(_event_stream(turn), media_type="text/event-stream")
