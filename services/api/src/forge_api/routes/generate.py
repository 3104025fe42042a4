"""
Streaming build endpoint.
"""

import asyncio
import json
from collections.abc import AsyncIterator

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from builder_agent import ErrorEvent, EventGateway, StreamEvent
from forge_core import ForgeError, get_logger, get_settings

from ..dependencies import build_controller
from ..schemas import GenerateRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/generate", tags=["Generate"])

# Runs outlive their subscriber; hold references until they finish
_running: set[asyncio.Task] = set()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: StreamEvent) -> str:
    """Frame one event as a Server-Sent Events message."""
    return f"data: {json.dumps(event.to_wire())}\n\n"


async def _stream(request: GenerateRequest, gateway: EventGateway) -> AsyncIterator[str]:
    try:
        controller = build_controller(request.provider, request.model)
    except ForgeError as e:
        logger.warning("Cannot start build", error=e.message, error_code=e.error_code)
        yield encode_event(ErrorEvent(error=e.message, code=e.error_code))
        return

    task = asyncio.create_task(
        controller.stream(request.session_id, request.prompt, gateway, model=request.model)
    )
    _running.add(task)
    task.add_done_callback(_running.discard)

    try:
        async for event in gateway.events():
            yield encode_event(event)
    finally:
        if not gateway.closed:
            gateway.disconnect()


@router.post("/stream")
async def generate_stream(request: GenerateRequest) -> StreamingResponse:
    """
    Run the build loop and stream its progress.

    The response is ``text/event-stream``; each frame is ``data: <json>``.
    The stream ends after a ``complete`` or ``error`` event. Closing the
    connection stops the loop at its next iteration boundary.
    """
    logger.info(
        "Build requested",
        session_id=request.session_id,
        provider=request.provider,
        model=request.model,
        prompt_length=len(request.prompt),
    )
    gateway = EventGateway(heartbeat_interval=get_settings().engine.heartbeat_interval)
    return StreamingResponse(
        _stream(request, gateway),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
