"""
Ping Router - Endpoints for single, batch and continuous probes
"""
import asyncio
import logging
from typing import Dict, List, Optional
from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import StreamingResponse
from ..models import PingRequest, BatchPingRequest, ContinuousPingRequest, PingResultOut, ContinuousSessionOut
from ..ping_service import ServiceClosedError

logger = logging.getLogger("PingState.PingRouter")

router = APIRouter(prefix="/ping", tags=["ping"])


@router.post("", response_model=PingResultOut)
async def ping_host(body: PingRequest, request: Request):
    service = request.app.state.ping_service
    result = await service.ping_host(body.host, body.port, body.timeout_ms, body.use_icmp, body.use_tcp)
    return result.to_dict()


@router.post("/batch", response_model=Dict[str, PingResultOut])
async def ping_multiple_hosts(body: BatchPingRequest, request: Request):
    service = request.app.state.ping_service
    pairs = [(target.host, target.port) for target in body.hosts]
    results = await service.ping_multiple_hosts(pairs, body.timeout_ms, body.use_icmp, body.use_tcp)
    return {key: result.to_dict() for key, result in results.items()}


# --- CONTINUOUS ---

@router.get("/continuous", response_model=List[ContinuousSessionOut])
def list_continuous(request: Request):
    manager = request.app.state.continuous_manager
    return [s.to_dict() for s in manager.active_sessions()]


@router.post("/continuous")
async def start_continuous(body: ContinuousPingRequest, request: Request):
    manager = request.app.state.continuous_manager
    try:
        manager.start(body.ping_id, body.host, body.port, body.interval_ms)
    except ServiceClosedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"ok": True}


@router.delete("/continuous/{ping_id}")
async def stop_continuous(ping_id: str, request: Request):
    manager = request.app.state.continuous_manager
    stopped = manager.stop(ping_id)
    return {"ok": True, "stopped": stopped}


@router.post("/cleanup")
async def cleanup(request: Request):
    request.app.state.continuous_manager.cleanup()
    return {"ok": True}


# --- RESULTS ---

KEEPALIVE_SECONDS = 30.0


@router.get("/events")
async def recent_results(request: Request, ping_id: Optional[str] = None, limit: int = 100):
    """Recent continuous results, newest last"""
    entries = request.app.state.result_stream.recent(ping_id, limit)
    return {"events": [e.to_dict() for e in entries]}


@router.get("/stream")
async def follow_results(
    request: Request,
    ping_id: Optional[str] = None,
    last_event_id: Optional[int] = Header(None),
):
    """
    SSE feed of continuous results, for one ping id or all of them.
    A reconnecting client sends Last-Event-ID and first receives what it missed.
    """
    stream = request.app.state.result_stream

    async def frames():
        # Follow and replay with no await in between, so nothing falls in the gap
        queue = stream.follow(ping_id)
        missed = stream.recent(ping_id, after=last_event_id) if last_event_id is not None else []
        try:
            for entry in missed:
                yield entry.to_sse()
            while not await request.is_disconnected():
                try:
                    entry = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield entry.to_sse()
        finally:
            stream.unfollow(queue)

    return StreamingResponse(frames(), media_type="text/event-stream", headers={"Cache-Control": "no-cache"})
