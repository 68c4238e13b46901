"""Messaging routes: the Bot Framework endpoint and a health check."""

from __future__ import annotations

from botbuilder.schema import Activity
from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from healthplan_bot.logging_config import turn_logger

router = APIRouter(tags=["bot"])


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
async def health():
    """Simple liveness / readiness check."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Bot Framework messaging endpoint
# ---------------------------------------------------------------------------


@router.post("/api/messages")
async def messages(raw_request: Request):
    """Receive one activity from the channel service and run a turn for it.

    The adapter verifies the channel's bearer token (including that its
    ``serviceurl`` claim matches the activity) before the bot sees anything.
    """
    if "application/json" not in raw_request.headers.get("content-type", ""):
        raise HTTPException(status_code=415, detail="Expected application/json")

    try:
        body = await raw_request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Malformed activity: {exc}")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Malformed activity: expected a JSON object")

    activity = Activity().deserialize(body)
    auth_header = raw_request.headers.get("Authorization", "")
    state = raw_request.app.state

    log = turn_logger(activity)
    log.info("POST /api/messages | type={}", activity.type)

    with state.turn_span(activity):
        try:
            response = await state.adapter.process_activity(auth_header, activity, state.bot.on_turn)
        except PermissionError as exc:
            log.warning("Rejected unauthenticated activity: {}", exc)
            raise HTTPException(status_code=401, detail="Unauthorized")

    if response:
        return JSONResponse(status_code=response.status, content=response.body)
    return Response(status_code=201)
