"""
Microsoft Teams Bot Framework endpoints for the Risk Alert Bot.
Handles Teams activities and externally pushed new-alert notifications.
"""
import logging

from botbuilder.schema import Activity
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from alert_bot.exceptions import EmptyAlertBatch
from alert_bot.models import NotifyRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["teams"])

NOTIFY_ACK_HTML = "<html><body><h1>Proactive messages have been sent.</h1></body></html>"


@router.post("/messages")
async def messages(request: Request):
    """
    Microsoft Teams Bot Framework webhook endpoint.
    Handles all incoming Teams activities (messages, card submits, conversation updates).

    No API key required - uses Azure AD authentication from Bot Framework.
    """
    services = request.app.state.services
    body = await request.json()
    activity = Activity().deserialize(body)
    auth_header = request.headers.get("Authorization", "")

    logger.info(f"Received Teams activity: {activity.type}")

    try:
        invoke_response = await services.adapter.process_activity(
            activity, auth_header, services.bot.on_turn
        )
    except PermissionError as e:
        logger.warning(f"Rejected unauthorized activity: {e}")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if invoke_response:
        return JSONResponse(status_code=invoke_response.status, content=invoke_response.body)
    return Response(status_code=201)


@router.post("/notify", response_class=HTMLResponse)
async def notify(payload: NotifyRequest, request: Request):
    """
    Accept pushed alerts and send a proactive card to every known conversation.

    Always acknowledges with 200 once the batch is ingested, whatever the
    number of conversations reached.
    """
    services = request.app.state.services

    try:
        result = await services.proactive.notify(payload.key)
    except EmptyAlertBatch as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        f"Notify handled: {len(payload.key)} alerts, "
        f"{len(result.delivered)} delivered, {len(result.failed)} failed"
    )
    return HTMLResponse(content=NOTIFY_ACK_HTML, status_code=200)
