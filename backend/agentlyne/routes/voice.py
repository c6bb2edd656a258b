"""
API router for the voice vendors (Retell web calls, OpenAI realtime)
"""
import logging
from collections.abc import Mapping

from fastapi import APIRouter, Depends, Request

from ..deps import get_voice_client, read_payload
from ..services.vendors import VoiceSessionClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["voice"])


def _as_dict(payload) -> dict:
    return dict(payload) if isinstance(payload, Mapping) else {}


@router.post("/retell/token")
@router.post("/retell/create-web-call")
async def create_retell_web_call(
    request: Request,
    client: VoiceSessionClient = Depends(get_voice_client),
):
    """Access token for a browser web call with the Retell agent"""
    body = _as_dict(await read_payload(request))
    metadata = body.get("metadata") if isinstance(body.get("metadata"), Mapping) else None
    call = await client.create_retell_web_call(
        agent_id=body.get("agent_id") or body.get("agentId"),
        metadata=metadata,
    )
    return {"ok": True, **call}


@router.post("/retell/webhook")
async def retell_webhook(request: Request):
    """Call lifecycle events from Retell (call_started, call_ended, call_analyzed)"""
    body = _as_dict(await read_payload(request))
    call = body.get("call") if isinstance(body.get("call"), Mapping) else {}
    logger.info(
        "retell webhook: event=%s call_id=%s status=%s",
        body.get("event", "unknown"),
        call.get("call_id", "-"),
        call.get("call_status", "-"),
    )
    return {"ok": True}


@router.post("/openai/realtime-session")
async def create_realtime_session(
    request: Request,
    client: VoiceSessionClient = Depends(get_voice_client),
):
    """Ephemeral client secret for a browser realtime voice session"""
    body = _as_dict(await read_payload(request))
    session = await client.create_realtime_session(
        model=body.get("model"),
        voice=body.get("voice"),
        instructions=body.get("instructions"),
    )
    return {"ok": True, **session}
