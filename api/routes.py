"""
REST endpoints for emotion detection and the mood spoiler chat.
"""
from typing import List
from fastapi import APIRouter, HTTPException
import logging

from core.config import Settings
from core.errors import CameraUnavailableError, ConversationBusyError, EmptyMessageError
from core.models import ChatRequest, ChatTurn, ConversationMessage, DetectionStatus
from core.session import MoodSession

router = APIRouter()
settings = Settings()
logger = logging.getLogger(__name__)

_session = {"current": None}


def get_session() -> MoodSession:
    if _session["current"] is None:
        _session["current"] = MoodSession(settings)
    return _session["current"]


def set_session(session: MoodSession) -> None:
    _session["current"] = session


@router.post("/detection/start")
async def detection_start():
    """
    Commit to a detector backend (first call only) and start sampling the camera.

    Returns:
        dict: status, committed backend and an optional notice for the UI.
    """
    session = get_session()
    if session.detecting:
        active = session.selector.active
        return {"status": "already_running", "backend": active.kind, "notice": active.notice}
    try:
        active = await session.start_detection()
    except CameraUnavailableError as e:
        logger.exception("[api] camera unavailable")
        raise HTTPException(status_code=503, detail=str(e))
    logger.debug(f"[api] detection started backend={active.kind}")
    return {"status": "started", "backend": active.kind, "notice": active.notice}


@router.get("/detection/status", response_model=DetectionStatus)
async def detection_status():
    return get_session().status()


@router.post("/detection/stop")
async def detection_stop():
    stopped = await get_session().stop_detection()
    return {"status": "stopped" if stopped else "not_running"}


@router.get("/chat/messages", response_model=List[ConversationMessage])
async def chat_history():
    return get_session().conversation.messages


@router.post("/chat/messages", response_model=ChatTurn)
async def chat_send(req: ChatRequest):
    """
    Submit a user message and wait for the bot's mood-inverted reply.

    Returns:
        ChatTurn: the stored user message and the bot reply (fallback text on failure).
    """
    session = get_session()
    try:
        user, reply = await session.send(req.text)
    except EmptyMessageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConversationBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return ChatTurn(user=user, reply=reply, composing=session.conversation.composing)
