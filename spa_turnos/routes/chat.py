"""
FAQ Chat Routes
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from spa_turnos.api.session import SessionContext
from spa_turnos.routes.deps import get_session
from spa_turnos.services import chat

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatMessage(BaseModel):
    text: str = Field(max_length=500)


@router.get("/greeting")
def greeting(session: SessionContext = Depends(get_session)):
    return {"text": chat.greeting(session.user)}


@router.get("/replies")
def quick_replies(q: str = Query("", max_length=100)):
    """Quick replies, filtered by what the user typed so far."""
    return {"replies": chat.filter_replies(q)}


@router.post("")
def ask(message: ChatMessage):
    return chat.answer(message.text).to_dict()
