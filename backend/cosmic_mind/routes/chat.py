from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional
from cosmic_mind.core.deps import get_current_user
from cosmic_mind.core.llm import LLMClient
from cosmic_mind.db.session import get_db
from cosmic_mind.models.content import Content
from cosmic_mind.models.user import User
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

CONTEXT_ITEMS = 5


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
    hasContext: bool
    contextItems: int
    provider: str = "Groq Cloud"


def get_llm_client(request: Request) -> LLMClient:
    return request.app.state.llm_client


def build_context(items) -> str:
    if not items:
        return "User has no saved content yet."
    lines = [f"{i}. {c.title} ({c.type}): {c.link}" for i, c in enumerate(items, start=1)]
    return "User's saved content:\n" + "\n".join(lines)


@router.post("/ai/chat", response_model=ChatResponse)
async def ai_chat(
    body: ChatRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client)
):
    """Chat with the assistant using the user's saved content as context"""

    if not body.message:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message required")

    items = (
        db.query(Content)
        .filter(Content.user_id == current_user.id)
        .order_by(Content.created_at.desc())
        .limit(CONTEXT_ITEMS)
        .all()
    )

    answer = await llm.ask(body.message, build_context(items))
    return ChatResponse(response=answer, hasContext=bool(items), contextItems=len(items))
