from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from cosmic_mind.core.auth import verify_token
from cosmic_mind.db.session import get_db
from cosmic_mind.models.content import Content
from cosmic_mind.models.user import User
from cosmic_mind.routes.content import to_response
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

# Bot uploads are links only
TELEGRAM_CONTENT_TYPES = ("youtube", "twitter")


class TelegramLinkRequest(BaseModel):
    telegramChatId: Optional[str] = None
    telegramUsername: Optional[str] = None
    token: Optional[str] = None


@router.post("/telegram/link")
async def link_telegram(body: TelegramLinkRequest, db: Session = Depends(get_db)):
    """Link a Telegram chat to an account; reminders without a chat id go there"""

    if not body.telegramChatId or not body.token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Telegram chat ID and token are required"
        )

    payload = verify_token(body.token)
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    other = db.query(User).filter(
        User.telegram_chat_id == body.telegramChatId,
        User.id != user.id
    ).first()
    if other:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This Telegram chat is already linked to another account"
        )

    try:
        user.telegram_chat_id = body.telegramChatId
        user.telegram_username = body.telegramUsername
        db.commit()
    except Exception as e:
        logger.error(f"Telegram link error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to link Telegram account")

    logger.info(f"Linked Telegram chat {body.telegramChatId} to user {user.username}")
    return {
        "success": True,
        "message": "Telegram account linked successfully",
        "username": user.username,
        "telegramChatId": user.telegram_chat_id
    }


class TelegramContentCreate(BaseModel):
    telegramChatId: Optional[str] = None
    link: Optional[str] = None
    type: Optional[str] = None
    title: Optional[str] = None
    tags: List[str] = []


class TelegramContentList(BaseModel):
    telegramChatId: Optional[str] = None
    limit: int = 10


def _linked_user(db: Session, chat_id: str) -> Optional[User]:
    return db.query(User).filter(User.telegram_chat_id == chat_id).first()


@router.post("/telegram/content")
async def add_telegram_content(body: TelegramContentCreate, db: Session = Depends(get_db)):
    """Save a bookmark sent from a linked Telegram chat"""

    if not body.telegramChatId or not body.link or not body.type or not body.title:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required: chat ID, link, type, and title"
        )
    if body.type not in TELEGRAM_CONTENT_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Type must be youtube or twitter")

    user = _linked_user(db, body.telegramChatId)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Please link your account first. Use /link command."
        )

    try:
        content = Content(
            user_id=user.id,
            title=body.title,
            link=body.link,
            type=body.type,
            tags=["telegram", body.type] + [t.strip() for t in body.tags if t.strip()]
        )
        db.add(content)
        db.commit()
        db.refresh(content)
    except Exception as e:
        logger.error(f"Telegram content error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save content")

    logger.info(f"📥 Saved {body.type} content from Telegram chat {body.telegramChatId}")
    return {
        "success": True,
        "message": "Content saved successfully",
        "content": to_response(content)
    }


@router.post("/telegram/content/list")
async def list_telegram_content(body: TelegramContentList, db: Session = Depends(get_db)):
    """Newest bookmarks of the account linked to a Telegram chat"""

    if not body.telegramChatId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Telegram chat ID is required")

    user = _linked_user(db, body.telegramChatId)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Telegram account not linked")

    items = (
        db.query(Content)
        .filter(Content.user_id == user.id)
        .order_by(Content.created_at.desc())
        .limit(max(body.limit, 0))
        .all()
    )
    return {
        "success": True,
        "content": [to_response(c) for c in items],
        "count": len(items),
        "username": user.username
    }
