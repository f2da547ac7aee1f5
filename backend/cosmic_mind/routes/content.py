from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional
from cosmic_mind.core.deps import get_current_user
from cosmic_mind.db.session import get_db
from cosmic_mind.models.content import Content, CONTENT_TYPES
from cosmic_mind.models.user import User
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


class ContentCreate(BaseModel):
    title: Optional[str] = None
    link: Optional[str] = None
    type: Optional[str] = None
    tags: List[str] = []


class ContentDelete(BaseModel):
    contentId: Optional[str] = None


class ContentResponse(BaseModel):
    id: str
    title: str
    link: str
    type: str
    userId: str
    tags: List[str]
    createdAt: Optional[str] = None


class ContentCreated(BaseModel):
    message: str
    content: ContentResponse


class ContentListResponse(BaseModel):
    content: List[ContentResponse]
    count: int


def to_response(content: Content) -> ContentResponse:
    return ContentResponse(
        id=str(content.id),
        title=content.title,
        link=content.link,
        type=content.type,
        userId=str(content.user_id),
        tags=list(content.tags or []),
        createdAt=content.created_at.isoformat() if content.created_at else None
    )


@router.post("/content", response_model=ContentCreated, status_code=status.HTTP_201_CREATED)
async def add_content(
    content_data: ContentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Save a bookmark to the user's library"""

    if not content_data.title or not content_data.link or not content_data.type:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title, link, and type required")
    if content_data.type not in CONTENT_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Type must be youtube, twitter, or pdf")

    try:
        content = Content(
            user_id=current_user.id,
            title=content_data.title,
            link=content_data.link,
            type=content_data.type,
            tags=[t.strip() for t in content_data.tags if t.strip()]
        )
        db.add(content)
        db.commit()
        db.refresh(content)
        return ContentCreated(message="Content added", content=to_response(content))
    except Exception as e:
        logger.error(f"Add content error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/content", response_model=ContentListResponse)
async def list_content(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the user's bookmarks, newest first"""

    items = (
        db.query(Content)
        .filter(Content.user_id == current_user.id)
        .order_by(Content.created_at.desc())
        .all()
    )
    return ContentListResponse(content=[to_response(c) for c in items], count=len(items))


@router.delete("/content")
async def delete_content(
    body: ContentDelete,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not body.contentId:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Content ID required")

    try:
        content = db.query(Content).filter(
            Content.id == body.contentId,
            Content.user_id == current_user.id
        ).first()

        if not content:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

        db.delete(content)
        db.commit()
        return {"message": "Content deleted"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete content error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")
