from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional
from cosmic_mind.core.deps import get_current_user
from cosmic_mind.db.session import get_db
from cosmic_mind.models.content import Content
from cosmic_mind.models.share_link import ShareLink
from cosmic_mind.models.user import User
from cosmic_mind.routes.content import to_response
import logging
import secrets

logger = logging.getLogger(__name__)

router = APIRouter()


class ShareRequest(BaseModel):
    share: Optional[bool] = None


@router.post("/brain/share")
async def share_brain(
    body: ShareRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create (or reuse) the user's public share link, or deactivate it"""

    if body.share is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Share boolean required")

    try:
        link = db.query(ShareLink).filter(
            ShareLink.user_id == current_user.id,
            ShareLink.is_active.is_(True)
        ).first()

        if not body.share:
            if link:
                link.is_active = False
                db.commit()
            return {"message": "Share link deactivated"}

        if not link:
            link = ShareLink(hash=secrets.token_hex(8), user_id=current_user.id, is_active=True)
            db.add(link)
            db.commit()
            db.refresh(link)

        return {
            "hash": link.hash,
            "url": f"{str(request.base_url).rstrip('/')}/api/v1/brain/{link.hash}"
        }

    except Exception as e:
        logger.error(f"Share error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/brain/{share_hash}")
async def shared_brain(share_hash: str, db: Session = Depends(get_db)):
    """Public read-only view of a shared library"""

    link = db.query(ShareLink).filter(
        ShareLink.hash == share_hash,
        ShareLink.is_active.is_(True)
    ).first()
    if not link:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found or inactive")

    items = (
        db.query(Content)
        .filter(Content.user_id == link.user_id)
        .order_by(Content.created_at.desc())
        .all()
    )
    return {
        "username": link.user.username,
        "content": [to_response(c).model_dump(exclude={"userId"}) for c in items],
        "sharedAt": link.created_at.isoformat() if link.created_at else None
    }
