from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Optional
from cosmic_mind.core.auth import create_access_token, verify_password, get_password_hash
from cosmic_mind.core.deps import get_current_user
from cosmic_mind.db.session import get_db
from cosmic_mind.models.user import User
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


class Credentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    username: str


class TokenResponse(BaseModel):
    token: str
    user: UserSummary


class MeResponse(BaseModel):
    userId: str
    username: str
    createdAt: Optional[str] = None
    telegramLinked: bool = False


def _token_for(user: User) -> TokenResponse:
    token = create_access_token(data={"sub": str(user.id), "username": user.username})
    return TokenResponse(token=token, user=UserSummary(id=str(user.id), username=user.username))


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_data: Credentials, db: Session = Depends(get_db)):
    """Create a new user account"""

    if not user_data.username or not user_data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username and password required")
    if len(user_data.username) < 3:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username must be at least 3 characters")
    if len(user_data.password) < 6:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password must be at least 6 characters")

    existing_user = db.query(User).filter(User.username == user_data.username).first()
    if existing_user:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username exists")

    user = User(
        username=user_data.username,
        password_hash=get_password_hash(user_data.password)
    )

    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        logger.error(f"Signup error: {e}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Server error")

    return _token_for(user)


@router.post("/signin", response_model=TokenResponse)
async def signin(user_data: Credentials, db: Session = Depends(get_db)):
    """Authenticate user and issue a bearer token"""

    if not user_data.username or not user_data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username and password required")

    user = db.query(User).filter(User.username == user_data.username).first()
    if not user or not verify_password(user_data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return _token_for(user)


@router.get("/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)):
    return MeResponse(
        userId=str(current_user.id),
        username=current_user.username,
        createdAt=current_user.created_at.isoformat() if current_user.created_at else None,
        telegramLinked=bool(current_user.telegram_chat_id)
    )
