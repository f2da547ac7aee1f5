from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from cosmic_mind.db.base import Base
import uuid


class User(Base):
    __tablename__ = "app_user"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    telegram_chat_id = Column(String, unique=True, nullable=True)
    telegram_username = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User(username='{self.username}')>"
