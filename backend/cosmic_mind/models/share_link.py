from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cosmic_mind.db.base import Base
import uuid


class ShareLink(Base):
    __tablename__ = "share_link"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    hash = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    def __repr__(self):
        return f"<ShareLink(hash='{self.hash}', active={self.is_active})>"
