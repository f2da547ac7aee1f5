from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cosmic_mind.db.base import Base
import uuid

CONTENT_TYPES = ("youtube", "twitter", "pdf")


class Content(Base):
    __tablename__ = "content"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    link = Column(String, nullable=False)
    type = Column(String, nullable=False)  # youtube, twitter, pdf
    tags = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    def __repr__(self):
        return f"<Content(title='{self.title[:30]}', type='{self.type}')>"
