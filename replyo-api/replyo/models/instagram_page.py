import uuid

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from replyo.database import Base


class InstagramPage(Base):
    __tablename__ = "instagram_pages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    page_id = Column(Text, nullable=False, unique=True)
    page_name = Column(Text)
    access_token = Column(Text)
    subscription_id = Column(UUID(as_uuid=True), ForeignKey("subscriptions.id"), nullable=False)
    connected_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    subscription = relationship("Subscription", back_populates="instagram_pages")
